"""Path helpers for typedrpc configuration and the well-known socket."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_config_dir

DEFAULT_SOCKET_PATH = "/tmp/rpc.sock"


def get_config_dir() -> Path:
    """Get the config directory (holds config.toml)."""
    override = os.environ.get("TYPEDRPC_CONFIG_DIR")
    if override:
        return Path(override).resolve()
    return Path(user_config_dir("typedrpc"))


def get_config_path() -> Path:
    """Get the path to the main config file."""
    return get_config_dir() / "config.toml"


def get_default_socket_path() -> str:
    """Socket path used when neither config nor CLI names one."""
    return os.environ.get("TYPEDRPC_SOCKET") or DEFAULT_SOCKET_PATH


def get_socket_lock_path(socket_path: str) -> Path:
    """Lock file held by the server that owns *socket_path*."""
    return Path(f"{socket_path}.lock")


__all__ = [
    "DEFAULT_SOCKET_PATH",
    "get_config_dir",
    "get_config_path",
    "get_default_socket_path",
    "get_socket_lock_path",
]
