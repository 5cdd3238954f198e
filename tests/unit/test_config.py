"""Tests for TOML configuration loading and saving."""

from __future__ import annotations

import tomllib
from typing import TYPE_CHECKING

import pytest

from typedrpc.atomic import atomic_write
from typedrpc.config import AnagramConfig, LoggingConfig, RPCConfig
from typedrpc.dispatch.methods import AnagramOptions
from typedrpc.paths import DEFAULT_SOCKET_PATH, get_config_path, get_default_socket_path

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.unit


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    config = RPCConfig.load(tmp_path / "missing.toml")

    assert config.server.socket_path == DEFAULT_SOCKET_PATH
    assert config.client.socket_path == DEFAULT_SOCKET_PATH
    assert config.client.call_timeout_seconds == 30.0
    assert config.client.reconnect.enabled is True
    assert config.methods.anagram.to_options() == AnagramOptions()
    assert config.logging.level == "INFO"


def test_load_reads_sections(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        """
[server]
socket_path = "/run/custom.sock"

[client]
call_timeout_seconds = 2.5

[client.reconnect]
enabled = false
max_attempts = 1

[methods.anagram]
case_sensitive = false
ignore_whitespace = true

[logging]
level = "debug"
""",
        encoding="utf-8",
    )

    config = RPCConfig.load(path)

    assert config.server.socket_path == "/run/custom.sock"
    assert config.client.socket_path == DEFAULT_SOCKET_PATH
    assert config.client.call_timeout_seconds == 2.5
    assert config.client.reconnect.enabled is False
    assert config.client.reconnect.max_attempts == 1
    assert config.methods.anagram.to_options() == AnagramOptions(
        case_sensitive=False,
        ignore_whitespace=True,
    )
    assert config.logging.level == "DEBUG"


def test_load_uses_default_location(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TYPEDRPC_CONFIG_DIR", str(tmp_path))
    get_config_path().write_text('[server]\nsocket_path = "/tmp/elsewhere.sock"\n')

    assert RPCConfig.load().server.socket_path == "/tmp/elsewhere.sock"


def test_socket_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TYPEDRPC_SOCKET", "/tmp/env.sock")

    assert get_default_socket_path() == "/tmp/env.sock"
    assert RPCConfig().server.socket_path == "/tmp/env.sock"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("debug", "DEBUG"), ("Warning", "WARNING"), ("verbose", "INFO"), (10, "INFO")],
)
def test_log_level_coercion(raw: object, expected: str) -> None:
    assert LoggingConfig.model_validate({"level": raw}).level == expected


def test_invalid_timeout_rejected() -> None:
    with pytest.raises(ValueError, match="call_timeout_seconds"):
        RPCConfig.model_validate({"client": {"call_timeout_seconds": 0}})


async def test_save_then_load(tmp_path: Path) -> None:
    config = RPCConfig.model_validate(
        {
            "server": {"socket_path": "/tmp/saved.sock"},
            "methods": {"anagram": {"ignore_whitespace": True}},
        }
    )
    path = tmp_path / "nested" / "config.toml"

    await config.save(path)

    assert RPCConfig.load(path) == config
    assert not list(path.parent.glob(".tmp_*"))


def test_to_toml_has_nested_tables() -> None:
    data = tomllib.loads(RPCConfig().to_toml())

    assert set(data) == {"server", "client", "methods", "logging"}
    assert data["client"]["reconnect"]["multiplier"] == 2.0
    assert data["methods"]["anagram"] == {"case_sensitive": True, "ignore_whitespace": False}


def test_anagram_config_to_options() -> None:
    options = AnagramConfig(case_sensitive=False).to_options()
    assert options == AnagramOptions(case_sensitive=False, ignore_whitespace=False)


def test_atomic_write_replaces(tmp_path: Path) -> None:
    path = tmp_path / "file.txt"
    atomic_write(path, "first")
    atomic_write(path, "second")

    assert path.read_text(encoding="utf-8") == "second"


def test_atomic_write_keeps_original_on_failure(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    atomic_write(path, "original")

    with pytest.raises(TypeError):
        atomic_write(path, 42)  # type: ignore[arg-type]

    assert path.read_text(encoding="utf-8") == "original"
    assert not list(tmp_path.glob(".tmp_*"))
