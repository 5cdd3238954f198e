"""Configuration loader for typedrpc."""

from __future__ import annotations

import asyncio
import tomllib
from typing import TYPE_CHECKING

import tomlkit
from pydantic import BaseModel, Field, field_validator

from typedrpc.atomic import atomic_write
from typedrpc.dispatch.methods import AnagramOptions
from typedrpc.paths import get_config_path, get_default_socket_path

if TYPE_CHECKING:
    from pathlib import Path

    from tomlkit.items import Table

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class ServerConfig(BaseModel):
    """Server-side settings."""

    socket_path: str = Field(
        default_factory=get_default_socket_path,
        description="Filesystem path of the Unix domain socket",
    )


class ReconnectConfig(BaseModel):
    """Backoff policy used after the client loses its connection."""

    enabled: bool = Field(default=True, description="Reconnect after connection loss")
    initial_delay: float = Field(default=0.1, gt=0, description="First backoff delay (seconds)")
    max_delay: float = Field(default=5.0, gt=0, description="Upper bound on backoff delay")
    multiplier: float = Field(default=2.0, ge=1.0, description="Delay growth factor")
    max_attempts: int = Field(default=5, ge=0, description="Attempts before giving up")


class ClientConfig(BaseModel):
    """Client-side settings."""

    socket_path: str = Field(
        default_factory=get_default_socket_path,
        description="Filesystem path of the Unix domain socket",
    )
    call_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Default deadline for a pending call",
    )
    reconnect: ReconnectConfig = Field(default_factory=ReconnectConfig)


class AnagramConfig(BaseModel):
    """Comparison rules for validAnagram."""

    case_sensitive: bool = Field(default=True, description="Treat 'A' and 'a' as different")
    ignore_whitespace: bool = Field(default=False, description="Drop whitespace before comparing")

    def to_options(self) -> AnagramOptions:
        return AnagramOptions(
            case_sensitive=self.case_sensitive,
            ignore_whitespace=self.ignore_whitespace,
        )


class MethodsConfig(BaseModel):
    """Per-method settings."""

    anagram: AnagramConfig = Field(default_factory=AnagramConfig)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Root log level")

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, value: object) -> str:
        """Coerce unknown levels to INFO."""
        match value:
            case str() as level if level.upper() in _LOG_LEVELS:
                return level.upper()
            case _:
                pass
        return "INFO"


class RPCConfig(BaseModel):
    """Root configuration model."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    methods: MethodsConfig = Field(default_factory=MethodsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> RPCConfig:
        """Load configuration from TOML file or use defaults."""
        if config_path is None:
            config_path = get_config_path()

        if config_path.exists():
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
            return cls.model_validate(data)

        return cls()

    def to_toml(self) -> str:
        doc = tomlkit.document()
        for section, values in self.model_dump().items():
            doc[section] = _table(values)
        return tomlkit.dumps(doc)

    async def save(self, path: Path) -> None:
        """Serialize current config to TOML file.

        Args:
            path: Path to write config file (created if missing)
        """
        await asyncio.to_thread(atomic_write, path, self.to_toml())


def _table(values: dict[str, object]) -> Table:
    table = tomlkit.table()
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, dict):
            table[key] = _table(value)
        else:
            table[key] = value
    return table


__all__ = [
    "AnagramConfig",
    "ClientConfig",
    "LoggingConfig",
    "MethodsConfig",
    "RPCConfig",
    "ReconnectConfig",
    "ServerConfig",
]
