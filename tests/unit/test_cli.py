"""Tests for the command line surface that needs no running server."""

from __future__ import annotations

import tomllib
from typing import TYPE_CHECKING

import click
import pytest
from click.testing import CliRunner

from typedrpc import __version__
from typedrpc.__main__ import cli
from typedrpc.cli.commands.call import parse_args
from typedrpc.types import TypedValue, TypeTag

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.unit


class TestParseArgs:
    def test_inferred(self) -> None:
        assert parse_args(("3.7", "2", "true", "hello", '["b", "a"]'), ()) == [
            TypedValue(TypeTag.DOUBLE, 3.7),
            TypedValue(TypeTag.INT, 2),
            TypedValue(TypeTag.BOOL, True),
            TypedValue(TypeTag.STRING, "hello"),
            TypedValue(TypeTag.STRING_ARRAY, ("b", "a")),
        ]

    def test_uninferrable_json_falls_back_to_string(self) -> None:
        assert parse_args(('{"a": 1}', "null"), ()) == [
            TypedValue(TypeTag.STRING, '{"a": 1}'),
            TypedValue(TypeTag.STRING, "null"),
        ]

    def test_explicit_tags(self) -> None:
        assert parse_args(("3", "42"), ("double", "string")) == [
            TypedValue(TypeTag.DOUBLE, 3.0),
            TypedValue(TypeTag.STRING, "42"),
        ]

    def test_tag_count_mismatch(self) -> None:
        with pytest.raises(click.UsageError, match="--type"):
            parse_args(("1", "2"), ("int",))

    def test_bad_text_for_tag(self) -> None:
        with pytest.raises(click.UsageError):
            parse_args(("abc",), ("int",))


def test_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert result.output.strip() == f"typedrpc {__version__}"


def test_no_subcommand_prints_help() -> None:
    result = CliRunner().invoke(cli, [])

    assert result.exit_code == 0
    assert "serve" in result.output
    assert "call" in result.output


def test_config_init_and_show(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    runner = CliRunner()

    first = runner.invoke(cli, ["config", "init", "--path", str(path)])
    assert first.exit_code == 0, first.output
    assert tomllib.loads(path.read_text(encoding="utf-8"))["logging"]["level"] == "INFO"

    again = runner.invoke(cli, ["config", "init", "--path", str(path)])
    assert again.exit_code != 0
    assert "already exists" in again.output

    forced = runner.invoke(cli, ["config", "init", "--force", "--path", str(path)])
    assert forced.exit_code == 0

    shown = runner.invoke(cli, ["config", "show", "--path", str(path)])
    assert shown.exit_code == 0
    assert "[server]" in shown.output
    assert "[methods.anagram]" in shown.output


def test_call_rejects_unknown_type_tag() -> None:
    result = CliRunner().invoke(cli, ["call", "floor", "1", "-t", "float"])

    assert result.exit_code == 2


def test_call_without_server(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli,
        ["call", "floor", "3.7", "--socket", str(tmp_path / "nobody.sock")],
    )

    assert result.exit_code == 1
    assert "Cannot reach server" in result.output
