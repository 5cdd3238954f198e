"""Pytest fixtures for typedrpc tests."""

from __future__ import annotations

import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from hypothesis import Phase, Verbosity, settings

from typedrpc.dispatch import Dispatcher, build_default_registry
from typedrpc.ipc.server import RPCServer

_TEST_BASE_DIR = Path(tempfile.mkdtemp(prefix="typedrpc-tests-"))
os.environ["TYPEDRPC_CONFIG_DIR"] = str(_TEST_BASE_DIR / "config")
os.environ.pop("TYPEDRPC_SOCKET", None)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Generator


settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "dev",
    max_examples=50,
    deadline=500,
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip socket tests where Unix sockets are unavailable."""
    del config
    if sys.platform != "win32":
        return
    skip = pytest.mark.skip(reason="Unix sockets unavailable on Windows")
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(skip)


@pytest.fixture
def short_tmp() -> Generator[Path, None, None]:
    """Create a short temp directory for Unix socket paths (macOS 104-byte limit)."""
    d = tempfile.mkdtemp(prefix="r-", dir="/tmp")
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def socket_path(short_tmp: Path) -> str:
    return str(short_tmp / "rpc.sock")


@pytest.fixture
async def server(socket_path: str) -> AsyncGenerator[RPCServer]:
    """A running server with the built-in methods."""
    rpc_server = RPCServer(Dispatcher(build_default_registry()), socket_path=socket_path)
    await rpc_server.start()
    yield rpc_server
    await rpc_server.stop()
