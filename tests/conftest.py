"""Root pytest configuration for all tests."""

from __future__ import annotations

import asyncio
import json
import os
import stat
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from lspbridge.config.schema import Config, ServerConfig, ShutdownConfig, WatchConfig

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)

FAKE_SERVER = Path(__file__).parent / "fixtures" / "fake_lsp_server.py"
SERVER_RELATIVE_PATH = "bin/lserver"


@dataclass
class FakeServer:
    """Handle on one scripted server installation."""

    install_root: Path
    executable: Path
    record_path: Path

    def records(self) -> list[dict[str, Any]]:
        if not self.record_path.exists():
            return []
        lines = self.record_path.read_text(encoding="utf-8").splitlines()
        return [json.loads(line) for line in lines if line.strip()]

    def methods(self) -> list[str]:
        return [r["method"] for r in self.records() if "method" in r]

    def messages(self, method: str) -> list[dict[str, Any]]:
        return [r for r in self.records() if r.get("method") == method]

    def start_record(self) -> dict[str, Any]:
        return next(r for r in self.records() if r.get("event") == "start")

    async def wait_for(
        self, predicate: Callable[[FakeServer], bool], timeout: float = 5.0
    ) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate(self):
            if loop.time() > deadline:
                raise AssertionError(f"Timed out; server saw {self.methods()}")
            await asyncio.sleep(0.02)


@pytest.fixture
def fake_server(tmp_path: Path) -> Callable[..., FakeServer]:
    """Factory writing an executable wrapper around the scripted server."""
    if sys.platform == "win32":
        pytest.skip("fake server wrapper is a POSIX shell script")

    def make(*flags: str) -> FakeServer:
        install_root = tmp_path / "install"
        executable = install_root / SERVER_RELATIVE_PATH
        executable.parent.mkdir(parents=True, exist_ok=True)
        record_path = tmp_path / "server-record.jsonl"
        executable.write_text(
            "#!/bin/sh\n"
            f"export FAKE_LSP_MODE='{','.join(flags)}'\n"
            f"export FAKE_LSP_RECORD='{record_path}'\n"
            f"exec '{sys.executable}' '{FAKE_SERVER}' \"$@\"\n",
            encoding="utf-8",
        )
        executable.chmod(executable.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return FakeServer(install_root, executable, record_path)

    return make


@pytest.fixture
def fast_config() -> Config:
    """Config pointing at the fake server with short timeouts."""
    return Config(
        server=ServerConfig(path=SERVER_RELATIVE_PATH),
        watch=WatchConfig(poll_interval=0),
        shutdown=ShutdownConfig(
            shutdown_timeout=1.0,
            exit_timeout=1.0,
            interrupt_timeout=0.5,
            terminate_timeout=0.5,
        ),
        handshake_timeout=3.0,
    )


def _process_exists(pid: int) -> bool:
    """True if a process with ``pid`` is still alive (not reaped)."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


@pytest.fixture
def process_exists() -> Callable[[int], bool]:
    return _process_exists
