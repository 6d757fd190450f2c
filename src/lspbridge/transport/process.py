"""Language server process supervision: spawn, stderr drain, escalating stop."""

from __future__ import annotations

import asyncio
import os
import platform
import signal
from pathlib import Path

from lspbridge.endpoint import LaunchConfig
from lspbridge.errors import SpawnError, SpawnErrorKind
from lspbridge.logging import get_logger

log = get_logger("transport.process")
server_log = get_logger("server")

# Windows-specific subprocess creation flags
_WINDOWS = platform.system() == "Windows"
_CREATE_NEW_PROCESS_GROUP = 0x00000200 if _WINDOWS else 0

# Lines longer than this are split when draining stderr
_STDERR_LIMIT = 1024 * 1024


def _send_interrupt(process: asyncio.subprocess.Process) -> None:
    """Send interrupt signal to process (Ctrl-Break on Windows, SIGINT on Unix)."""
    try:
        if _WINDOWS:
            os.kill(process.pid, signal.CTRL_BREAK_EVENT)  # type: ignore[attr-defined]
        else:
            os.kill(process.pid, signal.SIGINT)
    except ProcessLookupError:
        pass
    except OSError:
        process.terminate()


def _send_terminate(process: asyncio.subprocess.Process) -> None:
    """Send terminate signal to process (SIGTERM on Unix, TerminateProcess on Windows)."""
    try:
        process.terminate()
    except ProcessLookupError:
        pass


def _check_executable(executable: Path) -> None:
    if not executable.exists():
        raise SpawnError(SpawnErrorKind.NOT_FOUND, str(executable))
    if executable.is_dir():
        raise SpawnError(SpawnErrorKind.PERMISSION_DENIED, str(executable), "is a directory")
    if not _WINDOWS and not os.access(executable, os.X_OK):
        raise SpawnError(SpawnErrorKind.PERMISSION_DENIED, str(executable), "not executable")


class ServerProcess:
    """A running language server child process.

    Owns the subprocess and the task that drains its stderr into the
    ``lspbridge.server`` logger. The stdin/stdout pipes are handed to a
    Channel.
    """

    def __init__(self, process: asyncio.subprocess.Process, config: LaunchConfig) -> None:
        self._process = process
        self._config = config
        self._stderr_task: asyncio.Task[None] | None = None
        if process.stderr is not None:
            self._stderr_task = asyncio.create_task(self._drain_stderr(process.stderr))

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def is_running(self) -> bool:
        return self._process.returncode is None

    @property
    def config(self) -> LaunchConfig:
        return self._config

    @property
    def stdin(self) -> asyncio.StreamWriter:
        assert self._process.stdin is not None
        return self._process.stdin

    @property
    def stdout(self) -> asyncio.StreamReader:
        assert self._process.stdout is not None
        return self._process.stdout

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait for the process to exit.

        Returns:
            True if the process exited, False if ``timeout`` elapsed first.
        """
        try:
            await asyncio.wait_for(self._process.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def terminate(
        self,
        interrupt_timeout: float = 1.0,
        terminate_timeout: float = 2.0,
    ) -> None:
        """Stop the process: interrupt -> terminate -> kill.

        Args:
            interrupt_timeout: Seconds to wait after sending interrupt signal
            terminate_timeout: Seconds to wait after sending terminate signal
        """
        if self._process.returncode is None:
            log.debug("Interrupting server pid %d", self.pid)
            _send_interrupt(self._process)
            if not await self.wait(interrupt_timeout):
                log.debug("Terminating server pid %d", self.pid)
                _send_terminate(self._process)
                if not await self.wait(terminate_timeout):
                    log.warning("Killing server pid %d", self.pid)
                    try:
                        self._process.kill()
                    except ProcessLookupError:
                        pass
                    await self._process.wait()
        await self._finish_stderr()

    async def _finish_stderr(self) -> None:
        if self._stderr_task is None:
            return
        task, self._stderr_task = self._stderr_task, None
        try:
            await asyncio.wait_for(task, timeout=1.0)
        except asyncio.TimeoutError:
            task.cancel()

    async def close(self) -> None:
        """Release pipes once the process has exited."""
        await self._finish_stderr()
        # Closing an already-closed pipe transport is harmless
        if self._process.stdin is not None:
            self._process.stdin.close()

    async def _drain_stderr(self, stream: asyncio.StreamReader) -> None:
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                # Line exceeded the reader limit; take what is buffered
                line = await stream.read(_STDERR_LIMIT)
            if not line:
                return
            server_log.debug("%s", line.decode("utf-8", errors="replace").rstrip())


async def spawn(config: LaunchConfig) -> ServerProcess:
    """Create the server process described by ``config``.

    The environment is the host's environment plus the config's overlay.

    Raises:
        SpawnError: ``NOT_FOUND`` if the executable is missing,
            ``PERMISSION_DENIED`` if it cannot be executed.
    """
    _check_executable(config.executable)

    env = dict(os.environ)
    env.update(config.env)

    log.info("Spawning language server: %s (%s mode)", config.executable, config.mode.value)
    try:
        process = await asyncio.create_subprocess_exec(
            *config.command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
            cwd=str(config.cwd) if config.cwd is not None else None,
            creationflags=_CREATE_NEW_PROCESS_GROUP,
        )
    except FileNotFoundError as e:
        raise SpawnError(SpawnErrorKind.NOT_FOUND, str(config.executable), str(e)) from e
    except PermissionError as e:
        raise SpawnError(SpawnErrorKind.PERMISSION_DENIED, str(config.executable), str(e)) from e
    except OSError as e:
        raise SpawnError(SpawnErrorKind.OTHER, str(config.executable), str(e)) from e

    log.debug("Server started with pid %d", process.pid)
    return ServerProcess(process, config)
