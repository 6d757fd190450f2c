"""Polling filesystem watcher for glob patterns under a workspace root.

Polling is used instead of native notifications for cross-platform
reliability. Each cycle walks the root, keeps the files matching the watch
patterns and diffs their (mtime, size) against the previous cycle.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from lspbridge.host import FileChangeEvent
from lspbridge.logging import get_logger
from lspbridge.protocol.types import FileChangeType
from lspbridge.selector import WatchPatterns

log = get_logger("watching")

DEFAULT_IGNORED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv", "target"})


@dataclass
class _Stat:
    mtime: float
    size: int


class FileSystemWatcher:
    """Reports created/changed/deleted files matching ``patterns``.

    Example:
        watcher = FileSystemWatcher(Path("/project"), patterns, poll_interval=1.0)
        watcher.start(lambda event: print(event.path, event.change_type))
        ...
        await watcher.stop()
    """

    def __init__(
        self,
        root: Path,
        patterns: WatchPatterns,
        poll_interval: float = 1.0,
        ignored_dirs: frozenset[str] = DEFAULT_IGNORED_DIRS,
    ) -> None:
        self._root = root
        self._patterns = patterns
        self._poll_interval = max(0.05, poll_interval)
        self._ignored_dirs = ignored_dirs
        self._snapshot: dict[Path, _Stat] = {}
        self._task: asyncio.Task[None] | None = None

    @property
    def root(self) -> Path:
        return self._root

    @property
    def watched_count(self) -> int:
        return len(self._snapshot)

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _scan(self) -> dict[Path, _Stat]:
        found: dict[Path, _Stat] = {}
        for dirpath, dirnames, filenames in os.walk(self._root):
            dirnames[:] = [d for d in dirnames if d not in self._ignored_dirs]
            for name in filenames:
                path = Path(dirpath) / name
                if not self._patterns.matches(path):
                    continue
                try:
                    stat = path.stat()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    log.warning("Error checking %s: %s", path, e)
                    continue
                found[path] = _Stat(stat.st_mtime, stat.st_size)
        return found

    def prime(self) -> None:
        """Record the current state without reporting anything."""
        self._snapshot = self._scan()

    def check_changes(self) -> list[FileChangeEvent]:
        """Diff the filesystem against the last snapshot."""
        current = self._scan()
        events: list[FileChangeEvent] = []

        for path, stat in current.items():
            previous = self._snapshot.get(path)
            if previous is None:
                events.append(FileChangeEvent(path, FileChangeType.CREATED))
            elif previous != stat:
                events.append(FileChangeEvent(path, FileChangeType.CHANGED))
        for path in self._snapshot.keys() - current.keys():
            events.append(FileChangeEvent(path, FileChangeType.DELETED))

        self._snapshot = current
        return events

    def start(self, callback: Callable[[FileChangeEvent], None]) -> None:
        """Prime the snapshot and start the polling task."""
        if self.is_running():
            log.warning("FileSystemWatcher already running")
            return
        self.prime()
        self._task = asyncio.create_task(self._run(callback))
        log.debug(
            "Watching %s for %s (interval: %.2fs)",
            self._root,
            ", ".join(self._patterns.patterns),
            self._poll_interval,
        )

    async def _run(self, callback: Callable[[FileChangeEvent], None]) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            for event in self.check_changes():
                try:
                    callback(event)
                except Exception as e:
                    log.error("Error in file change callback: %s", e)

    async def stop(self) -> None:
        """Stop the polling task and wait for it to finish."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.debug("FileSystemWatcher stopped")
