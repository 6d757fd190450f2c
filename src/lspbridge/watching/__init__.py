"""Filesystem watching for the forwarded watch patterns."""

from lspbridge.watching.watcher import FileSystemWatcher

__all__ = ["FileSystemWatcher"]
