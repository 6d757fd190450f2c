"""Document selectors and filesystem watch patterns."""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

from lspbridge.config.schema import DocumentFilterConfig
from lspbridge.protocol.types import DocumentFilter as WireDocumentFilter
from lspbridge.protocol.types import FileSystemWatcher


def uri_scheme(uri: str) -> str:
    """Scheme of ``uri``; bare paths count as ``file``."""
    scheme = urlparse(uri).scheme
    # Single letters are Windows drive letters, not schemes
    if len(scheme) <= 1:
        return "file"
    return scheme


@dataclass(frozen=True)
class DocumentFilter:
    """One (scheme, language) pair; None matches anything."""

    scheme: str | None = "file"
    language: str | None = None

    def matches(self, uri: str, language_id: str) -> bool:
        if self.scheme is not None and uri_scheme(uri) != self.scheme:
            return False
        if self.language is not None and language_id != self.language:
            return False
        return True

    def to_wire(self) -> WireDocumentFilter:
        return WireDocumentFilter(scheme=self.scheme, language=self.language)


@dataclass(frozen=True)
class DocumentSelector:
    """Which open documents are forwarded to the server."""

    filters: tuple[DocumentFilter, ...]

    @classmethod
    def from_config(cls, entries: Iterable[DocumentFilterConfig]) -> DocumentSelector:
        return cls(tuple(DocumentFilter(e.scheme, e.language) for e in entries))

    def matches(self, uri: str, language_id: str) -> bool:
        return any(f.matches(uri, language_id) for f in self.filters)

    def to_wire(self) -> list[WireDocumentFilter]:
        return [f.to_wire() for f in self.filters]


@dataclass(frozen=True)
class WatchPatterns:
    """Glob patterns for filesystem changes forwarded to the server.

    ``**/`` matches zero or more leading directories, so ``**/.clientrc``
    matches ``.clientrc`` at the root as well as ``a/b/.clientrc``.
    """

    patterns: tuple[str, ...]
    root: Path | None = None

    def _candidate(self, path: str | Path) -> str:
        p = Path(path)
        if self.root is not None and p.is_absolute():
            try:
                p = p.relative_to(self.root)
            except ValueError:
                pass
        return PurePosixPath(p.as_posix()).as_posix()

    def matches(self, path: str | Path) -> bool:
        candidate = self._candidate(path)
        for pattern in self.patterns:
            if fnmatch.fnmatchcase(candidate, pattern):
                return True
            if pattern.startswith("**/") and fnmatch.fnmatchcase(candidate, pattern[3:]):
                return True
        return False

    def to_wire(self) -> list[FileSystemWatcher]:
        return [FileSystemWatcher(glob_pattern=p) for p in self.patterns]
