"""Host-side surface the session manager plugs into.

The editor is modeled by an ``ActivationContext``: where the integration is
installed, how the editor was launched, the event bus it raises document and
filesystem events on, where errors are reported and where diagnostics from
the server end up.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from lspbridge.endpoint import LaunchMode
from lspbridge.logging import get_logger
from lspbridge.protocol.types import FileChangeType

log = get_logger("host")


class HostEventKind(Enum):
    DOCUMENT_OPENED = "document_opened"
    DOCUMENT_CHANGED = "document_changed"
    DOCUMENT_CLOSED = "document_closed"
    DOCUMENT_SAVED = "document_saved"
    FILE_CHANGED = "file_changed"


@dataclass
class TextDocument:
    """An open document as the host sees it."""

    uri: str
    language_id: str
    text: str
    version: int = 1


@dataclass
class FileChangeEvent:
    """A filesystem change the host observed."""

    path: Path
    change_type: FileChangeType
    timestamp: float = field(default_factory=time.time)

    @property
    def uri(self) -> str:
        return self.path.absolute().as_uri()


class Disposable:
    """Handle returned by a subscription; ``dispose()`` undoes it once."""

    def __init__(self, on_dispose: Callable[[], None]) -> None:
        self._on_dispose: Callable[[], None] | None = on_dispose

    def dispose(self) -> None:
        if self._on_dispose is not None:
            callback, self._on_dispose = self._on_dispose, None
            callback()

    @property
    def disposed(self) -> bool:
        return self._on_dispose is None


HostEventHandler = Callable[[Any], None]


class HostEvents:
    """Synchronous publish/subscribe bus for host events."""

    def __init__(self) -> None:
        self._handlers: dict[HostEventKind, list[HostEventHandler]] = {
            kind: [] for kind in HostEventKind
        }

    def subscribe(self, kind: HostEventKind, handler: HostEventHandler) -> Disposable:
        self._handlers[kind].append(handler)

        def remove() -> None:
            if handler in self._handlers[kind]:
                self._handlers[kind].remove(handler)

        return Disposable(remove)

    def emit(self, kind: HostEventKind, payload: Any) -> None:
        for handler in list(self._handlers[kind]):
            try:
                handler(payload)
            except Exception:
                log.exception("Error in %s handler", kind.value)

    def handler_count(self, kind: HostEventKind) -> int:
        return len(self._handlers[kind])


class Workspace:
    """Tracks open documents and raises their lifecycle events."""

    def __init__(self, root: Path | None = None, events: HostEvents | None = None) -> None:
        self.root = root
        self.events = events or HostEvents()
        self._documents: dict[str, TextDocument] = {}

    @property
    def documents(self) -> list[TextDocument]:
        return list(self._documents.values())

    def get(self, uri: str) -> TextDocument | None:
        return self._documents.get(uri)

    def open_document(self, uri: str, language_id: str, text: str) -> TextDocument:
        document = TextDocument(uri=uri, language_id=language_id, text=text)
        self._documents[uri] = document
        self.events.emit(HostEventKind.DOCUMENT_OPENED, document)
        return document

    def change_document(self, uri: str, text: str) -> TextDocument:
        document = self._require(uri)
        document.text = text
        document.version += 1
        self.events.emit(HostEventKind.DOCUMENT_CHANGED, document)
        return document

    def save_document(self, uri: str) -> TextDocument:
        document = self._require(uri)
        self.events.emit(HostEventKind.DOCUMENT_SAVED, document)
        return document

    def close_document(self, uri: str) -> TextDocument:
        document = self._require(uri)
        del self._documents[uri]
        self.events.emit(HostEventKind.DOCUMENT_CLOSED, document)
        return document

    def file_changed(self, path: str | Path, change_type: FileChangeType) -> None:
        self.events.emit(HostEventKind.FILE_CHANGED, FileChangeEvent(Path(path), change_type))

    def _require(self, uri: str) -> TextDocument:
        document = self._documents.get(uri)
        if document is None:
            raise KeyError(f"Document not open: {uri}")
        return document


class DiagnosticCollection:
    """Latest diagnostics per document URI, as published by the server."""

    def __init__(self) -> None:
        self._entries: dict[str, list[dict[str, Any]]] = {}

    def set(self, uri: str, diagnostics: list[dict[str, Any]]) -> None:
        if diagnostics:
            self._entries[uri] = list(diagnostics)
        else:
            self._entries.pop(uri, None)

    def get(self, uri: str) -> list[dict[str, Any]]:
        return list(self._entries.get(uri, []))

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, uri: object) -> bool:
        return uri in self._entries


def _log_error(message: str) -> None:
    log.error("%s", message)


@dataclass
class ActivationContext:
    """What the host hands to ``activate()``."""

    install_root: Path
    workspace: Workspace = field(default_factory=Workspace)
    launch_mode: LaunchMode = LaunchMode.NORMAL
    diagnostics: DiagnosticCollection = field(default_factory=DiagnosticCollection)
    error_reporter: Callable[[str], None] = _log_error
    subscriptions: list[Disposable] = field(default_factory=list)

    @property
    def events(self) -> HostEvents:
        return self.workspace.events

    def as_absolute_path(self, relative_path: str | Path) -> Path:
        return Path(self.install_root) / relative_path

    def report_error(self, message: str) -> None:
        self.error_reporter(message)

    def dispose(self) -> None:
        """Dispose every subscription registered against this context."""
        while self.subscriptions:
            self.subscriptions.pop().dispose()
