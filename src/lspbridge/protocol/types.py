"""LSP payload types exchanged by the client core.

Only the messages this package generates or consumes are modeled; everything
else passes through as plain JSON.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LspModel(BaseModel):
    """Base model for LSP types with populate_by_name enabled."""

    model_config = ConfigDict(populate_by_name=True)

    def dump(self) -> dict[str, Any]:
        """Serialize with camelCase wire names, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class FileChangeType(IntEnum):
    CREATED = 1
    CHANGED = 2
    DELETED = 3


class MessageType(IntEnum):
    ERROR = 1
    WARNING = 2
    INFO = 3
    LOG = 4
    DEBUG = 5


class TextDocumentSyncKind(IntEnum):
    NONE = 0
    FULL = 1
    INCREMENTAL = 2


# === Initialization ===


class ClientInfo(LspModel):
    name: str
    version: str | None = None


class ServerInfo(LspModel):
    name: str
    version: str | None = None


class DocumentFilter(LspModel):
    """Wire form of a document selector entry."""

    scheme: str | None = None
    language: str | None = None
    pattern: str | None = None


class FileSystemWatcher(LspModel):
    glob_pattern: str = Field(alias="globPattern")


class SynchronizationCapabilities(LspModel):
    dynamic_registration: bool = Field(default=False, alias="dynamicRegistration")
    will_save: bool = Field(default=False, alias="willSave")
    did_save: bool = Field(default=True, alias="didSave")


class TextDocumentClientCapabilities(LspModel):
    synchronization: SynchronizationCapabilities = Field(
        default_factory=SynchronizationCapabilities
    )
    publish_diagnostics: dict[str, Any] = Field(
        default_factory=dict, alias="publishDiagnostics"
    )


class DidChangeWatchedFilesCapabilities(LspModel):
    dynamic_registration: bool = Field(default=False, alias="dynamicRegistration")


class WorkspaceClientCapabilities(LspModel):
    configuration: bool = False
    did_change_watched_files: DidChangeWatchedFilesCapabilities = Field(
        default_factory=DidChangeWatchedFilesCapabilities, alias="didChangeWatchedFiles"
    )
    workspace_folders: bool = Field(default=True, alias="workspaceFolders")


class ClientCapabilities(LspModel):
    workspace: WorkspaceClientCapabilities = Field(default_factory=WorkspaceClientCapabilities)
    text_document: TextDocumentClientCapabilities = Field(
        default_factory=TextDocumentClientCapabilities, alias="textDocument"
    )


class WorkspaceFolder(LspModel):
    uri: str
    name: str


class InitializationOptions(LspModel):
    """Client configuration the server receives at startup."""

    document_selector: list[DocumentFilter] = Field(alias="documentSelector")
    file_watchers: list[FileSystemWatcher] = Field(
        default_factory=list, alias="fileWatchers"
    )


class InitializeParams(LspModel):
    process_id: int | None = Field(alias="processId")
    client_info: ClientInfo | None = Field(default=None, alias="clientInfo")
    root_uri: str | None = Field(default=None, alias="rootUri")
    capabilities: ClientCapabilities = Field(default_factory=ClientCapabilities)
    initialization_options: InitializationOptions | None = Field(
        default=None, alias="initializationOptions"
    )
    workspace_folders: list[WorkspaceFolder] | None = Field(
        default=None, alias="workspaceFolders"
    )
    trace: str | None = None


class InitializeResult(LspModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    capabilities: dict[str, Any] = Field(default_factory=dict)
    server_info: ServerInfo | None = Field(default=None, alias="serverInfo")


# === Document synchronization ===


class TextDocumentItem(LspModel):
    uri: str
    language_id: str = Field(alias="languageId")
    version: int
    text: str


class TextDocumentIdentifier(LspModel):
    uri: str


class VersionedTextDocumentIdentifier(LspModel):
    uri: str
    version: int


class TextDocumentContentChangeEvent(LspModel):
    """Full-document change; the client always sends the whole text."""

    text: str


class DidOpenTextDocumentParams(LspModel):
    text_document: TextDocumentItem = Field(alias="textDocument")


class DidChangeTextDocumentParams(LspModel):
    text_document: VersionedTextDocumentIdentifier = Field(alias="textDocument")
    content_changes: list[TextDocumentContentChangeEvent] = Field(alias="contentChanges")


class DidCloseTextDocumentParams(LspModel):
    text_document: TextDocumentIdentifier = Field(alias="textDocument")


class DidSaveTextDocumentParams(LspModel):
    text_document: TextDocumentIdentifier = Field(alias="textDocument")
    text: str | None = None


class FileEvent(LspModel):
    uri: str
    type: FileChangeType


class DidChangeWatchedFilesParams(LspModel):
    changes: list[FileEvent]


# === Server -> client ===


class PublishDiagnosticsParams(LspModel):
    uri: str
    version: int | None = None
    diagnostics: list[dict[str, Any]] = Field(default_factory=list)


class LogMessageParams(LspModel):
    type: MessageType
    message: str


class ShowMessageParams(LspModel):
    type: MessageType
    message: str
