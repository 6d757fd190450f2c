"""LSP method names and payload models used by the session layer."""

from lspbridge.protocol import methods
from lspbridge.protocol.types import (
    ClientCapabilities,
    ClientInfo,
    DidChangeTextDocumentParams,
    DidChangeWatchedFilesParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    DocumentFilter,
    FileChangeType,
    FileEvent,
    FileSystemWatcher,
    InitializationOptions,
    InitializeParams,
    InitializeResult,
    LogMessageParams,
    MessageType,
    PublishDiagnosticsParams,
    ServerInfo,
    ShowMessageParams,
    TextDocumentContentChangeEvent,
    TextDocumentIdentifier,
    TextDocumentItem,
    VersionedTextDocumentIdentifier,
    WorkspaceFolder,
)

__all__ = [
    "ClientCapabilities",
    "ClientInfo",
    "DidChangeTextDocumentParams",
    "DidChangeWatchedFilesParams",
    "DidCloseTextDocumentParams",
    "DidOpenTextDocumentParams",
    "DidSaveTextDocumentParams",
    "DocumentFilter",
    "FileChangeType",
    "FileEvent",
    "FileSystemWatcher",
    "InitializationOptions",
    "InitializeParams",
    "InitializeResult",
    "LogMessageParams",
    "MessageType",
    "PublishDiagnosticsParams",
    "ServerInfo",
    "ShowMessageParams",
    "TextDocumentContentChangeEvent",
    "TextDocumentIdentifier",
    "TextDocumentItem",
    "VersionedTextDocumentIdentifier",
    "WorkspaceFolder",
    "methods",
]
