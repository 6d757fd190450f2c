"""lspbridge: launch and supervise an external language server for an editor host."""

__version__ = "0.1.0"

# Public API
from lspbridge.config import Config, load_config
from lspbridge.endpoint import (
    LaunchConfig,
    LaunchMode,
    ServerEndpoint,
    build_launch_config,
    build_launch_configs,
    resolve_endpoint,
)
from lspbridge.errors import (
    ChannelClosedError,
    HandshakeError,
    LspBridgeError,
    ResponseError,
    SessionError,
    SessionStateError,
    ShutdownTimeout,
    SpawnError,
    SpawnErrorKind,
)
from lspbridge.host import (
    ActivationContext,
    DiagnosticCollection,
    FileChangeEvent,
    HostEventKind,
    HostEvents,
    TextDocument,
    Workspace,
)
from lspbridge.selector import DocumentFilter, DocumentSelector, WatchPatterns
from lspbridge.session import Session, SessionManager, SessionState, Started, StartResult
from lspbridge.transport import Channel, ExitStatus

__all__ = [
    # Main entry points
    "SessionManager",
    "ActivationContext",
    # Config
    "Config",
    "load_config",
    # Endpoint
    "LaunchConfig",
    "LaunchMode",
    "ServerEndpoint",
    "build_launch_config",
    "build_launch_configs",
    "resolve_endpoint",
    # Host
    "DiagnosticCollection",
    "FileChangeEvent",
    "HostEventKind",
    "HostEvents",
    "TextDocument",
    "Workspace",
    # Selection
    "DocumentFilter",
    "DocumentSelector",
    "WatchPatterns",
    # Session
    "Session",
    "SessionState",
    "StartResult",
    "Started",
    # Transport
    "Channel",
    "ExitStatus",
    # Errors
    "ChannelClosedError",
    "HandshakeError",
    "LspBridgeError",
    "ResponseError",
    "SessionError",
    "SessionStateError",
    "ShutdownTimeout",
    "SpawnError",
    "SpawnErrorKind",
]
