"""Configuration schema dataclasses for lspbridge.

All fields carry defaults so that a partial YAML file only needs to name
what it changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class DocumentFilterConfig:
    """One entry of the document selector."""

    scheme: str = "file"
    language: str = "html"


@dataclass
class ServerConfig:
    """How to find and launch the language server.

    Example config.yaml:
        server:
          path: ../target/debug/lserver
          diagnostic_env:
            LOG_VERBOSITY: trace
    """

    path: str = "../target/debug/lserver"  # Relative to the installation root
    diagnostic_env: dict[str, str] = field(
        default_factory=lambda: {"LOG_VERBOSITY": "trace"}
    )  # Overlay applied only in diagnostic mode
    client_id: str = "languageServerExample"
    client_name: str = "Language Server Example"


@dataclass
class DocumentsConfig:
    """Which open documents are forwarded to the server."""

    selector: list[DocumentFilterConfig] = field(
        default_factory=lambda: [DocumentFilterConfig()]
    )


@dataclass
class WatchConfig:
    """Filesystem paths whose changes are forwarded to the server."""

    patterns: list[str] = field(default_factory=lambda: ["**/.clientrc"])
    poll_interval: float = 1.0  # Seconds between polling cycles


@dataclass
class ShutdownConfig:
    """Shutdown timeout configuration."""

    shutdown_timeout: float = 2.0
    """Seconds to wait for the server to answer the shutdown request."""

    exit_timeout: float = 2.0
    """Seconds to wait for the process to exit after the exit notification."""

    interrupt_timeout: float = 1.0
    """Seconds to wait after sending interrupt (SIGINT/Ctrl+Break)."""

    terminate_timeout: float = 2.0
    """Seconds to wait after sending terminate (SIGTERM)."""


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR
    verbose: int | None = None  # 0..4, overrides level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    server: ServerConfig = field(default_factory=ServerConfig)
    documents: DocumentsConfig = field(default_factory=DocumentsConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    shutdown: ShutdownConfig = field(default_factory=ShutdownConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    handshake_timeout: float = 10.0  # Seconds allowed for initialize
