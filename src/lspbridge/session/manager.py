"""Session manager: the host's ``activate``/``deactivate`` entry points."""

from __future__ import annotations

import asyncio

from lspbridge.config.schema import Config
from lspbridge.endpoint import (
    LaunchConfigs,
    build_launch_configs,
    resolve_endpoint,
)
from lspbridge.errors import SessionError
from lspbridge.host import ActivationContext, Disposable, HostEventKind
from lspbridge.logging import get_logger
from lspbridge.selector import DocumentSelector, WatchPatterns
from lspbridge.session.router import HostMessageRouter
from lspbridge.session.session import Session, Started, StartResult
from lspbridge.transport.channel import ExitStatus
from lspbridge.watching.watcher import FileSystemWatcher

log = get_logger("session.manager")


class SessionManager:
    """Owns at most one Session per activation.

    Instances are independent: two managers never share a session, so tests
    can drive several side by side.

    Example:
        manager = SessionManager(load_config())
        result = await manager.activate(context)
        ...
        await manager.deactivate()
    """

    def __init__(self, config: Config | None = None) -> None:
        self._config = config or Config()
        self._session: Session | None = None
        self._router: HostMessageRouter | None = None
        self._watcher: FileSystemWatcher | None = None
        self._subscriptions: list[Disposable] = []
        self._context: ActivationContext | None = None
        self._launch_configs: LaunchConfigs | None = None

    @property
    def config(self) -> Config:
        return self._config

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def launch_configs(self) -> LaunchConfigs | None:
        """Both launch alternatives built by the last activation."""
        return self._launch_configs

    @property
    def watcher(self) -> FileSystemWatcher | None:
        return self._watcher

    async def activate(self, context: ActivationContext) -> StartResult:
        """Start the language server for ``context``.

        Returns:
            ``Started`` on success, otherwise the ``SpawnError`` or
            ``HandshakeError`` that was reported to the host.

        Raises:
            SessionError: If this manager already holds a live session.
        """
        if self._session is not None and not self._session.state.is_terminal:
            raise SessionError(
                f"Session already {self._session.state.value}; deactivate it first"
            )

        server = self._config.server
        endpoint = resolve_endpoint(
            context.install_root, server.path, server.diagnostic_env
        )
        self._launch_configs = build_launch_configs(endpoint)
        launch_config = self._launch_configs.select(context.launch_mode)
        log.debug("Server executable: %s", endpoint.executable)

        root = context.workspace.root
        selector = DocumentSelector.from_config(self._config.documents.selector)
        patterns = WatchPatterns(tuple(self._config.watch.patterns), root=root)

        self._router = HostMessageRouter(context)
        session = Session(
            launch_config,
            selector,
            patterns,
            client_name=server.client_id,
            root_uri=root.absolute().as_uri() if root is not None else None,
            handshake_timeout=self._config.handshake_timeout,
            shutdown=self._config.shutdown,
            inbound_handler=self._router,
        )
        self._session = session
        self._subscribe(context, session)

        log.info("Starting %s", server.client_name)
        try:
            result = await session.start()
        except asyncio.CancelledError:
            self._dispose_subscriptions()
            raise
        if not isinstance(result, Started):
            self._dispose_subscriptions()
            context.report_error(f"{server.client_name}: {result}")
            return result

        # Documents opened while the server was starting were dropped; announce them now
        for document in context.workspace.documents:
            session.did_open(document)

        self._start_watcher(context, patterns)
        return result

    def _subscribe(self, context: ActivationContext, session: Session) -> None:
        events = context.events
        self._subscriptions = [
            events.subscribe(HostEventKind.DOCUMENT_OPENED, session.did_open),
            events.subscribe(HostEventKind.DOCUMENT_CHANGED, session.did_change),
            events.subscribe(HostEventKind.DOCUMENT_SAVED, session.did_save),
            events.subscribe(HostEventKind.DOCUMENT_CLOSED, session.did_close),
            events.subscribe(HostEventKind.FILE_CHANGED, session.file_changed),
        ]
        context.subscriptions.extend(self._subscriptions)
        self._context = context

    def _dispose_subscriptions(self) -> None:
        for subscription in self._subscriptions:
            subscription.dispose()
            if self._context is not None and subscription in self._context.subscriptions:
                self._context.subscriptions.remove(subscription)
        self._subscriptions = []
        self._context = None

    def _start_watcher(self, context: ActivationContext, patterns: WatchPatterns) -> None:
        root = context.workspace.root
        watch = self._config.watch
        if root is None or not patterns.patterns or watch.poll_interval <= 0:
            return
        self._watcher = FileSystemWatcher(root, patterns, poll_interval=watch.poll_interval)
        self._watcher.start(
            lambda event: context.events.emit(HostEventKind.FILE_CHANGED, event)
        )

    async def deactivate(self) -> ExitStatus | None:
        """Stop the language server.

        A no-op returning None when there is no running session. Concurrent
        calls share one shutdown. When the returned status is available the
        server process is gone.
        """
        session = self._session
        if session is None or not session.stoppable:
            return None

        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            await watcher.stop()
        self._dispose_subscriptions()

        status = await session.stop()
        if status is not None and self._router is not None:
            self._router.reset()
        return status

