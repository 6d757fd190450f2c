"""A single live binding between the host and one language server process."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import ValidationError

from lspbridge import __version__
from lspbridge.config.schema import ShutdownConfig
from lspbridge.endpoint import LaunchConfig, LaunchMode
from lspbridge.errors import (
    ChannelClosedError,
    HandshakeError,
    ResponseError,
    SpawnError,
)
from lspbridge.host import FileChangeEvent, TextDocument
from lspbridge.logging import VERBOSE, get_logger
from lspbridge.protocol import methods
from lspbridge.protocol.types import (
    ClientCapabilities,
    ClientInfo,
    DidChangeTextDocumentParams,
    DidChangeWatchedFilesParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    FileEvent,
    InitializationOptions,
    InitializeParams,
    InitializeResult,
    ServerInfo,
    TextDocumentContentChangeEvent,
    TextDocumentIdentifier,
    TextDocumentItem,
    VersionedTextDocumentIdentifier,
    WorkspaceFolder,
)
from lspbridge.selector import DocumentSelector, WatchPatterns
from lspbridge.session.state import SessionState, StateMachine
from lspbridge.transport.channel import Channel, ExitStatus
from lspbridge.transport.messages import INTERNAL_ERROR, JsonRpcMessage
from lspbridge.transport.process import spawn

log = get_logger("session")

InboundHandler = Callable[[JsonRpcMessage], Awaitable[Any]]


@dataclass
class Started:
    """The server is up and the handshake completed."""

    pid: int
    server_info: ServerInfo | None = None
    capabilities: dict[str, Any] = field(default_factory=dict)


StartResult = Union[Started, SpawnError, HandshakeError]


async def _ignore_inbound(message: JsonRpcMessage) -> Any:
    return None


class Session:
    """Lifecycle of one server process and its channel.

    Host events are offered through ``did_open``/``did_change``/``did_close``/
    ``did_save``/``file_changed``; they are forwarded only while the session
    is RUNNING and only if they match the document selector or the watch
    patterns. Forwarded notifications go through a single writer task so the
    server receives them in the order they were offered.
    """

    def __init__(
        self,
        launch_config: LaunchConfig,
        selector: DocumentSelector,
        watch_patterns: WatchPatterns,
        *,
        client_name: str = "lspbridge",
        root_uri: str | None = None,
        handshake_timeout: float = 10.0,
        shutdown: ShutdownConfig | None = None,
        inbound_handler: InboundHandler | None = None,
    ) -> None:
        self.launch_config = launch_config
        self.selector = selector
        self.watch_patterns = watch_patterns
        self._client_name = client_name
        self._root_uri = root_uri
        self._handshake_timeout = handshake_timeout
        self._shutdown = shutdown or ShutdownConfig()
        self._inbound_handler = inbound_handler or _ignore_inbound

        self._machine = StateMachine()
        self._channel: Channel | None = None
        self._started: Started | None = None
        self._synced: set[str] = set()
        self._outbound: asyncio.Queue[JsonRpcMessage] = asyncio.Queue()
        self._writer_task: asyncio.Task[None] | None = None
        self._dispatch_task: asyncio.Task[None] | None = None
        self._stop_task: asyncio.Task[ExitStatus] | None = None

    # -- state ---------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._machine.state

    @property
    def history(self) -> list[SessionState]:
        return list(self._machine.history)

    @property
    def channel(self) -> Channel | None:
        """The live channel; None unless RUNNING."""
        if self.state is SessionState.RUNNING:
            return self._channel
        return None

    @property
    def pid(self) -> int | None:
        return self._channel.process.pid if self._channel else None

    @property
    def process_running(self) -> bool:
        return self._channel is not None and self._channel.process.is_running

    @property
    def server_info(self) -> ServerInfo | None:
        return self._started.server_info if self._started else None

    @property
    def server_capabilities(self) -> dict[str, Any]:
        return dict(self._started.capabilities) if self._started else {}

    @property
    def stoppable(self) -> bool:
        """True while RUNNING or once a stop has begun."""
        return self._stop_task is not None or self.state is SessionState.RUNNING

    @property
    def synced_documents(self) -> set[str]:
        return set(self._synced)

    def _advance(self, target: SessionState) -> None:
        previous = self._machine.advance(target)
        log.log(VERBOSE, "Session %s -> %s", previous.value, target.value)

    # -- startup -------------------------------------------------------

    def _initialize_params(self) -> InitializeParams:
        folders = None
        if self._root_uri:
            name = self._root_uri.rstrip("/").rsplit("/", 1)[-1] or self._root_uri
            folders = [WorkspaceFolder(uri=self._root_uri, name=name)]
        return InitializeParams(
            process_id=os.getpid(),
            client_info=ClientInfo(name=self._client_name, version=__version__),
            root_uri=self._root_uri,
            capabilities=ClientCapabilities(),
            initialization_options=InitializationOptions(
                document_selector=self.selector.to_wire(),
                file_watchers=self.watch_patterns.to_wire(),
            ),
            workspace_folders=folders,
            trace="verbose" if self.launch_config.mode is LaunchMode.DIAGNOSTIC else "off",
        )

    async def start(self) -> StartResult:
        """Spawn the server and run the initialize handshake.

        Spawn and handshake failures are returned, not raised; the session is
        FAILED afterwards and no process is left behind. Cancelling the
        awaiting task also fails the session and tears down the process.
        """
        self._advance(SessionState.STARTING)

        try:
            process = await spawn(self.launch_config)
        except SpawnError as e:
            log.error("%s", e)
            self._advance(SessionState.FAILED)
            return e
        except asyncio.CancelledError:
            # asyncio reaps a child whose creation was interrupted
            log.warning("Session startup cancelled")
            self._advance(SessionState.FAILED)
            raise

        self._channel = Channel(process)
        try:
            result = await self._handshake(self._channel)
        except HandshakeError as e:
            log.error("%s", e)
            await self._abort()
            return e
        except asyncio.CancelledError:
            log.warning("Session startup cancelled")
            await asyncio.shield(self._abort())
            raise

        self._started = Started(
            pid=process.pid,
            server_info=result.server_info,
            capabilities=result.capabilities,
        )
        self._advance(SessionState.RUNNING)
        self._writer_task = asyncio.create_task(self._write_loop(self._channel))
        self._dispatch_task = asyncio.create_task(self._dispatch_loop(self._channel))

        if result.server_info is not None:
            log.info(
                "Language server ready: %s %s",
                result.server_info.name,
                result.server_info.version or "",
            )
        else:
            log.info("Language server ready (pid %d)", process.pid)
        return self._started

    async def _handshake(self, channel: Channel) -> InitializeResult:
        params = self._initialize_params().dump()
        try:
            raw = await channel.request(
                methods.INITIALIZE, params, timeout=self._handshake_timeout
            )
        except asyncio.TimeoutError as e:
            raise HandshakeError(
                f"Server did not answer initialize within {self._handshake_timeout}s"
            ) from e
        except ResponseError as e:
            raise HandshakeError(f"Server rejected initialize: {e}") from e
        except ChannelClosedError as e:
            raise HandshakeError(f"Server exited during initialize: {e}") from e

        try:
            result = InitializeResult.model_validate(raw or {})
        except ValidationError as e:
            raise HandshakeError(f"Malformed initialize result: {e}") from e

        try:
            await channel.notify(methods.INITIALIZED, {})
        except ChannelClosedError as e:
            raise HandshakeError(f"Server exited during initialize: {e}") from e
        return result

    async def _abort(self) -> None:
        self._advance(SessionState.FAILED)
        if self._channel is not None:
            await self._close_channel(self._channel)

    # -- forwarding ----------------------------------------------------

    def _accepting(self) -> bool:
        return self.state is SessionState.RUNNING and self._stop_task is None

    def _enqueue(self, method: str, params: dict[str, Any]) -> None:
        log.log(VERBOSE, "Forwarding %s", method)
        self._outbound.put_nowait(JsonRpcMessage.notification(method, params))

    def _in_scope(self, document: TextDocument) -> bool:
        return self.selector.matches(document.uri, document.language_id)

    def did_open(self, document: TextDocument) -> bool:
        """Announce an opened document. Returns True if it was forwarded."""
        if not self._accepting() or not self._in_scope(document):
            return False
        if document.uri in self._synced:
            return False
        self._synced.add(document.uri)
        params = DidOpenTextDocumentParams(
            text_document=TextDocumentItem(
                uri=document.uri,
                language_id=document.language_id,
                version=document.version,
                text=document.text,
            )
        )
        self._enqueue(methods.DID_OPEN, params.dump())
        return True

    def did_change(self, document: TextDocument) -> bool:
        if not self._accepting() or document.uri not in self._synced:
            return False
        params = DidChangeTextDocumentParams(
            text_document=VersionedTextDocumentIdentifier(
                uri=document.uri, version=document.version
            ),
            content_changes=[TextDocumentContentChangeEvent(text=document.text)],
        )
        self._enqueue(methods.DID_CHANGE, params.dump())
        return True

    def did_save(self, document: TextDocument) -> bool:
        if not self._accepting() or document.uri not in self._synced:
            return False
        params = DidSaveTextDocumentParams(
            text_document=TextDocumentIdentifier(uri=document.uri)
        )
        self._enqueue(methods.DID_SAVE, params.dump())
        return True

    def did_close(self, document: TextDocument) -> bool:
        if not self._accepting() or document.uri not in self._synced:
            return False
        self._synced.discard(document.uri)
        params = DidCloseTextDocumentParams(
            text_document=TextDocumentIdentifier(uri=document.uri)
        )
        self._enqueue(methods.DID_CLOSE, params.dump())
        return True

    def file_changed(self, event: FileChangeEvent) -> bool:
        """Forward a filesystem change if it matches the watch patterns."""
        if not self._accepting() or not self.watch_patterns.matches(event.path):
            return False
        params = DidChangeWatchedFilesParams(
            changes=[FileEvent(uri=event.uri, type=event.change_type)]
        )
        self._enqueue(methods.DID_CHANGE_WATCHED_FILES, params.dump())
        return True

    async def flush(self) -> None:
        """Wait until every forwarded notification has been written."""
        if self._writer_task is None or self._writer_task.done():
            return
        await self._outbound.join()

    async def _write_loop(self, channel: Channel) -> None:
        while True:
            message = await self._outbound.get()
            try:
                await channel.send(message)
            except ChannelClosedError as e:
                log.warning("Dropped %s: %s", message.method, e)
            finally:
                self._outbound.task_done()

    # -- inbound -------------------------------------------------------

    async def _dispatch_loop(self, channel: Channel) -> None:
        while True:
            message = await channel.receive()
            if message is None:
                break
            await self._handle_inbound(channel, message)

        if self._stop_task is None:
            returncode = channel.process.returncode
            log.warning("Language server closed the connection (returncode=%s)", returncode)
            self._begin_stop()

    async def _handle_inbound(self, channel: Channel, message: JsonRpcMessage) -> None:
        try:
            result = await self._inbound_handler(message)
        except ResponseError as e:
            reply = JsonRpcMessage.error_response(message.id, e.code, e.message, e.data)
        except Exception as e:
            log.exception("Error handling %s", message.method)
            reply = JsonRpcMessage.error_response(message.id, INTERNAL_ERROR, str(e))
        else:
            reply = JsonRpcMessage.response(message.id, result)

        if not message.is_request():
            return
        try:
            await channel.send(reply)
        except ChannelClosedError as e:
            log.debug("Could not answer %s: %s", message.method, e)

    # -- shutdown ------------------------------------------------------

    def _begin_stop(self) -> asyncio.Task[ExitStatus]:
        if self._stop_task is None:
            self._stop_task = asyncio.create_task(self._stop())
        return self._stop_task

    async def stop(self) -> ExitStatus | None:
        """Shut the server down; a no-op unless RUNNING.

        Concurrent and repeated calls share the first call's shutdown and
        return its result.
        """
        if not self.stoppable:
            return None
        return await asyncio.shield(self._begin_stop())

    async def _stop(self) -> ExitStatus:
        assert self._channel is not None
        channel = self._channel
        timeout = self._shutdown.shutdown_timeout

        if channel.is_open:
            try:
                await asyncio.wait_for(self._outbound.join(), timeout=timeout)
            except asyncio.TimeoutError:
                log.warning("Outbound queue not drained before shutdown")
            try:
                await channel.request(methods.SHUTDOWN, None, timeout=timeout)
            except asyncio.TimeoutError:
                log.warning("Server did not answer shutdown within %ss", timeout)
            except (ResponseError, ChannelClosedError) as e:
                log.warning("Shutdown request failed: %s", e)

        self._advance(SessionState.STOPPING)
        await self._cancel_tasks()

        if channel.is_open:
            try:
                await channel.notify(methods.EXIT)
            except ChannelClosedError as e:
                log.debug("Exit notification not delivered: %s", e)

        status = await self._close_channel(channel)
        self._synced.clear()
        self._advance(SessionState.STOPPED)
        log.info("Language server stopped (%s)", status.value)
        return status

    async def _cancel_tasks(self) -> None:
        current = asyncio.current_task()
        for task in (self._writer_task, self._dispatch_task):
            if task is None or task is current or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _close_channel(self, channel: Channel) -> ExitStatus:
        return await channel.close(
            exit_timeout=self._shutdown.exit_timeout,
            interrupt_timeout=self._shutdown.interrupt_timeout,
            terminate_timeout=self._shutdown.terminate_timeout,
        )
