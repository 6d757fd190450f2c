"""Duplex JSON-RPC channel over a language server's standard streams."""

from __future__ import annotations

import asyncio
import itertools
from enum import Enum
from typing import Any

from lspbridge.errors import ChannelClosedError, ResponseError, ShutdownTimeout
from lspbridge.logging import TRACE, get_logger
from lspbridge.transport.framing import LSPFramingError, read_message, write_message
from lspbridge.transport.messages import JsonRpcMessage
from lspbridge.transport.process import ServerProcess

log = get_logger("transport.channel")


class ExitStatus(Enum):
    """How the server process ended when its channel was closed."""

    EXITED = "exited"
    TIMEOUT = "timeout"


class Channel:
    """Send/receive primitives over one server process.

    A background reader task decodes inbound frames. Responses resolve the
    future of the matching outbound request; requests and notifications from
    the server are queued for ``receive()``. Outbound writes are serialized
    by a lock, so the server sees messages in send order.
    """

    def __init__(self, process: ServerProcess) -> None:
        self._process = process
        self._write_lock = asyncio.Lock()
        self._ids = itertools.count(1)
        self._pending: dict[int | str, asyncio.Future[JsonRpcMessage]] = {}
        self._inbound: asyncio.Queue[JsonRpcMessage | None] = asyncio.Queue()
        self._closed = False
        self._eof = asyncio.Event()
        self._close_task: asyncio.Task[ExitStatus] | None = None
        self._reader_task = asyncio.create_task(self._read_loop())

    @property
    def process(self) -> ServerProcess:
        return self._process

    @property
    def is_open(self) -> bool:
        """True until close() starts or the server closes its stdout."""
        return not self._closed and not self._eof.is_set()

    async def send(self, message: JsonRpcMessage) -> None:
        """Write one message to the server.

        Raises:
            ChannelClosedError: If the channel is closed or the pipe broke.
        """
        if not self.is_open:
            raise ChannelClosedError("Channel is closed")
        payload = message.to_dict()
        log.log(TRACE, "--> %s", payload)
        async with self._write_lock:
            try:
                await write_message(self._process.stdin, payload)
            except (BrokenPipeError, ConnectionResetError) as e:
                raise ChannelClosedError(f"Server pipe closed: {e}") from e

    async def notify(self, method: str, params: Any = None) -> None:
        await self.send(JsonRpcMessage.notification(method, params))

    async def request(
        self,
        method: str,
        params: Any = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and wait for its response.

        Returns:
            The ``result`` member of the response.

        Raises:
            ResponseError: If the server answered with an error object.
            ChannelClosedError: If the channel closed before the response.
            asyncio.TimeoutError: If ``timeout`` elapsed first.
        """
        request_id = next(self._ids)
        future: asyncio.Future[JsonRpcMessage] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await self.send(JsonRpcMessage.request(request_id, method, params))
            response = await asyncio.wait_for(future, timeout=timeout)
        finally:
            self._pending.pop(request_id, None)

        if response.error is not None:
            raise ResponseError(
                int(response.error.get("code", 0)),
                str(response.error.get("message", "")),
                response.error.get("data"),
            )
        return response.result

    async def receive(self) -> JsonRpcMessage | None:
        """Next request or notification from the server; None once closed."""
        if self._inbound.empty() and (self._closed or self._eof.is_set()):
            return None
        message = await self._inbound.get()
        if message is None:
            # Leave the sentinel for any other receiver
            self._inbound.put_nowait(None)
        return message

    async def _read_loop(self) -> None:
        try:
            while True:
                try:
                    payload = await read_message(self._process.stdout)
                except LSPFramingError as e:
                    log.error("Dropping connection after framing error: %s", e)
                    break
                if payload is None:
                    break
                log.log(TRACE, "<-- %s", payload)
                self._dispatch(JsonRpcMessage.from_dict(payload))
        finally:
            self._eof.set()
            self._fail_pending(ChannelClosedError("Server closed the connection"))
            self._inbound.put_nowait(None)

    def _dispatch(self, message: JsonRpcMessage) -> None:
        if message.is_response():
            future = self._pending.get(message.id) if message.id is not None else None
            if future is None:
                log.warning("Response for unknown request id %r", message.id)
            elif not future.done():
                future.set_result(message)
            return
        if message.method is None:
            log.warning("Ignoring message without method or result: %r", message.to_dict())
            return
        self._inbound.put_nowait(message)

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

    async def wait_closed_by_server(self) -> None:
        """Wait until the server closes its stdout."""
        await self._eof.wait()

    async def close(
        self,
        exit_timeout: float = 2.0,
        interrupt_timeout: float = 1.0,
        terminate_timeout: float = 2.0,
    ) -> ExitStatus:
        """Close stdin and wait for the process, escalating after ``exit_timeout``.

        Idempotent: later and concurrent calls return the first call's result.
        """
        if self._close_task is None:
            self._closed = True
            self._close_task = asyncio.create_task(
                self._close(exit_timeout, interrupt_timeout, terminate_timeout)
            )
        return await asyncio.shield(self._close_task)

    async def _close(
        self,
        exit_timeout: float,
        interrupt_timeout: float,
        terminate_timeout: float,
    ) -> ExitStatus:
        self._process.stdin.close()

        status = ExitStatus.EXITED
        if not await self._process.wait(exit_timeout):
            timeout = ShutdownTimeout(
                f"Server pid {self._process.pid} did not exit within {exit_timeout}s"
            )
            log.warning("%s; forcing termination", timeout)
            status = ExitStatus.TIMEOUT
        await self._process.terminate(interrupt_timeout, terminate_timeout)
        await self._process.close()

        if not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        self._fail_pending(ChannelClosedError("Channel closed"))
        self._inbound.put_nowait(None)
        log.debug(
            "Channel closed (%s, returncode=%s)", status.value, self._process.returncode
        )
        return status
