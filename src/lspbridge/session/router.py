"""Routes server-initiated messages to host-visible effects."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from lspbridge.errors import ResponseError
from lspbridge.host import ActivationContext
from lspbridge.logging import TRACE, get_logger
from lspbridge.protocol import methods
from lspbridge.protocol.types import (
    LogMessageParams,
    MessageType,
    PublishDiagnosticsParams,
    ShowMessageParams,
)
from lspbridge.transport.messages import INVALID_REQUEST, METHOD_NOT_FOUND, JsonRpcMessage

log = get_logger("session.router")
server_log = get_logger("server")

_MESSAGE_LEVELS = {
    MessageType.ERROR: logging.ERROR,
    MessageType.WARNING: logging.WARNING,
    MessageType.INFO: logging.INFO,
    MessageType.LOG: logging.DEBUG,
    MessageType.DEBUG: logging.DEBUG,
}

# Server requests the client acknowledges without doing anything
_ACKNOWLEDGED_REQUESTS = frozenset(
    {
        methods.REGISTER_CAPABILITY,
        methods.UNREGISTER_CAPABILITY,
        methods.WORK_DONE_PROGRESS_CREATE,
    }
)


class HostMessageRouter:
    """Inbound handler bound to one activation context.

    Returns the result for server requests; raises ``ResponseError`` for
    requests the client does not implement.
    """

    def __init__(self, context: ActivationContext) -> None:
        self._context = context

    async def __call__(self, message: JsonRpcMessage) -> Any:
        method = message.method
        if message.is_request():
            return self._handle_request(message)

        if method == methods.PUBLISH_DIAGNOSTICS:
            params = self._parse(PublishDiagnosticsParams, message)
            if params is not None:
                self._context.diagnostics.set(params.uri, params.diagnostics)
        elif method == methods.LOG_MESSAGE:
            params = self._parse(LogMessageParams, message)
            if params is not None:
                server_log.log(_MESSAGE_LEVELS.get(params.type, logging.INFO), "%s", params.message)
        elif method == methods.SHOW_MESSAGE:
            params = self._parse(ShowMessageParams, message)
            if params is not None and params.type is MessageType.ERROR:
                self._context.report_error(params.message)
            elif params is not None:
                server_log.log(_MESSAGE_LEVELS.get(params.type, logging.INFO), "%s", params.message)
        elif method in (methods.LOG_TRACE, methods.PROGRESS):
            server_log.log(TRACE, "%s %s", method, message.params)
        else:
            log.debug("Ignoring server notification %s", method)
        return None

    def _handle_request(self, message: JsonRpcMessage) -> Any:
        method = message.method
        if method in _ACKNOWLEDGED_REQUESTS:
            return None
        if method == methods.WORKSPACE_CONFIGURATION:
            params = message.params if isinstance(message.params, dict) else {}
            items = params.get("items")
            if not isinstance(items, list):
                raise ResponseError(INVALID_REQUEST, "workspace/configuration needs items")
            return [None] * len(items)
        log.debug("Unsupported server request %s", method)
        raise ResponseError(METHOD_NOT_FOUND, f"Unhandled method {method}")

    @staticmethod
    def _parse(model: Any, message: JsonRpcMessage) -> Any:
        try:
            return model.model_validate(message.params or {})
        except ValidationError as e:
            log.warning("Malformed %s params: %s", message.method, e)
            return None

    def reset(self) -> None:
        """Drop state published by a server that is going away."""
        self._context.diagnostics.clear()
