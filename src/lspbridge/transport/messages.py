"""JSON-RPC 2.0 message envelope."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

JSONRPC_VERSION = "2.0"

# JSON-RPC / LSP error codes this client produces or recognizes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603
SERVER_NOT_INITIALIZED = -32002
REQUEST_CANCELLED = -32800


@dataclass
class JsonRpcMessage:
    """Parsed JSON-RPC message.

    ``has_result`` distinguishes a response carrying ``"result": null``
    (the normal answer to ``shutdown``) from a message with no result.
    """

    jsonrpc: str = JSONRPC_VERSION
    id: int | str | None = None
    method: str | None = None
    params: Any = None
    result: Any = None
    error: dict[str, Any] | None = None
    has_result: bool = False

    def is_request(self) -> bool:
        """Check if this is a request (has method and id)."""
        return self.method is not None and self.id is not None

    def is_notification(self) -> bool:
        """Check if this is a notification (has method but no id)."""
        return self.method is not None and self.id is None

    def is_response(self) -> bool:
        """Check if this is a response (has result or error)."""
        return self.method is None and (self.has_result or self.error is not None)

    @classmethod
    def request(cls, id: int | str, method: str, params: Any = None) -> JsonRpcMessage:
        return cls(id=id, method=method, params=params)

    @classmethod
    def notification(cls, method: str, params: Any = None) -> JsonRpcMessage:
        return cls(method=method, params=params)

    @classmethod
    def response(cls, id: int | str | None, result: Any = None) -> JsonRpcMessage:
        return cls(id=id, result=result, has_result=True)

    @classmethod
    def error_response(
        cls, id: int | str | None, code: int, message: str, data: Any = None
    ) -> JsonRpcMessage:
        error: dict[str, Any] = {"code": code, "message": message}
        if data is not None:
            error["data"] = data
        return cls(id=id, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        d: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.method is not None:
            if self.id is not None:
                d["id"] = self.id
            d["method"] = self.method
            if self.params is not None:
                d["params"] = self.params
            return d
        # Responses always carry an id, null when the request id was unreadable
        d["id"] = self.id
        if self.error is not None:
            d["error"] = self.error
        else:
            d["result"] = self.result
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JsonRpcMessage:
        """Parse from dictionary."""
        return cls(
            jsonrpc=data.get("jsonrpc", JSONRPC_VERSION),
            id=data.get("id"),
            method=data.get("method"),
            params=data.get("params"),
            result=data.get("result"),
            error=data.get("error"),
            has_result="result" in data,
        )
