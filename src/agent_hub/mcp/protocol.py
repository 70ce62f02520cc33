"""
JSON-RPC 2.0 message types and newline framing for the MCP stdio transport.

One message per line, UTF-8 JSON, in both directions:
  - requests carry ``id`` and ``method``
  - responses carry the same ``id`` and ``result`` or ``error: {code, message}``
  - notifications carry ``method`` and no ``id``
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

METHOD_INITIALIZE = "initialize"
METHOD_INITIALIZED = "notifications/initialized"
METHOD_TOOLS_LIST = "tools/list"
METHOD_TOOLS_CALL = "tools/call"
METHOD_RESOURCES_LIST = "resources/list"
METHOD_RESOURCES_READ = "resources/read"
METHOD_PING = "ping"

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


def _encode(message: dict[str, Any]) -> bytes:
    return (json.dumps(message, separators=(",", ":")) + "\n").encode("utf-8")


@dataclass
class JsonRpcRequest:
    """JSON-RPC 2.0 request."""
    method: str
    id: int | str
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "id": self.id, "method": self.method, "params": self.params}

    def encode(self) -> bytes:
        return _encode(self.to_dict())


@dataclass
class JsonRpcNotification:
    """JSON-RPC 2.0 notification (no id, no response expected)."""
    method: str
    params: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {"jsonrpc": "2.0", "method": self.method}
        if self.params is not None:
            message["params"] = self.params
        return message

    def encode(self) -> bytes:
        return _encode(self.to_dict())


@dataclass
class JsonRpcResponse:
    """JSON-RPC 2.0 response."""
    id: int | str | None
    result: Any = None
    error: dict | None = None

    @classmethod
    def from_dict(cls, message: dict[str, Any]) -> "JsonRpcResponse":
        error = message.get("error")
        if error is not None and not isinstance(error, dict):
            error = {"code": None, "message": str(error)}
        return cls(id=message.get("id"), result=message.get("result"), error=error)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def error_message(self) -> str:
        if not self.error:
            return ""
        return self.error.get("message") or "MCP error"

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {"jsonrpc": "2.0", "id": self.id}
        if self.error is not None:
            message["error"] = self.error
        else:
            message["result"] = self.result
        return message

    def encode(self) -> bytes:
        return _encode(self.to_dict())


class LineFramer:
    """
    Reassembles newline-delimited JSON messages from arbitrary byte chunks.

    A trailing partial line stays buffered until its newline arrives. Lines
    that are blank, not valid JSON, or not JSON objects are logged and
    dropped without touching the rest of the buffer.
    """

    def __init__(self, label: str = "mcp"):
        self.label = label
        self._buffer = b""

    @property
    def pending(self) -> bytes:
        return self._buffer

    def feed(self, data: bytes) -> list[dict[str, Any]]:
        self._buffer += data
        *lines, self._buffer = self._buffer.split(b"\n")

        messages = []
        for raw in lines:
            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            try:
                message = json.loads(line)
            except json.JSONDecodeError:
                logger.error(f"[MCP {self.label}] Failed to parse message: {line[:200]}")
                continue
            if not isinstance(message, dict):
                logger.error(f"[MCP {self.label}] Ignoring non-object message: {line[:200]}")
                continue
            messages.append(message)
        return messages
