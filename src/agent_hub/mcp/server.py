"""
MCP tool server base class.

A tool provider is a standalone process that:
1. Reads JSON-RPC requests from stdin, one per line
2. Dispatches to registered ToolHandlers
3. Writes JSON-RPC responses to stdout

To create a provider:

    from agent_hub.mcp.server import StdioToolServer, ToolHandler

    class EchoTool(ToolHandler):
        name = "echo"
        description = "Echoes back the input message"
        input_schema = {
            "type": "object",
            "properties": {"message": {"type": "string"}},
            "required": ["message"],
        }

        def handle(self, arguments: dict) -> str:
            return arguments["message"]

    if __name__ == "__main__":
        server = StdioToolServer("echo-provider")
        server.register(EchoTool())
        server.run()

Anything a provider logs must go to stderr; stdout is the protocol stream.
"""

from __future__ import annotations

import json
import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, TextIO

from agent_hub import __version__
from agent_hub.mcp.protocol import (
    INTERNAL_ERROR,
    METHOD_INITIALIZE,
    METHOD_NOT_FOUND,
    METHOD_PING,
    METHOD_TOOLS_CALL,
    METHOD_TOOLS_LIST,
    PARSE_ERROR,
    PROTOCOL_VERSION,
    JsonRpcResponse,
)

logger = logging.getLogger(__name__)


class MethodNotFound(Exception):
    pass


class ToolHandler(ABC):
    """
    Base class for a tool implementation.

    Subclasses define what a tool does. The server handles transport.
    """

    name: str = ""
    description: str = ""
    input_schema: dict[str, Any] = {"type": "object", "properties": {}}

    @abstractmethod
    def handle(self, arguments: dict[str, Any]) -> Any:
        """
        Execute the tool.

        Returns:
            A string (sent as one text block) or a full MCP result dict
            with ``content`` (and optionally ``isError``)
        """
        ...

    def get_schema(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


def text_result(text: str, is_error: bool = False) -> dict[str, Any]:
    result: dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


class StdioToolServer:
    """
    JSON-RPC tool server speaking MCP over stdin/stdout.

    Supported methods: initialize, ping, tools/list, tools/call.
    Notifications (no id) are accepted and never answered.
    """

    def __init__(self, server_name: str, stdin: TextIO | None = None, stdout: TextIO | None = None):
        self.server_name = server_name
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._handlers: dict[str, ToolHandler] = {}

    def register(self, handler: ToolHandler) -> None:
        if not handler.name:
            raise ValueError(f"ToolHandler {handler.__class__.__name__} has no name")
        self._handlers[handler.name] = handler
        logger.info(f"Registered tool: {handler.name}")

    def run(self) -> None:
        """Serve until stdin is closed (parent process went away)."""
        logger.info(f"{self.server_name} starting with tools: {list(self._handlers)}")

        for line in self._stdin:
            line = line.strip()
            if not line:
                continue
            response = self.handle_line(line)
            if response is not None:
                self._stdout.write(json.dumps(response.to_dict()) + "\n")
                self._stdout.flush()

    def handle_line(self, line: str) -> JsonRpcResponse | None:
        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            return JsonRpcResponse(None, error={"code": PARSE_ERROR, "message": f"Parse error: {e}"})

        if not isinstance(message, dict) or "method" not in message:
            return None

        request_id = message.get("id")
        method = message["method"]
        params = message.get("params") or {}

        if request_id is None:
            logger.info(f"Notification: {method}")
            return None

        try:
            return JsonRpcResponse(request_id, result=self._dispatch(method, params))
        except MethodNotFound:
            return JsonRpcResponse(
                request_id, error={"code": METHOD_NOT_FOUND, "message": f"Method not found: {method}"}
            )
        except Exception as e:
            logger.exception(f"Error handling {method}")
            return JsonRpcResponse(request_id, error={"code": INTERNAL_ERROR, "message": str(e)})

    def _dispatch(self, method: str, params: dict) -> Any:
        if method == METHOD_INITIALIZE:
            return {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": self.server_name, "version": __version__},
            }

        if method == METHOD_PING:
            return {}

        if method == METHOD_TOOLS_LIST:
            return {"tools": [h.get_schema() for h in self._handlers.values()]}

        if method == METHOD_TOOLS_CALL:
            return self._call_tool(params.get("name", ""), params.get("arguments") or {})

        raise MethodNotFound(method)

    def _call_tool(self, tool_name: str, arguments: dict) -> dict[str, Any]:
        handler = self._handlers.get(tool_name)
        if not handler:
            return text_result(f"Unknown tool: {tool_name}", is_error=True)

        result = handler.handle(arguments)
        if isinstance(result, str):
            return text_result(result)
        return result
