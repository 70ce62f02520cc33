"""
Async MCP client over the stdio transport.

Spawns a tool provider as a child process, writes newline-delimited
JSON-RPC requests to its stdin and correlates the responses read from its
stdout by request id. Responses may come back in any order; each request
has its own timeout.

Usage:
    async with ProtocolClient("salesforce", sys.executable,
                              ["-m", "agent_hub.mcp.servers.salesforce"]) as client:
        tools = await client.list_capabilities()
        result = await client.call_capability("salesforce_soql", {"soql": "..."})
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable

from agent_hub import __version__
from agent_hub.errors import (
    McpError,
    ProviderHandshakeError,
    ProviderRequestError,
    ProviderSpawnError,
    ProviderTerminatedError,
    RequestTimeoutError,
)
from agent_hub.mcp.protocol import (
    METHOD_INITIALIZE,
    METHOD_INITIALIZED,
    METHOD_NOT_FOUND,
    METHOD_PING,
    METHOD_RESOURCES_LIST,
    METHOD_RESOURCES_READ,
    METHOD_TOOLS_CALL,
    METHOD_TOOLS_LIST,
    PROTOCOL_VERSION,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    LineFramer,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30.0
STOP_TIMEOUT_SECONDS = 5.0
READ_CHUNK_SIZE = 64 * 1024

CLIENT_INFO = {"name": "agent-hub", "version": __version__}
CLIENT_CAPABILITIES = {"roots": {"listChanged": True}}

NotificationObserver = Callable[[str, dict], None]


@dataclass
class _PendingRequest:
    future: asyncio.Future
    method: str


class ProtocolClient:
    """
    One connection to one tool provider process.

    Request ids start at 1 and only ever increase for the lifetime of the
    instance. A pending entry is removed before its future is completed,
    whichever of response, timeout, provider exit or disconnect comes first.
    """

    def __init__(
        self,
        name: str,
        command: str,
        args: list[str] | None = None,
        env: dict[str, str] | None = None,
        request_timeout: float = REQUEST_TIMEOUT_SECONDS,
        on_notification: NotificationObserver | None = None,
    ):
        self.name = name
        self.command = command
        self.args = list(args or [])
        self.env = dict(env or {})
        self.request_timeout = request_timeout
        self.on_notification = on_notification or self._log_notification

        self.connected = False
        self.server_info: dict[str, Any] | None = None
        self.capabilities: list[dict[str, Any]] = []
        self.resources: list[dict[str, Any]] = []

        self._process: asyncio.subprocess.Process | None = None
        self._stdout_task: asyncio.Task | None = None
        self._stderr_task: asyncio.Task | None = None
        self._framer = LineFramer(name)
        self._write_lock = asyncio.Lock()
        self._last_id = 0
        self._pending: dict[int, _PendingRequest] = {}
        self._callback_tasks: set[asyncio.Task] = set()

    async def __aenter__(self) -> "ProtocolClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Spawn the provider and complete the initialize handshake."""
        if self.connected:
            return

        logger.info(f"[MCP {self.name}] Starting: {self.command} {' '.join(self.args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                self.command,
                *self.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, **self.env},
            )
        except OSError as e:
            logger.error(f"[MCP {self.name}] process error: {e}")
            raise ProviderSpawnError(f"Failed to start {self.name}: {e}") from e

        self._process = process
        self._framer = LineFramer(self.name)
        self._stdout_task = asyncio.create_task(self._read_stdout(process))
        self._stderr_task = asyncio.create_task(self._read_stderr(process))

        try:
            self.server_info = await self._initialize()
        except McpError as e:
            await self.disconnect()
            raise ProviderHandshakeError(f"Handshake with {self.name} failed: {e}") from e

        self.connected = True
        logger.info(f"[MCP {self.name}] Connected (pid={process.pid})")

    async def _initialize(self) -> dict[str, Any]:
        result = await self.send_request(METHOD_INITIALIZE, {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": CLIENT_CAPABILITIES,
            "clientInfo": CLIENT_INFO,
        })
        await self.send_notification(METHOD_INITIALIZED)
        return result or {}

    async def disconnect(self) -> None:
        """Terminate the provider and fail anything still pending. Idempotent."""
        self.connected = False
        process = self._process
        if process is None:
            return
        self._process = None

        tasks = [t for t in (self._stdout_task, self._stderr_task) if t is not None]
        for task in tasks:
            task.cancel()
        self._stdout_task = self._stderr_task = None

        if process.stdin is not None:
            process.stdin.close()
        if process.returncode is None:
            try:
                process.terminate()
                await asyncio.wait_for(process.wait(), timeout=STOP_TIMEOUT_SECONDS)
            except ProcessLookupError:
                pass
            except asyncio.TimeoutError:
                logger.warning(f"[MCP {self.name}] did not exit in time; killing")
                process.kill()
                await process.wait()

        callbacks = list(self._callback_tasks)
        for task in callbacks:
            task.cancel()
        self._callback_tasks.clear()

        await asyncio.gather(*tasks, return_exceptions=True)
        self._fail_pending(ProviderTerminatedError(f"Provider {self.name} disconnected"))
        logger.info(f"[MCP {self.name}] Disconnected")

    # ------------------------------------------------------------------
    # requests
    # ------------------------------------------------------------------

    def _require_process(self) -> asyncio.subprocess.Process:
        process = self._process
        if process is None or process.returncode is not None:
            raise ProviderTerminatedError(f"Provider {self.name} is not running")
        return process

    async def _write(self, process: asyncio.subprocess.Process, data: bytes) -> None:
        try:
            process.stdin.write(data)
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ProviderTerminatedError(f"Provider {self.name} closed its input: {e}") from e

    async def send_request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """
        Send a request and wait for the correlated response.

        Raises:
            RequestTimeoutError: no response within ``request_timeout``
            ProviderRequestError: the provider answered with an error
            ProviderTerminatedError: the provider exited or was disconnected
        """
        process = self._require_process()
        loop = asyncio.get_running_loop()

        # id allocation and the write happen under one lock so lines hit
        # stdin in call order
        async with self._write_lock:
            self._last_id += 1
            request_id = self._last_id
            future = loop.create_future()
            self._pending[request_id] = _PendingRequest(future, method)
            try:
                await self._write(process, JsonRpcRequest(method, request_id, params or {}).encode())
            except ProviderTerminatedError:
                self._pending.pop(request_id, None)
                raise

        try:
            return await asyncio.wait_for(future, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            self._pending.pop(request_id, None)
            logger.warning(f"[MCP {self.name}] Request {request_id} timed out: {method}")
            raise RequestTimeoutError(method) from None
        except asyncio.CancelledError:
            self._pending.pop(request_id, None)
            raise

    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Fire-and-forget message; no id, no response."""
        process = self._require_process()
        async with self._write_lock:
            await self._write(process, JsonRpcNotification(method, params).encode())

    async def list_capabilities(self) -> list[dict[str, Any]]:
        result = await self.send_request(METHOD_TOOLS_LIST)
        self.capabilities = (result or {}).get("tools", []) if isinstance(result, dict) else []
        return self.capabilities

    async def call_capability(self, local_name: str, arguments: dict[str, Any] | None = None) -> Any:
        return await self.send_request(METHOD_TOOLS_CALL, {
            "name": local_name,
            "arguments": arguments or {},
        })

    async def list_resources(self) -> list[dict[str, Any]]:
        result = await self.send_request(METHOD_RESOURCES_LIST)
        self.resources = (result or {}).get("resources", []) if isinstance(result, dict) else []
        return self.resources

    async def read_resource(self, uri: str) -> Any:
        return await self.send_request(METHOD_RESOURCES_READ, {"uri": uri})

    # ------------------------------------------------------------------
    # incoming
    # ------------------------------------------------------------------

    async def _read_stdout(self, process: asyncio.subprocess.Process) -> None:
        while True:
            chunk = await process.stdout.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            for message in self._framer.feed(chunk):
                self._dispatch(message)

        returncode = await process.wait()
        logger.info(f"[MCP {self.name}] process exited with code {returncode}")
        if self._process is process:
            self.connected = False
            self._fail_pending(
                ProviderTerminatedError(f"Provider {self.name} terminated (exit code {returncode})")
            )

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> None:
        while True:
            line = await process.stderr.readline()
            if not line:
                return
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                logger.info(f"[MCP {self.name}] stderr: {text}")

    def _dispatch(self, message: dict[str, Any]) -> None:
        message_id = message.get("id")
        method = message.get("method")

        # ids of provider-initiated requests live in the provider's own id
        # space, so only method-less messages are responses
        if method:
            if message_id is None:
                self._notify_observer(method, message.get("params") or {})
            else:
                task = asyncio.ensure_future(self._answer_provider_request(message_id, method))
                self._callback_tasks.add(task)
                task.add_done_callback(self._callback_tasks.discard)
            return

        pending = self._pending.pop(message_id, None) if isinstance(message_id, int) else None
        if pending is not None:
            if pending.future.done():
                return
            response = JsonRpcResponse.from_dict(message)
            if response.is_error:
                pending.future.set_exception(
                    ProviderRequestError(response.error.get("code"), response.error_message)
                )
            else:
                pending.future.set_result(response.result)
            return

        logger.debug(f"[MCP {self.name}] Dropping response for unknown request id {message_id}")

    def _notify_observer(self, method: str, params: dict) -> None:
        try:
            self.on_notification(method, params)
        except Exception:
            logger.exception(f"[MCP {self.name}] Notification observer failed for {method}")

    def _log_notification(self, method: str, params: dict) -> None:
        logger.info(f"[MCP {self.name}] Notification: {method}")

    async def _answer_provider_request(self, request_id: Any, method: str) -> None:
        # Providers may call back into the client (ping, roots/list)
        if method == METHOD_PING:
            response = JsonRpcResponse(request_id, result={})
        elif method == "roots/list":
            response = JsonRpcResponse(request_id, result={"roots": []})
        else:
            response = JsonRpcResponse(
                request_id, error={"code": METHOD_NOT_FOUND, "message": f"Method not found: {method}"}
            )
        try:
            process = self._require_process()
            async with self._write_lock:
                await self._write(process, response.encode())
        except ProviderTerminatedError as e:
            logger.warning(f"[MCP {self.name}] Could not answer {method}: {e}")

    def _fail_pending(self, error: Exception) -> None:
        pending, self._pending = self._pending, {}
        for entry in pending.values():
            if not entry.future.done():
                entry.future.set_exception(error)
