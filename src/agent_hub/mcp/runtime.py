"""
Event loop holder for driving the async registry from sync Lambda handlers.

Provider processes and their stdout readers belong to one event loop. A
Lambda execution environment serves many invocations, so the loop is kept
alive between them and each invocation runs on it with
``run_until_complete``. Create one McpRuntime per process and call
``shutdown()`` when the process is going away.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

from agent_hub.mcp.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class McpRuntime:

    def __init__(self, registry: ProviderRegistry | None = None, loop: asyncio.AbstractEventLoop | None = None):
        self.loop = loop or asyncio.new_event_loop()
        self.registry = registry or ProviderRegistry()
        self._closed = False

    def run(self, coro: Awaitable[Any]) -> Any:
        if self._closed:
            if asyncio.iscoroutine(coro):
                coro.close()
            raise RuntimeError("MCP runtime has been shut down")
        return self.loop.run_until_complete(coro)

    def shutdown(self) -> None:
        """Disconnect every provider and close the loop. Safe to call twice."""
        if self._closed:
            return
        try:
            self.loop.run_until_complete(self.registry.teardown_all())
        finally:
            self._closed = True
            self.loop.close()
            logger.info("MCP runtime shut down")
