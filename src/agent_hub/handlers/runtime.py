"""
Process-wide MCP runtime for the Lambda execution environment.

Created once at cold start and passed to the MCP-backed handlers through
their ``build_handler`` factories. Providers stay connected across warm
invocations and are torn down when the interpreter exits.
"""

import atexit
import sys

from agent_hub.mcp.registry import ProviderConfig
from agent_hub.mcp.runtime import McpRuntime

DEFAULT_PROVIDERS = [
    ProviderConfig(
        name="salesforce",
        command=sys.executable,
        args=["-m", "agent_hub.mcp.servers.salesforce"],
    ),
]

runtime = McpRuntime()
atexit.register(runtime.shutdown)
