"""
MCP (Model Context Protocol) support over the stdio transport.

Architecture:
    ┌──────────────┐     stdio      ┌──────────────┐
    │   Registry   │ ────────────── │   Provider   │
    │ (ProtocolCl.)│  JSON-RPC 2.0  │ (subprocess) │
    └──────────────┘  NDJSON pipes  └──────────────┘

- protocol: JSON-RPC message types and newline framing
- client: async ProtocolClient for one provider process
- registry: ProviderRegistry, a namespaced catalog across providers
- runtime: McpRuntime, the loop that keeps providers alive between invocations
- server: StdioToolServer base for writing providers
"""

from agent_hub.mcp.client import ProtocolClient
from agent_hub.mcp.registry import Capability, ProviderConfig, ProviderRegistry
from agent_hub.mcp.runtime import McpRuntime

__all__ = [
    "Capability",
    "McpRuntime",
    "ProtocolClient",
    "ProviderConfig",
    "ProviderRegistry",
]
