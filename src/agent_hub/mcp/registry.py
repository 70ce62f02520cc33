"""
Provider Registry - one ProtocolClient per named tool provider.

The registry flattens every provider's tools into one catalog and
namespaces them as ``<provider>__<tool>`` so two providers can both expose
e.g. ``search`` without colliding. The qualified name is the only id
handlers and the LLM ever see.

Usage:
    registry = ProviderRegistry()
    await registry.register_provider(ProviderConfig("salesforce", sys.executable,
                                                    ["-m", "agent_hub.mcp.servers.salesforce"]))
    result = await registry.invoke("salesforce__salesforce_soql", {"soql": "SELECT Id FROM Account"})
    await registry.teardown_all()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from agent_hub.errors import ProviderNotConnectedError, UnknownCapabilityError
from agent_hub.mcp.client import ProtocolClient

logger = logging.getLogger(__name__)

QUALIFIED_SEPARATOR = "__"
EMPTY_INPUT_SCHEMA = {"type": "object", "properties": {}}


@dataclass
class ProviderConfig:
    name: str
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProviderConfig":
        if not data or not data.get("name") or not data.get("command"):
            raise ValueError("Server config required: { name, command, args?, env? }")
        return cls(
            name=data["name"],
            command=data["command"],
            args=[str(a) for a in data.get("args") or []],
            env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
        )


@dataclass(frozen=True)
class Capability:
    local_name: str
    provider_name: str
    description: str | None = None
    input_schema: dict[str, Any] | None = None

    @property
    def qualified_name(self) -> str:
        return f"{self.provider_name}{QUALIFIED_SEPARATOR}{self.local_name}"

    @classmethod
    def from_tool(cls, provider_name: str, tool: dict[str, Any]) -> "Capability":
        return cls(
            local_name=tool["name"],
            provider_name=provider_name,
            description=tool.get("description"),
            input_schema=tool.get("inputSchema"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.local_name,
            "qualified_name": self.qualified_name,
            "provider": self.provider_name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def to_tool_spec(self) -> dict[str, Any]:
        """Bedrock Converse ``toolConfig.tools`` entry."""
        return {
            "toolSpec": {
                "name": self.qualified_name,
                "description": self.description or f"Tool from {self.provider_name}",
                "inputSchema": {"json": self.input_schema or EMPTY_INPUT_SCHEMA},
            }
        }


@dataclass
class ProviderRegistration:
    config: ProviderConfig
    client: ProtocolClient
    capabilities: list[Capability]


class ProviderRegistry:
    """
    Catalog of connected tool providers.

    Only register_provider, unregister and teardown_all mutate the tables,
    and they do so under one asyncio lock.
    """

    def __init__(self, client_factory: Callable[..., ProtocolClient] = ProtocolClient):
        self._client_factory = client_factory
        self._providers: dict[str, ProviderRegistration] = {}
        self._catalog: list[Capability] = []
        self._lock = asyncio.Lock()

    def _new_client(self, config: ProviderConfig) -> ProtocolClient:
        return self._client_factory(
            name=config.name,
            command=config.command,
            args=config.args,
            env=config.env,
        )

    async def register_provider(self, config: ProviderConfig) -> dict[str, Any]:
        """
        Connect a provider and add its tools to the catalog.

        A provider already registered under the same name is torn down and
        replaced once the new one is up. Provider names may not contain the
        separator, and a tool list that would repeat a qualified name is
        rejected. On failure nothing about the new provider is kept.

        Returns:
            {"success": True, "capabilities": [...]} or {"success": False, "error": "..."}
        """
        if QUALIFIED_SEPARATOR in config.name:
            return {"success": False,
                    "error": f"Provider name {config.name!r} must not contain {QUALIFIED_SEPARATOR!r}"}

        client = self._new_client(config)
        try:
            await client.connect()
            tools = await client.list_capabilities()
            capabilities = [Capability.from_tool(config.name, tool) for tool in tools]
        except Exception as e:
            logger.error(f"[MCP] Failed to connect to {config.name}: {e}")
            await client.disconnect()
            return {"success": False, "error": str(e)}

        async with self._lock:
            clash = self._find_name_clash(config.name, capabilities)
            if clash is not None:
                logger.error(f"[MCP] Rejecting {config.name}: duplicate tool name {clash}")
                await client.disconnect()
                return {"success": False, "error": f"Duplicate tool name: {clash}"}

            previous = self._providers.pop(config.name, None)
            if previous is not None:
                logger.info(f"[MCP] Replacing existing provider {config.name}")
                self._drop_catalog_entries(config.name)
                await previous.client.disconnect()

            self._providers[config.name] = ProviderRegistration(config, client, capabilities)
            self._catalog.extend(capabilities)

        logger.info(f"[MCP] Connected to {config.name} with {len(capabilities)} tools")
        return {"success": True, "capabilities": [c.to_dict() for c in capabilities]}

    async def unregister(self, name: str) -> bool:
        async with self._lock:
            registration = self._providers.pop(name, None)
            if registration is None:
                return False
            self._drop_catalog_entries(name)
        await registration.client.disconnect()
        return True

    def _find_name_clash(self, provider_name: str, capabilities: list[Capability]) -> str | None:
        """First qualified name that repeats within the new set or already belongs to another provider."""
        taken = {c.qualified_name for c in self._catalog if c.provider_name != provider_name}
        for capability in capabilities:
            if capability.qualified_name in taken:
                return capability.qualified_name
            taken.add(capability.qualified_name)
        return None

    def _drop_catalog_entries(self, provider_name: str) -> None:
        self._catalog = [c for c in self._catalog if c.provider_name != provider_name]

    def list_capabilities(self) -> list[Capability]:
        return list(self._catalog)

    def tool_specs(self) -> list[dict[str, Any]]:
        return [c.to_tool_spec() for c in self._catalog]

    def find(self, qualified_name: str) -> Capability | None:
        return next((c for c in self._catalog if c.qualified_name == qualified_name), None)

    async def invoke(self, qualified_name: str, arguments: dict[str, Any] | None = None) -> Any:
        """
        Run a tool by its qualified name.

        Raises:
            UnknownCapabilityError: no such qualified name in the catalog
            ProviderNotConnectedError: the owning provider has gone away
        """
        capability = self.find(qualified_name)
        if capability is None:
            raise UnknownCapabilityError(qualified_name)

        registration = self._providers.get(capability.provider_name)
        if registration is None or not registration.client.connected:
            raise ProviderNotConnectedError(capability.provider_name)

        return await registration.client.call_capability(capability.local_name, arguments or {})

    def status(self) -> dict[str, dict[str, Any]]:
        return {
            name: {
                "connected": registration.client.connected,
                "capability_count": len(registration.capabilities),
            }
            for name, registration in self._providers.items()
        }

    async def teardown_all(self) -> None:
        async with self._lock:
            registrations = list(self._providers.values())
            self._providers.clear()
            self._catalog = []
        for registration in registrations:
            await registration.client.disconnect()
        if registrations:
            logger.info(f"[MCP] Disconnected {len(registrations)} providers")
