"""
Exception hierarchy shared by handlers, vendor clients and the MCP layer.
"""

from typing import List, Optional


class AgentHubError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(AgentHubError):
    """Raised when required environment variables are missing."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(
            f"Missing configuration. Set {', '.join(self.missing)}"
        )


class UpstreamError(AgentHubError):
    """Raised when a vendor API answers with a non-2xx status."""

    def __init__(self, operation: str, status: int, message: Optional[str] = None):
        self.operation = operation
        self.status = status
        super().__init__(message or f"{operation} failed: {status}")


class McpError(AgentHubError):
    """Base class for tool provider (MCP) failures."""


class ProviderSpawnError(McpError):
    """The provider process could not be started."""


class ProviderHandshakeError(McpError):
    """The initialize exchange failed or timed out."""


class RequestTimeoutError(McpError):
    """No response arrived within the request timeout."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Request timeout: {method}")


class ProviderTerminatedError(McpError):
    """The provider went away while a request was pending."""


class ProviderRequestError(McpError):
    """The provider answered a request with a JSON-RPC error."""

    def __init__(self, code: Optional[int], message: str):
        self.code = code
        super().__init__(message)


class UnknownCapabilityError(McpError):
    """No registered provider exposes the requested qualified name."""

    def __init__(self, qualified_name: str):
        self.qualified_name = qualified_name
        super().__init__(f"Unknown capability: {qualified_name}")


class ProviderNotConnectedError(McpError):
    """The owning provider is registered but no longer connected."""

    def __init__(self, provider_name: str):
        self.provider_name = provider_name
        super().__init__(f"Provider not connected: {provider_name}")
