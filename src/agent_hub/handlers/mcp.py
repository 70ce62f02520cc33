"""
MCP Lambda Handler
------------------
Manage tool provider connections.

GET                  status of every provider and the tool catalog
GET ?action=tools    full catalog plus Bedrock tool specs
POST {"action": "connect", "server": {name, command, args?, env?}}
POST {"action": "execute", "tool_name": "<provider>__<tool>", "tool_args": {...}}
POST {"action": "disconnect"}
POST {"action": "init"}   register the default providers
"""

from typing import Any, Dict, List

from agent_hub.errors import McpError
from agent_hub.handlers.common import BadRequest, error_response, http_method, json_body, query_params, response
from agent_hub.handlers.runtime import DEFAULT_PROVIDERS, runtime as default_runtime
from agent_hub.mcp.registry import ProviderConfig
from agent_hub.mcp.runtime import McpRuntime
from agent_hub.utils.logger import logger


def _get(runtime: McpRuntime, event: Dict[str, Any]) -> Dict[str, Any]:
    registry = runtime.registry
    capabilities = registry.list_capabilities()

    if query_params(event).get("action") == "tools":
        return response(200, {
            "tools": [c.to_dict() for c in capabilities],
            "tool_specs": registry.tool_specs(),
        })

    return response(200, {
        "status": registry.status(),
        "tool_count": len(capabilities),
        "tools": [{"name": c.qualified_name, "description": c.description} for c in capabilities],
    })


def _post(runtime: McpRuntime, event: Dict[str, Any], default_providers: List[ProviderConfig]) -> Dict[str, Any]:
    registry = runtime.registry
    body = json_body(event)
    action = body.get("action")

    if action == "connect":
        try:
            config = ProviderConfig.from_dict(body.get("server"))
        except ValueError as e:
            raise BadRequest(str(e)) from e
        return response(200, runtime.run(registry.register_provider(config)))

    if action == "execute":
        tool_name = body.get("tool_name") or body.get("toolName")
        if not tool_name:
            raise BadRequest("tool_name required")
        tool_args = body.get("tool_args") or body.get("toolArgs") or {}
        result = runtime.run(registry.invoke(tool_name, tool_args))
        return response(200, {"success": True, "result": result})

    if action == "disconnect":
        runtime.run(registry.teardown_all())
        return response(200, {"success": True, "message": "All servers disconnected"})

    if action == "init":
        initialized = []
        for config in default_providers:
            result = runtime.run(registry.register_provider(config))
            initialized.append({"server": config.name, **result})
        return response(200, {"initialized": initialized})

    raise BadRequest("Unknown action. Use: connect, execute, disconnect, init")


def build_handler(runtime: McpRuntime, default_providers: List[ProviderConfig] = None):
    default_providers = DEFAULT_PROVIDERS if default_providers is None else default_providers

    def lambda_handler(event, context):
        logger.info(event)
        method = http_method(event)

        try:
            if method == "GET":
                return _get(runtime, event)
            if method == "POST":
                return _post(runtime, event, default_providers)
            return error_response(405, "Method not allowed")

        except BadRequest as e:
            return error_response(400, str(e))
        except McpError as e:
            logger.error(f"MCP error: {e}")
            return error_response(500, str(e))
        except Exception as e:
            logger.error(f"Error processing request: {e}")
            return error_response(500, str(e))

    return lambda_handler


lambda_handler = build_handler(default_runtime)
