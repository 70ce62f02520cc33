"""
Agent Lambda Handler
--------------------
Chat with the LLM while it can call every tool in the MCP registry.

POST {"message": "...", "system": "optional system prompt"}

Loop: the model proposes tool calls -> the registry runs them -> results go
back to the model. At most MAX_TOOL_ROUNDS tool rounds run per request, so
the model is called at most MAX_TOOL_ROUNDS + 1 times. If the model still
asks for tools after the last round, those calls are not executed and the
response is flagged with ``tool_rounds_exhausted``.
"""

import asyncio
from typing import Any, Dict, List

from agent_hub.errors import McpError
from agent_hub.handlers.common import BadRequest, error_response, http_method, json_body, response
from agent_hub.handlers.runtime import runtime as default_runtime
from agent_hub.llm.bedrock_client import converse, response_text, text_message
from agent_hub.mcp.registry import ProviderRegistry
from agent_hub.mcp.runtime import McpRuntime
from agent_hub.utils.logger import logger

MAX_TOOL_ROUNDS = 5

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant with access to external tools. "
    "Call a tool when it helps answer the question, then answer concisely."
)


def _tool_result_content(result: Any) -> List[Dict[str, Any]]:
    """Convert an MCP tools/call result into Bedrock toolResult content."""
    if isinstance(result, dict) and isinstance(result.get("content"), list):
        blocks = []
        for item in result["content"]:
            if item.get("type") == "text":
                blocks.append({"text": item.get("text", "")})
            else:
                blocks.append({"json": item})
        return blocks or [{"text": ""}]
    if isinstance(result, str):
        return [{"text": result}]
    return [{"json": result if isinstance(result, dict) else {"result": result}}]


async def _run_tool(registry: ProviderRegistry, tool_use: Dict[str, Any]) -> Dict[str, Any]:
    name = tool_use["name"]
    logger.info(f"Executing tool {name}")
    try:
        result = await registry.invoke(name, tool_use.get("input") or {})
        status = "error" if isinstance(result, dict) and result.get("isError") else "success"
        content = _tool_result_content(result)
    except McpError as e:
        logger.error(f"Tool {name} failed: {e}")
        status = "error"
        content = [{"text": str(e)}]

    return {"toolResult": {"toolUseId": tool_use["toolUseId"], "content": content, "status": status}}


async def run_agent(registry: ProviderRegistry, message: str, system: str = DEFAULT_SYSTEM_PROMPT) -> Dict[str, Any]:
    tools = registry.tool_specs()
    messages = [text_message("user", message)]
    tool_calls = []

    for round_number in range(1, MAX_TOOL_ROUNDS + 2):
        result = await asyncio.to_thread(converse, messages, system=system, tools=tools or None)
        output = result["output"]["message"]
        messages.append(output)

        tool_uses = [block["toolUse"] for block in output.get("content", []) if "toolUse" in block]
        if result.get("stopReason") != "tool_use" or not tool_uses:
            return {"message": response_text(result), "tool_calls": tool_calls, "rounds": round_number,
                    "tool_rounds_exhausted": False}

        if round_number > MAX_TOOL_ROUNDS:
            logger.warning(f"Tool round cap ({MAX_TOOL_ROUNDS}) reached; dropping {len(tool_uses)} tool calls")
            return {"message": response_text(result), "tool_calls": tool_calls, "rounds": round_number,
                    "tool_rounds_exhausted": True}

        # tool calls of one round are independent
        tool_results = await asyncio.gather(*(_run_tool(registry, tool_use) for tool_use in tool_uses))
        for tool_use, tool_result in zip(tool_uses, tool_results):
            tool_calls.append({
                "round": round_number,
                "name": tool_use["name"],
                "input": tool_use.get("input") or {},
                "status": tool_result["toolResult"]["status"],
            })
        messages.append({"role": "user", "content": list(tool_results)})


def build_handler(runtime: McpRuntime):

    def lambda_handler(event, context):
        logger.info(event)

        if http_method(event) != "POST":
            return error_response(405, "Method not allowed")

        try:
            body = json_body(event)
            message = body.get("message")
            if not message:
                raise BadRequest("Message is required")

            result = runtime.run(run_agent(runtime.registry, message, body.get("system") or DEFAULT_SYSTEM_PROMPT))
            logger.info(f"Agent finished after {result['rounds']} rounds, {len(result['tool_calls'])} tool calls")
            return response(200, result)

        except BadRequest as e:
            return error_response(400, str(e))
        except Exception as e:
            logger.error(f"Agent error: {e}")
            return error_response(500, str(e))

    return lambda_handler


lambda_handler = build_handler(default_runtime)
