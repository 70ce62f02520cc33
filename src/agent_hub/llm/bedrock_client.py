import json
from typing import Any, Dict, List, Optional

import boto3

from agent_hub.config import AWS_REGION, LLM_MODEL
from agent_hub.utils.logger import logger

# Lazy initialization
_bedrock = None


def _get_bedrock_client():
    """Lazily initialize Bedrock client."""
    global _bedrock
    if _bedrock is None:
        logger.info(f"Initializing Bedrock client in region: {AWS_REGION}")
        _bedrock = boto3.client("bedrock-runtime", region_name=AWS_REGION)
    return _bedrock


def call_llm(prompt: str, max_tokens: int = 1024, system: Optional[str] = None, temperature: float = 0.0) -> str:
    """Single-turn completion through the Anthropic messages body."""
    logger.info(f"Calling LLM model: {LLM_MODEL}")

    payload = {
        "anthropic_version": "bedrock-2023-05-31",
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [
            {
                "role": "user",
                "content": prompt
            }
        ]
    }
    if system:
        payload["system"] = system

    try:
        bedrock = _get_bedrock_client()
        response = bedrock.invoke_model(
            modelId=LLM_MODEL,
            contentType="application/json",
            accept="application/json",
            body=json.dumps(payload)
        )

        result = json.loads(response["body"].read().decode())
        return result["content"][0]["text"]
    except Exception as e:
        logger.error(f"Bedrock LLM error: {e}")
        raise


def converse(
    messages: List[Dict[str, Any]],
    system: Optional[str] = None,
    tools: Optional[List[Dict[str, Any]]] = None,
    tool_choice: Optional[Dict[str, Any]] = None,
    temperature: float = 0.7,
    max_tokens: int = 1024,
) -> Dict[str, Any]:
    """
    Multi-turn call through the Converse API.

    Args:
        messages: Converse messages ({"role", "content": [blocks]})
        system: Optional system prompt
        tools: Optional toolSpec entries; enables tool use
        tool_choice: e.g. {"tool": {"name": "x"}} to force structured output
        temperature: Sampling temperature
        max_tokens: Output cap

    Returns:
        Raw Converse response ({"output": {"message"}, "stopReason", ...})
    """
    logger.info(f"Converse with model: {LLM_MODEL} ({len(messages)} messages, {len(tools or [])} tools)")

    request = {
        "modelId": LLM_MODEL,
        "messages": messages,
        "inferenceConfig": {"temperature": temperature, "maxTokens": max_tokens},
    }
    if system:
        request["system"] = [{"text": system}]
    if tools:
        tool_config = {"tools": tools}
        if tool_choice:
            tool_config["toolChoice"] = tool_choice
        request["toolConfig"] = tool_config

    try:
        return _get_bedrock_client().converse(**request)
    except Exception as e:
        logger.error(f"Bedrock converse error: {e}")
        raise


def text_message(role: str, text: str) -> Dict[str, Any]:
    return {"role": role, "content": [{"text": text}]}


def response_text(response: Dict[str, Any]) -> str:
    """Concatenate the text blocks of a Converse response."""
    content = response.get("output", {}).get("message", {}).get("content", [])
    return "".join(block["text"] for block in content if "text" in block).strip()


def forced_tool_input(response: Dict[str, Any], tool_name: str) -> Dict[str, Any]:
    """Input of the toolUse block the model was forced to emit."""
    for block in response.get("output", {}).get("message", {}).get("content", []):
        tool_use = block.get("toolUse")
        if tool_use and tool_use.get("name") == tool_name:
            return tool_use.get("input", {})
    raise ValueError(f"Model did not return structured output for {tool_name}")
