"""
Unit tests for the tool-augmented agent handler
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from agent_hub.errors import ProviderNotConnectedError
from agent_hub.handlers.agent import MAX_TOOL_ROUNDS, _tool_result_content, build_handler
from agent_hub.mcp.registry import Capability
from agent_hub.mcp.runtime import McpRuntime

TOOL = "salesforce__salesforce_soql"


def _tool_turn(tool_use_id="t1", text="Let me check."):
    return {
        "output": {"message": {"role": "assistant", "content": [
            {"text": text},
            {"toolUse": {"toolUseId": tool_use_id, "name": TOOL, "input": {"soql": "SELECT Id FROM Account"}}},
        ]}},
        "stopReason": "tool_use",
    }


def _final_turn(text):
    return {
        "output": {"message": {"role": "assistant", "content": [{"text": text}]}},
        "stopReason": "end_turn",
    }


@pytest.fixture
def registry():
    registry = MagicMock()
    registry.tool_specs.return_value = [Capability("salesforce_soql", "salesforce").to_tool_spec()]
    registry.invoke = AsyncMock(return_value={"content": [{"type": "text", "text": "Records found: 3"}]})
    registry.teardown_all = AsyncMock()
    return registry


@pytest.fixture
def handler(registry):
    runtime = McpRuntime(registry=registry)
    yield build_handler(runtime)
    runtime.shutdown()


def _ask(api_event, message="How many accounts do we have?"):
    return api_event("POST", body=json.dumps({"message": message}))


class TestAgentHandler:

    @patch('agent_hub.handlers.agent.converse')
    def test_answer_without_tools(self, mock_converse, handler, registry, api_event):
        mock_converse.return_value = _final_turn("Hello!")

        body = json.loads(handler(_ask(api_event, "hi"), None)["body"])

        assert body == {"message": "Hello!", "tool_calls": [], "rounds": 1, "tool_rounds_exhausted": False}
        assert mock_converse.call_args.kwargs["tools"] == registry.tool_specs.return_value
        registry.invoke.assert_not_awaited()

    @patch('agent_hub.handlers.agent.converse')
    def test_tool_round_trip(self, mock_converse, handler, registry, api_event):
        mock_converse.side_effect = [_tool_turn(), _final_turn("You have 3 accounts.")]

        result = handler(_ask(api_event), None)
        body = json.loads(result["body"])

        assert result["statusCode"] == 200
        assert body["message"] == "You have 3 accounts."
        assert body["rounds"] == 2
        assert body["tool_calls"] == [
            {"round": 1, "name": TOOL, "input": {"soql": "SELECT Id FROM Account"}, "status": "success"},
        ]
        registry.invoke.assert_awaited_once_with(TOOL, {"soql": "SELECT Id FROM Account"})

        messages = mock_converse.call_args_list[1].args[0]
        tool_result = messages[2]["content"][0]["toolResult"]
        assert messages[2]["role"] == "user"
        assert tool_result == {"toolUseId": "t1", "content": [{"text": "Records found: 3"}], "status": "success"}

    @patch('agent_hub.handlers.agent.converse')
    def test_round_cap(self, mock_converse, handler, registry, api_event):
        mock_converse.side_effect = [_tool_turn(f"t{i}") for i in range(MAX_TOOL_ROUNDS + 1)]

        body = json.loads(handler(_ask(api_event), None)["body"])

        assert mock_converse.call_count == MAX_TOOL_ROUNDS + 1
        assert registry.invoke.await_count == MAX_TOOL_ROUNDS
        assert [call["round"] for call in body["tool_calls"]] == list(range(1, MAX_TOOL_ROUNDS + 1))
        assert body["rounds"] == MAX_TOOL_ROUNDS + 1
        assert body["tool_rounds_exhausted"] is True
        assert body["message"] == "Let me check."

    @patch('agent_hub.handlers.agent.converse')
    def test_answer_after_last_tool_round(self, mock_converse, handler, registry, api_event):
        mock_converse.side_effect = [_tool_turn(f"t{i}") for i in range(MAX_TOOL_ROUNDS)] + [_final_turn("Done.")]

        body = json.loads(handler(_ask(api_event), None)["body"])

        assert registry.invoke.await_count == MAX_TOOL_ROUNDS
        assert body["message"] == "Done."
        assert body["tool_rounds_exhausted"] is False

    @patch('agent_hub.handlers.agent.converse')
    def test_tool_failure_is_reported_to_model(self, mock_converse, handler, registry, api_event):
        registry.invoke.side_effect = ProviderNotConnectedError("salesforce")
        mock_converse.side_effect = [_tool_turn(), _final_turn("Salesforce is unavailable.")]

        body = json.loads(handler(_ask(api_event), None)["body"])

        assert body["tool_calls"][0]["status"] == "error"
        tool_result = mock_converse.call_args_list[1].args[0][2]["content"][0]["toolResult"]
        assert tool_result["status"] == "error"
        assert tool_result["content"] == [{"text": "Provider not connected: salesforce"}]

    @patch('agent_hub.handlers.agent.converse')
    def test_error_result_marks_status(self, mock_converse, handler, registry, api_event):
        registry.invoke.return_value = {"content": [{"type": "text", "text": "bad query"}], "isError": True}
        mock_converse.side_effect = [_tool_turn(), _final_turn("That query failed.")]

        body = json.loads(handler(_ask(api_event), None)["body"])

        assert body["tool_calls"][0]["status"] == "error"

    @patch('agent_hub.handlers.agent.converse')
    def test_no_registered_tools(self, mock_converse, handler, registry, api_event):
        registry.tool_specs.return_value = []
        mock_converse.return_value = _final_turn("No tools here.")

        handler(_ask(api_event), None)

        assert mock_converse.call_args.kwargs["tools"] is None

    @patch('agent_hub.handlers.agent.converse')
    def test_model_error(self, mock_converse, handler, api_event):
        mock_converse.side_effect = RuntimeError("throttled")

        result = handler(_ask(api_event), None)

        assert result["statusCode"] == 500
        assert json.loads(result["body"])["error"] == "throttled"

    def test_missing_message(self, handler, api_event):
        assert handler(api_event("POST", body="{}"), None)["statusCode"] == 400

    def test_method_not_allowed(self, handler, api_event):
        assert handler(api_event("GET"), None)["statusCode"] == 405


class TestToolResultContent:

    def test_text_and_json_blocks(self):
        result = {"content": [{"type": "text", "text": "hi"}, {"type": "image", "data": "..."}]}

        assert _tool_result_content(result) == [{"text": "hi"}, {"json": {"type": "image", "data": "..."}}]

    def test_empty_content(self):
        assert _tool_result_content({"content": []}) == [{"text": ""}]

    def test_plain_values(self):
        assert _tool_result_content("done") == [{"text": "done"}]
        assert _tool_result_content({"rows": 2}) == [{"json": {"rows": 2}}]
        assert _tool_result_content(3) == [{"json": {"result": 3}}]
