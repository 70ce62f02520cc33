"""
Unit tests for the web-search chat handler, search heuristics and prompt loading
"""

import io
import json

import pytest
from unittest.mock import MagicMock, patch
from botocore.exceptions import ClientError

from agent_hub.errors import UpstreamError
from agent_hub.handlers.chat import MAX_HISTORY_MESSAGES, ConversationalAgent, lambda_handler
from agent_hub.prompts.loader import PromptLoader
from agent_hub.search.tavily_client import extract_search_query, format_search_context, should_search

BEHAVIOR = {
    "explicitTriggers": ["search", "latest"],
    "followUpIndicators": ["you said", "that"],
    "maxShortQuestionWords": 6,
}

HISTORY = [
    {"role": "user", "content": "Tell me about Anthropic"},
    {"role": "assistant", "content": "Anthropic is an AI safety company."},
]


def _converse_reply(text):
    return {"output": {"message": {"role": "assistant", "content": [{"text": text}]}}, "stopReason": "end_turn"}


@pytest.fixture
def chat_env(monkeypatch):
    monkeypatch.setenv("TAVILY_API_KEY", "tvly-test")
    monkeypatch.delenv("PROMPT_BUCKET", raising=False)


class TestShouldSearch:

    def test_first_message_searches(self):
        assert should_search("hello", [], BEHAVIOR) is True

    def test_explicit_trigger(self):
        assert should_search("what's the latest on that?", HISTORY, BEHAVIOR) is True

    def test_follow_up_indicator(self):
        assert should_search("Can you expand on what you said about safety", HISTORY, BEHAVIOR) is False

    def test_short_question_is_follow_up(self):
        assert should_search("Who founded it?", HISTORY, BEHAVIOR) is False

    def test_new_topic(self):
        assert should_search("Tell me about the Mistral company history", HISTORY, BEHAVIOR) is True


class TestSearchHelpers:

    def test_extract_search_query(self):
        assert extract_search_query("Tell me about Anthropic") == "Anthropic"
        assert extract_search_query("who is") == "who is"

    def test_format_search_context(self):
        context = format_search_context([{"title": "T", "content": "C", "url": "https://t"}])

        assert context == "[1] T\nC\nURL: https://t"


class TestPromptLoader:

    def test_render(self):
        assert PromptLoader.render("Q: {{query}} {{missing}}", {"query": "x"}) == "Q: x {{missing}}"

    def test_local_fallback(self, monkeypatch):
        monkeypatch.delenv("PROMPT_BUCKET", raising=False)

        config = PromptLoader().load()

        assert config["name"] == "Search Agent"
        assert "searchUser" in config["prompts"]

    def test_s3_first(self, monkeypatch):
        monkeypatch.setenv("PROMPT_BUCKET", "prompts-bucket")
        monkeypatch.delenv("PROMPT_KEY", raising=False)
        loader = PromptLoader()
        loader._s3 = MagicMock()
        loader._s3.get_object.return_value = {"Body": io.BytesIO(json.dumps({"name": "Remote"}).encode())}

        assert loader.load() == {"name": "Remote"}
        loader._s3.get_object.assert_called_once_with(Bucket="prompts-bucket", Key="prompts/search_agent.json")

    def test_s3_failure_falls_back(self, monkeypatch):
        monkeypatch.setenv("PROMPT_BUCKET", "prompts-bucket")
        loader = PromptLoader()
        loader._s3 = MagicMock()
        loader._s3.get_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")

        assert loader.load()["name"] == "Search Agent"

    def test_cache(self, monkeypatch):
        monkeypatch.delenv("PROMPT_BUCKET", raising=False)
        loader = PromptLoader(ttl=60)

        assert loader.load() is loader.load()


class TestConversationalAgent:

    @patch('agent_hub.handlers.chat.converse')
    def test_history_is_trimmed(self, mock_converse):
        mock_converse.return_value = _converse_reply("ok")
        loader = PromptLoader()
        prompts = loader.load()["prompts"]
        agent = ConversationalAgent({}, prompts, loader)
        history = [{"role": "user" if i % 2 == 0 else "assistant", "content": f"m{i}"} for i in range(30)]

        agent.chat("next", history)

        messages = mock_converse.call_args.args[0]
        assert len(messages) == MAX_HISTORY_MESSAGES + 1
        assert messages[0]["content"][0]["text"] == "m10"
        assert messages[-1]["content"][0]["text"] == "next"


class TestChatHandler:

    @patch('agent_hub.handlers.chat.converse')
    @patch('agent_hub.handlers.chat.web_search')
    def test_first_message_searches(self, mock_search, mock_converse, chat_env, api_event):
        mock_search.return_value = {"results": [
            {"title": "Anthropic", "url": "https://anthropic.com", "content": "AI safety company"},
        ]}
        mock_converse.return_value = _converse_reply("Anthropic builds Claude [1].")

        result = lambda_handler(api_event("GET", params={"message": "Tell me about Anthropic"}), None)
        body = json.loads(result["body"])

        assert result["statusCode"] == 200
        assert body["message"] == "Anthropic builds Claude [1]."
        assert body["sources"] == [{"title": "Anthropic", "url": "https://anthropic.com"}]
        assert body["search_performed"] is True
        assert body["agent"] == "Search Agent"
        mock_search.assert_called_once_with("Anthropic", "tvly-test")
        prompt = mock_converse.call_args.args[0][-1]["content"][0]["text"]
        assert "AI safety company" in prompt

    @patch('agent_hub.handlers.chat.converse')
    @patch('agent_hub.handlers.chat.web_search')
    def test_follow_up_skips_search(self, mock_search, mock_converse, chat_env, api_event):
        mock_converse.return_value = _converse_reply("Dario and Daniela Amodei.")
        body = json.dumps({"message": "Who founded it?", "chat_history": HISTORY})

        result = lambda_handler(api_event("POST", body=body), None)

        assert json.loads(result["body"])["search_performed"] is False
        mock_search.assert_not_called()
        assert len(mock_converse.call_args.args[0]) == 3

    def test_missing_message(self, chat_env, api_event):
        assert lambda_handler(api_event("GET"), None)["statusCode"] == 400

    def test_missing_api_key(self, monkeypatch, api_event):
        monkeypatch.delenv("TAVILY_API_KEY", raising=False)

        result = lambda_handler(api_event("GET", params={"message": "hi"}), None)

        assert result["statusCode"] == 500
        assert "TAVILY_API_KEY" in json.loads(result["body"])["error"]

    @patch('agent_hub.handlers.chat.web_search')
    def test_search_failure(self, mock_search, chat_env, api_event):
        mock_search.side_effect = UpstreamError("Search", 429)

        result = lambda_handler(api_event("GET", params={"message": "hi"}), None)

        assert result["statusCode"] == 502
        assert json.loads(result["body"])["error"] == "Search failed: 429"
