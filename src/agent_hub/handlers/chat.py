"""
Chat Lambda Handler
-------------------
Conversational assistant that searches the web when a turn needs it.

GET  ?message=...                               single turn
POST {"message": "...", "chat_history": [...]}  with history

History entries are {"role": "user" | "assistant", "content": "..."}.
"""

from typing import Any, Dict, List, Optional

from agent_hub.config import SearchSettings
from agent_hub.errors import ConfigurationError, UpstreamError
from agent_hub.handlers.common import BadRequest, error_response, http_method, json_body, query_params, response
from agent_hub.llm.bedrock_client import converse, response_text, text_message
from agent_hub.prompts.loader import PromptLoader, prompt_loader
from agent_hub.search.tavily_client import extract_search_query, format_search_context, should_search, web_search
from agent_hub.utils.logger import logger

MAX_HISTORY_MESSAGES = 20


class ConversationalAgent:

    def __init__(self, config: Dict[str, Any], prompts: Dict[str, str], loader: PromptLoader):
        self.config = config
        self.prompts = prompts
        self.loader = loader

    def chat(self, user_message: str, chat_history: List[Dict[str, str]], search_context: Optional[str] = None) -> str:
        messages = [
            text_message(entry["role"], entry["content"])
            for entry in chat_history[-MAX_HISTORY_MESSAGES:]
            if entry.get("role") in ("user", "assistant") and entry.get("content")
        ]

        if search_context:
            prompt = self.loader.render(self.prompts["searchUser"], {
                "query": user_message,
                "searchContext": search_context,
            })
        else:
            prompt = self.loader.render(self.prompts["followUpUser"], {"message": user_message})
        messages.append(text_message("user", prompt))

        result = converse(
            messages,
            system=self.prompts["system"],
            temperature=self.config.get("temperature", 0.7),
            max_tokens=self.config.get("maxTokens", 1024),
        )
        return response_text(result)


def _parse_request(event: Dict[str, Any]):
    if http_method(event) == "POST":
        body = json_body(event)
        return body.get("message", ""), body.get("chat_history", body.get("chatHistory", [])) or []
    params = query_params(event)
    return params.get("message") or params.get("name") or "", []


def lambda_handler(event, context):
    logger.info(event)

    try:
        settings = SearchSettings.from_env()
        message, chat_history = _parse_request(event)
        if not message:
            return error_response(400, "Message is required")

        try:
            prompt_config = prompt_loader.load()
        except (OSError, ValueError) as e:
            return error_response(500, f"Failed to load prompt configuration: {e}")

        agent = ConversationalAgent(prompt_config["config"], prompt_config["prompts"], prompt_loader)

        search_context = None
        sources = []
        needs_search = should_search(message, chat_history, prompt_config["searchBehavior"])

        if needs_search:
            search_data = web_search(extract_search_query(message), settings.tavily_api_key)
            results = search_data.get("results", [])
            search_context = format_search_context(results)
            sources = [{"title": r.get("title"), "url": r.get("url")} for r in results]

        answer = agent.chat(message, chat_history, search_context)

        return response(200, {
            "agent": prompt_config.get("name"),
            "version": prompt_config.get("version"),
            "message": answer,
            "sources": sources,
            "search_performed": needs_search,
        })

    except ConfigurationError as e:
        return error_response(500, str(e))
    except BadRequest as e:
        return error_response(400, str(e))
    except UpstreamError as e:
        logger.error(f"Search error: {e}")
        return error_response(502, str(e))
    except Exception as e:
        logger.error(f"Error processing request: {e}")
        return error_response(500, str(e))
