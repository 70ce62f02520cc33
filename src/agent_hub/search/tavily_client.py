"""
Web search through the Tavily API, plus the heuristics deciding when the
chat assistant should search at all.
"""

import re
from typing import Any, Dict, List

from agent_hub.utils.http import request_json
from agent_hub.utils.logger import logger

TAVILY_SEARCH_URL = "https://api.tavily.com/search"

_LEAD_IN = re.compile(
    r"^(search for|look up|find info about|tell me about|who is|what is)\s*",
    re.IGNORECASE,
)


def web_search(query: str, api_key: str, max_results: int = 5) -> Dict[str, Any]:
    """
    Run a basic-depth Tavily search.

    Returns:
        Tavily response with ``results``: [{"title", "url", "content", "score"}]
    """
    logger.info(f"Web search: {query}")
    return request_json(
        TAVILY_SEARCH_URL,
        "Search",
        method="POST",
        payload={
            "api_key": api_key,
            "query": query,
            "search_depth": "basic",
            "max_results": max_results,
        },
    )


def extract_search_query(message: str) -> str:
    """Strip conversational lead-ins ("tell me about ...") from a message."""
    return _LEAD_IN.sub("", message.strip()) or message.strip()


def format_search_context(results: List[Dict[str, Any]]) -> str:
    return "\n\n".join(
        f"[{i}] {r.get('title', '')}\n{r.get('content', '')}\nURL: {r.get('url', '')}"
        for i, r in enumerate(results, start=1)
    )


def should_search(message: str, chat_history: List[Dict[str, Any]], behavior: Dict[str, Any]) -> bool:
    """
    Decide whether a chat turn needs fresh search results.

    Order of checks:
    1. First message of a conversation always searches
    2. Explicit triggers ("search", "latest") always search
    3. Follow-up indicators ("you said", "that") answer from context
    4. Short questions ending in "?" are treated as follow-ups
    5. Anything else is a new topic
    """
    if not chat_history:
        return True

    lower_message = message.lower()

    if any(trigger in lower_message for trigger in behavior.get("explicitTriggers", [])):
        return True

    if any(indicator in lower_message for indicator in behavior.get("followUpIndicators", [])):
        return False

    if len(message.split()) <= behavior.get("maxShortQuestionWords", 6) and "?" in message:
        return False

    return True
