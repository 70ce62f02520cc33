"""
Environment-driven configuration.

Model ids and regions are plain module constants, as before. Credentials
are read per request through the ``*Settings.from_env()`` constructors so
a missing variable surfaces as a ConfigurationError naming it.
"""

import os
from dataclasses import dataclass
from typing import Optional

from agent_hub.errors import ConfigurationError

AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")

EMBED_MODEL = os.environ.get("EMBED_MODEL", "amazon.titan-embed-text-v2:0")
LLM_MODEL = os.environ.get("LLM_MODEL", "anthropic.claude-3-haiku-20240307-v1:0")

DEFAULT_SALESFORCE_API_VERSION = "v59.0"
DEFAULT_PROMPT_KEY = "prompts/search_agent.json"


def _require(*names: str) -> dict:
    values = {name: os.environ.get(name) for name in names}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigurationError(missing)
    return values


@dataclass(frozen=True)
class SalesforceSettings:
    instance_url: str
    access_token: str
    api_version: str = DEFAULT_SALESFORCE_API_VERSION

    @classmethod
    def from_env(cls) -> "SalesforceSettings":
        values = _require("SALESFORCE_INSTANCE_URL", "SALESFORCE_ACCESS_TOKEN")
        return cls(
            instance_url=values["SALESFORCE_INSTANCE_URL"].rstrip("/"),
            access_token=values["SALESFORCE_ACCESS_TOKEN"],
            api_version=os.environ.get("SALESFORCE_API_VERSION", DEFAULT_SALESFORCE_API_VERSION),
        )

    @classmethod
    def is_configured(cls) -> bool:
        return bool(os.environ.get("SALESFORCE_INSTANCE_URL") and os.environ.get("SALESFORCE_ACCESS_TOKEN"))


@dataclass(frozen=True)
class PineconeSettings:
    api_key: str
    index_name: str

    @classmethod
    def from_env(cls) -> "PineconeSettings":
        values = _require("PINECONE_API_KEY")
        return cls(
            api_key=values["PINECONE_API_KEY"],
            index_name=os.environ.get("PINECONE_INDEX", "documents"),
        )


@dataclass(frozen=True)
class SearchSettings:
    tavily_api_key: str

    @classmethod
    def from_env(cls) -> "SearchSettings":
        values = _require("TAVILY_API_KEY")
        return cls(tavily_api_key=values["TAVILY_API_KEY"])


@dataclass(frozen=True)
class PromptSettings:
    bucket: Optional[str]
    key: str

    @classmethod
    def from_env(cls) -> "PromptSettings":
        return cls(
            bucket=os.environ.get("PROMPT_BUCKET") or None,
            key=os.environ.get("PROMPT_KEY", DEFAULT_PROMPT_KEY),
        )
