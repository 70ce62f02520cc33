"""
Prompt configuration loader.

Looks in S3 first (PROMPT_BUCKET/PROMPT_KEY) so prompts can be changed
without a deploy, then falls back to the packaged search_agent.json.
Loaded configs are cached for CACHE_TTL_SECONDS.
"""

import json
import os
import re
import time
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from agent_hub.config import AWS_REGION, PromptSettings
from agent_hub.utils.logger import logger

CACHE_TTL_SECONDS = 60
LOCAL_PROMPT_PATH = os.path.join(os.path.dirname(__file__), "search_agent.json")

_VARIABLE = re.compile(r"\{\{(\w+)\}\}")


class PromptLoader:

    def __init__(self, ttl: float = CACHE_TTL_SECONDS, local_path: str = LOCAL_PROMPT_PATH):
        self.ttl = ttl
        self.local_path = local_path
        self._cache: Optional[Dict[str, Any]] = None
        self._cache_time = 0.0
        self._s3 = None

    def load(self) -> Dict[str, Any]:
        if self._cache is not None and (time.monotonic() - self._cache_time) < self.ttl:
            return self._cache

        settings = PromptSettings.from_env()
        prompt_config = None

        if settings.bucket:
            try:
                prompt_config = self._load_from_s3(settings.bucket, settings.key)
                logger.info(f"Loaded prompts from s3://{settings.bucket}/{settings.key}")
            except (BotoCoreError, ClientError, ValueError) as e:
                logger.warning(f"Failed to load prompts from S3, falling back to local: {e}")

        if prompt_config is None:
            with open(self.local_path, encoding="utf-8") as f:
                prompt_config = json.load(f)
            logger.info("Loaded prompts from local file")

        self._cache = prompt_config
        self._cache_time = time.monotonic()
        return prompt_config

    def _load_from_s3(self, bucket: str, key: str) -> Dict[str, Any]:
        if self._s3 is None:
            self._s3 = boto3.client("s3", region_name=AWS_REGION)
        response = self._s3.get_object(Bucket=bucket, Key=key)
        return json.loads(response["Body"].read().decode("utf-8"))

    @staticmethod
    def render(template: str, variables: Dict[str, Any]) -> str:
        """Replace {{name}} placeholders; unknown names are left as-is."""
        return _VARIABLE.sub(
            lambda m: str(variables[m.group(1)]) if m.group(1) in variables else m.group(0),
            template,
        )


prompt_loader = PromptLoader()
