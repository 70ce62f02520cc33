"""
Salesforce REST API client (query, describe, sObject listing, SOSL search).
"""

import json
import urllib.parse
from typing import Any, Dict, List

from agent_hub.config import SalesforceSettings
from agent_hub.salesforce.query_translator import escape_sosl_term
from agent_hub.utils.http import request_json
from agent_hub.utils.logger import logger

SEARCH_RETURNING = (
    "Account(Id, Name), Contact(Id, Name, Email), "
    "Lead(Id, Name, Email), Opportunity(Id, Name, Amount)"
)

# Objects offered to the AI converter as context
COMMON_OBJECTS = ["Account", "Contact", "Lead", "Opportunity", "Case", "User", "Task", "Event"]


class SalesforceClient:
    """Thin wrapper over /services/data/<version>/ endpoints using a bearer token."""

    def __init__(self, instance_url: str, access_token: str, api_version: str = "v59.0"):
        self.instance_url = instance_url.rstrip("/")
        self.access_token = access_token
        self.api_version = api_version

    @classmethod
    def from_settings(cls, settings: SalesforceSettings) -> "SalesforceClient":
        return cls(settings.instance_url, settings.access_token, settings.api_version)

    def _url(self, path: str) -> str:
        return f"{self.instance_url}/services/data/{self.api_version}/{path}"

    def _get(self, path: str, operation: str) -> Any:
        return request_json(
            self._url(path),
            operation,
            headers={"Authorization": f"Bearer {self.access_token}"},
        )

    def query(self, soql: str) -> Dict[str, Any]:
        """Run SOQL; returns {"totalSize", "done", "records"}."""
        logger.info(f"Salesforce query: {soql}")
        return self._get(f"query?q={urllib.parse.quote(soql)}", "Query")

    def describe(self, object_name: str) -> Dict[str, Any]:
        """Metadata for one sObject: {"name", "label", "fields"}."""
        return self._get(f"sobjects/{urllib.parse.quote(object_name)}/describe", "Describe")

    def list_objects(self) -> Dict[str, Any]:
        return self._get("sobjects", "List objects")

    def search(self, search_term: str) -> Dict[str, Any]:
        sosl = f"FIND {{{escape_sosl_term(search_term)}}} IN ALL FIELDS RETURNING {SEARCH_RETURNING}"
        return self._get(f"search?q={urllib.parse.quote(sosl)}", "Search")

    def queryable_objects(self) -> List[Dict[str, str]]:
        """Queryable sObjects minus the __History/__Share shadow objects."""
        sobjects = self.list_objects().get("sobjects", [])
        return [
            {"name": o["name"], "label": o.get("label", o["name"])}
            for o in sobjects
            if o.get("queryable")
            and not o["name"].endswith("__History")
            and not o["name"].endswith("__Share")
        ]


def clean_records(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Drop the per-record ``attributes`` block Salesforce attaches."""
    return [{k: v for k, v in record.items() if k != "attributes"} for record in records]


def format_records(records: List[Dict[str, Any]]) -> str:
    """Render records as numbered ``key: value`` lines for tool output."""
    if not records:
        return "No records found."

    lines = []
    for i, record in enumerate(records, start=1):
        fields = []
        for key, value in record.items():
            if key == "attributes":
                continue
            if isinstance(value, dict):
                # relationship field, e.g. Account.Name
                value = value.get("Name") or json.dumps(value)
            fields.append(f"{key}: {value}")
        lines.append(f"{i}. {', '.join(fields)}")
    return "\n".join(lines)
