"""
Salesforce MCP Provider
=======================

Exposes Salesforce as MCP tools over stdio.

Launch:
    SALESFORCE_INSTANCE_URL=... SALESFORCE_ACCESS_TOKEN=... \
        python -m agent_hub.mcp.servers.salesforce

Tools:
- salesforce_nlp_query: natural language (or SOQL) query
- salesforce_soql: raw SOQL
- salesforce_search: SOSL search across common objects
- salesforce_describe: fields of one sObject
- salesforce_objects: queryable sObjects
"""

import json
import sys
from typing import Any, Dict, Optional

from agent_hub.config import SalesforceSettings
from agent_hub.errors import AgentHubError, ConfigurationError
from agent_hub.mcp.server import StdioToolServer, ToolHandler, text_result
from agent_hub.salesforce.client import SalesforceClient, format_records
from agent_hub.salesforce.query_translator import translate
from agent_hub.utils.logger import get_logger

logger = get_logger(__name__, stream=sys.stderr)

NOT_CONFIGURED = (
    "Salesforce not connected. Please configure SALESFORCE_INSTANCE_URL "
    "and SALESFORCE_ACCESS_TOKEN."
)


class SalesforceTool(ToolHandler):
    """Shared plumbing: missing credentials and API failures become error results."""

    def __init__(self, client: Optional[SalesforceClient]):
        self.client = client

    def handle(self, arguments: Dict[str, Any]) -> Any:
        if self.client is None:
            return text_result(NOT_CONFIGURED, is_error=True)
        try:
            return self.run(arguments)
        except (AgentHubError, KeyError, ValueError) as e:
            logger.error(f"{self.name} failed: {e}")
            return text_result(f"Salesforce error: {e}", is_error=True)

    def run(self, arguments: Dict[str, Any]) -> Any:
        raise NotImplementedError


class NlpQueryTool(SalesforceTool):
    name = "salesforce_nlp_query"
    description = (
        'Query Salesforce using natural language. Examples: "show all accounts", '
        '"open opportunities", "contacts at Acme Corp", "pipeline forecast"'
    )
    input_schema = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "Natural language query or SOQL query"},
        },
        "required": ["query"],
    }

    def run(self, arguments):
        conversion = translate(arguments["query"])
        if not conversion.ok:
            return text_result(conversion.error, is_error=True)

        result = self.client.query(conversion.query)

        text = ""
        if conversion.suggestion:
            text += f"Note: {conversion.suggestion}\n\n"
        text += f"Query: {conversion.query}\n"
        text += f"Records found: {result.get('totalSize', 0)}\n\n"
        text += format_records(result.get("records", []))
        return text


class SoqlTool(SalesforceTool):
    name = "salesforce_soql"
    description = "Execute a raw SOQL query against Salesforce"
    input_schema = {
        "type": "object",
        "properties": {"soql": {"type": "string", "description": "SOQL query to execute"}},
        "required": ["soql"],
    }

    def run(self, arguments):
        result = self.client.query(arguments["soql"])
        return f"Records found: {result.get('totalSize', 0)}\n\n{format_records(result.get('records', []))}"


class SearchTool(SalesforceTool):
    name = "salesforce_search"
    description = "Search across Salesforce objects (Accounts, Contacts, Leads, Opportunities)"
    input_schema = {
        "type": "object",
        "properties": {"searchTerm": {"type": "string", "description": "Term to search for"}},
        "required": ["searchTerm"],
    }

    def run(self, arguments):
        term = arguments["searchTerm"]
        result = self.client.search(term)
        return f'Search results for "{term}":\n\n{json.dumps(result.get("searchRecords", []), indent=2)}'


class DescribeTool(SalesforceTool):
    name = "salesforce_describe"
    description = "Get metadata about a Salesforce object (fields, relationships)"
    input_schema = {
        "type": "object",
        "properties": {
            "objectName": {
                "type": "string",
                "description": "Salesforce object name (e.g., Account, Contact, Opportunity)",
            },
        },
        "required": ["objectName"],
    }

    def run(self, arguments):
        result = self.client.describe(arguments["objectName"])
        fields = []
        for f in result.get("fields", []):
            line = f"- {f['name']} ({f.get('type')})"
            if f.get("label") and f["label"] != f["name"]:
                line += f" - {f['label']}"
            fields.append(line)
        return f"Object: {result.get('name')}\nLabel: {result.get('label')}\n\nFields:\n" + "\n".join(fields)


class ObjectsTool(SalesforceTool):
    name = "salesforce_objects"
    description = "List all available Salesforce objects"
    input_schema = {"type": "object", "properties": {}}

    def run(self, arguments):
        sobjects = self.client.list_objects().get("sobjects", [])
        lines = [f"- {o['name']}: {o.get('label', o['name'])}" for o in sobjects if o.get("queryable")]
        return "Queryable Salesforce Objects:\n\n" + "\n".join(lines)


TOOLS = (NlpQueryTool, SoqlTool, SearchTool, DescribeTool, ObjectsTool)


def build_server(client: Optional[SalesforceClient] = None, **server_kwargs) -> StdioToolServer:
    server = StdioToolServer("salesforce-mcp-server", **server_kwargs)
    for tool in TOOLS:
        server.register(tool(client))
    return server


def main():
    try:
        client = SalesforceClient.from_settings(SalesforceSettings.from_env())
        logger.info(f"[Salesforce MCP] Connected to: {client.instance_url}")
    except ConfigurationError as e:
        logger.warning(f"[Salesforce MCP] Warning: {e}")
        client = None

    build_server(client).run()


if __name__ == "__main__":
    main()
