"""
Salesforce Lambda Handler
-------------------------
Query Salesforce with natural language.

GET  ?action=status   connection check (org name)
GET  ?action=objects  queryable sObjects
GET                   endpoint help
POST {"query": "..."}                   pattern-based translation
POST {"query": "...", "use_ai": true}   LLM translation
POST {"soql": "..."}                    raw SOQL
"""

import re
from typing import Any, Dict

from agent_hub.config import SalesforceSettings
from agent_hub.errors import AgentHubError, ConfigurationError, UpstreamError
from agent_hub.handlers.common import BadRequest, error_response, http_method, json_body, query_params, response
from agent_hub.llm.bedrock_client import call_llm
from agent_hub.salesforce.client import COMMON_OBJECTS, SalesforceClient, clean_records
from agent_hub.salesforce.query_translator import EXAMPLE_QUERIES, translate
from agent_hub.utils.logger import logger

NOT_CONFIGURED = "Salesforce not configured. Set SALESFORCE_INSTANCE_URL and SALESFORCE_ACCESS_TOKEN."

AI_CONFIDENCE = 0.85

ENDPOINTS = {
    "GET ?action=status": "Check Salesforce connection status",
    "GET ?action=objects": "List available Salesforce objects",
    "POST { query }": "Execute natural language query",
    "POST { soql }": "Execute raw SOQL query",
}

SOQL_SYSTEM_PROMPT = """You are a Salesforce SOQL expert. Convert natural language queries to valid SOQL.

{objects_context}

Common field patterns:
- Account: Id, Name, Industry, Type, Phone, Website, BillingCity, BillingState, AnnualRevenue
- Contact: Id, Name, Email, Phone, Title, Account.Name, AccountId
- Opportunity: Id, Name, Amount, StageName, CloseDate, IsClosed, IsWon, Account.Name
- Lead: Id, Name, Email, Company, Status, LeadSource, Rating
- Case: Id, CaseNumber, Subject, Status, Priority, IsClosed, Account.Name

Rules:
1. Always include Id in SELECT
2. Use LIMIT for safety (default 100)
3. Handle date literals: TODAY, THIS_MONTH, LAST_N_DAYS:30, etc.
4. Return ONLY the SOQL query, no explanation

Examples:
- "top 10 accounts by revenue" -> SELECT Id, Name, AnnualRevenue FROM Account ORDER BY AnnualRevenue DESC LIMIT 10
- "contacts at companies in tech industry" -> SELECT Id, Name, Email, Account.Name FROM Contact WHERE Account.Industry = 'Technology' LIMIT 100
- "opportunities closing next week" -> SELECT Id, Name, Amount, CloseDate FROM Opportunity WHERE CloseDate = NEXT_WEEK LIMIT 100"""

_CODE_FENCE = re.compile(r"^```(?:sql|soql)?\s*|\s*```$", re.IGNORECASE)


def convert_with_ai(query: str, client: SalesforceClient) -> Dict[str, Any]:
    """Ask the LLM for SOQL, giving it the org's common objects as context."""
    try:
        available = {o["name"] for o in client.queryable_objects()}
        common = [name for name in COMMON_OBJECTS if name in available]
        objects_context = f"Available objects: {', '.join(common)}"
    except AgentHubError as e:
        logger.warning(f"Could not list Salesforce objects for AI context: {e}")
        objects_context = "Common objects: Account, Contact, Lead, Opportunity, Case, User"

    raw = call_llm(query, system=SOQL_SYSTEM_PROMPT.format(objects_context=objects_context))
    soql = _CODE_FENCE.sub("", raw.strip()).strip()

    return {"query": soql, "confidence": AI_CONFIDENCE, "ai_generated": True}


def _status() -> Dict[str, Any]:
    if not SalesforceSettings.is_configured():
        return response(200, {"connected": False, "instance_url": None, "organization": None})

    settings = SalesforceSettings.from_env()
    try:
        result = SalesforceClient.from_settings(settings).query("SELECT Id, Name FROM Organization LIMIT 1")
        records = clean_records(result.get("records", []))
        organization = records[0] if records else None
    except AgentHubError as e:
        organization = {"error": str(e)}

    return response(200, {
        "connected": True,
        "instance_url": settings.instance_url,
        "organization": organization,
    })


def _objects() -> Dict[str, Any]:
    client = SalesforceClient.from_settings(SalesforceSettings.from_env())
    return response(200, {"objects": client.queryable_objects()})


def _run_query(event: Dict[str, Any]) -> Dict[str, Any]:
    client = SalesforceClient.from_settings(SalesforceSettings.from_env())

    body = json_body(event)
    query = body.get("query")
    soql = body.get("soql")
    use_ai = body.get("use_ai", body.get("useAI", False))

    if not query and not soql:
        raise BadRequest('Either "query" (natural language) or "soql" (raw SOQL) is required')
    for field, value in (("query", query), ("soql", soql)):
        if value is not None and not isinstance(value, str):
            raise BadRequest(f'"{field}" must be a string')

    conversion = None
    if soql:
        final_soql = soql
    elif use_ai:
        conversion = convert_with_ai(query, client)
        final_soql = conversion["query"]
    else:
        result = translate(query)
        if not result.ok:
            return error_response(
                400,
                result.error,
                suggestion="Try enabling AI mode for complex queries or use these examples:",
                examples=list(EXAMPLE_QUERIES),
            )
        conversion = result.to_dict()
        final_soql = result.query

    result = client.query(final_soql)

    return response(200, {
        "success": True,
        "query": query or None,
        "soql": final_soql,
        "conversion": {
            "confidence": conversion.get("confidence"),
            "suggestion": conversion.get("suggestion"),
        } if conversion else None,
        "total_records": result.get("totalSize", 0),
        "records": clean_records(result.get("records", [])),
    })


def lambda_handler(event, context):
    logger.info(event)
    method = http_method(event)

    try:
        if method == "GET":
            action = query_params(event).get("action")
            if action == "status":
                return _status()
            if action == "objects":
                return _objects()
            return response(200, {"endpoints": ENDPOINTS})

        if method == "POST":
            return _run_query(event)

        return error_response(405, "Method not allowed")

    except ConfigurationError:
        return error_response(401, NOT_CONFIGURED)
    except BadRequest as e:
        return error_response(400, str(e))
    except UpstreamError as e:
        logger.error(f"Salesforce error: {e}")
        return error_response(502, str(e))
    except Exception as e:
        logger.error(f"Error processing request: {e}")
        return error_response(500, str(e))
