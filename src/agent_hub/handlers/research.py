"""
Research Lambda Handler
-----------------------
Two-step company research workflow:

1. Research agent: finds companies matching the topic (structured list)
2. Summarize agent: one structured profile per company

Structured output is obtained by forcing the model to call a tool whose
input schema is the desired JSON shape.

GET  ?query=...  or  POST {"query": "..."}
"""

import json
from typing import Any, Dict, List

from agent_hub.handlers.common import BadRequest, error_response, http_method, json_body, query_params, response
from agent_hub.llm.bedrock_client import converse, forced_tool_input, text_message
from agent_hub.utils.logger import logger

WORKFLOW_ID = "company-research-v1"

COMPANY_SCHEMA = {
    "type": "object",
    "properties": {
        "company_name": {"type": "string"},
        "industry": {"type": "string"},
        "headquarters_location": {"type": "string"},
        "company_size": {"type": "string"},
        "website": {"type": "string"},
        "description": {"type": "string"},
        "founded_year": {"type": "number"},
    },
    "required": [
        "company_name", "industry", "headquarters_location",
        "company_size", "website", "description", "founded_year",
    ],
}

RESEARCH_SCHEMA = {
    "type": "object",
    "properties": {"companies": {"type": "array", "items": COMPANY_SCHEMA}},
    "required": ["companies"],
}

RESEARCH_AGENT = {
    "name": "Web research agent",
    "instructions": (
        "You are a helpful assistant. Find information about the following company "
        "I can use in marketing assets based on the underlying topic."
    ),
    "tool": "company_research",
    "schema": RESEARCH_SCHEMA,
    "temperature": 0.7,
}

SUMMARIZE_AGENT = {
    "name": "Summarize and display",
    "instructions": "Put the research together in a nice display using the output format described.",
    "tool": "company_summary",
    "schema": COMPANY_SCHEMA,
    "temperature": 0.5,
}


def _structured_call(agent: Dict[str, Any], messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    tool = {
        "toolSpec": {
            "name": agent["tool"],
            "description": f"Record the {agent['tool'].replace('_', ' ')} output",
            "inputSchema": {"json": agent["schema"]},
        }
    }
    result = converse(
        messages,
        system=agent["instructions"],
        tools=[tool],
        tool_choice={"tool": {"name": agent["tool"]}},
        temperature=agent["temperature"],
    )
    return forced_tool_input(result, agent["tool"])


def run_research_workflow(input_text: str) -> Dict[str, Any]:
    results = {"workflow_id": WORKFLOW_ID, "steps": []}

    logger.info("Running Web Research Agent...")
    research = _structured_call(RESEARCH_AGENT, [text_message("user", input_text)])
    results["steps"].append({"agent": RESEARCH_AGENT["name"], "output": research})

    history = [
        text_message("user", input_text),
        text_message("assistant", json.dumps(research)),
    ]

    logger.info("Running Summarize Agent...")
    summaries = []
    for company in research.get("companies", []):
        messages = history + [
            text_message("user", f"Summarize this company information: {json.dumps(company)}")
        ]
        summaries.append(_structured_call(SUMMARIZE_AGENT, messages))

    results["steps"].append({"agent": SUMMARIZE_AGENT["name"], "output": summaries})
    results["final_output"] = summaries
    return results


def format_company_card(company: Dict[str, Any]) -> str:
    return (
        f"## {company.get('company_name')}\n\n"
        "| Field | Value |\n"
        "|-------|-------|\n"
        f"| **Industry** | {company.get('industry')} |\n"
        f"| **Headquarters** | {company.get('headquarters_location')} |\n"
        f"| **Company Size** | {company.get('company_size')} |\n"
        f"| **Website** | {company.get('website')} |\n"
        f"| **Founded** | {company.get('founded_year')} |\n\n"
        "### Description\n"
        f"{company.get('description')}\n"
    )


def _output_count(output: Any) -> int:
    if isinstance(output, list):
        return len(output)
    return len(output.get("companies", [])) or 1


def lambda_handler(event, context):
    logger.info(event)

    try:
        if http_method(event) == "POST":
            body = json_body(event)
            query = body.get("query") or body.get("message") or ""
        else:
            params = query_params(event)
            query = params.get("query") or params.get("q") or ""

        if not query:
            return error_response(400, "Query is required. Provide a company name or topic to research.")

        logger.info(f"Starting research workflow for: {query}")
        workflow = run_research_workflow(query)

        return response(200, {
            "success": True,
            "workflow_id": workflow["workflow_id"],
            "query": query,
            "companies": workflow["final_output"],
            "formatted": "\n---\n".join(format_company_card(c) for c in workflow["final_output"]),
            "steps": [
                {"agent": step["agent"], "output_count": _output_count(step["output"])}
                for step in workflow["steps"]
            ],
        })

    except BadRequest as e:
        return error_response(400, str(e))
    except Exception as e:
        logger.error(f"Workflow error: {e}")
        return error_response(500, f"Research workflow failed: {e}")
