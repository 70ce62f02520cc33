"""
Shared API Gateway request/response helpers.
"""

import base64
import json
from typing import Any, Dict, Optional

# CORS headers for API Gateway responses
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
}


class BadRequest(Exception):
    """Raised while parsing a request; becomes a 400 response."""


def response(status_code: int, body: Any, headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Build API Gateway response."""
    merged = dict(CORS_HEADERS)
    if headers:
        merged.update(headers)
    return {
        "statusCode": status_code,
        "headers": merged,
        "body": json.dumps(body, default=str),
    }


def error_response(status_code: int, message: str, **extra) -> Dict[str, Any]:
    return response(status_code, {"error": message, **extra})


def http_method(event: Dict[str, Any]) -> str:
    # REST API (v1) puts it at the top level, HTTP API (v2) under requestContext
    method = event.get("httpMethod") or (
        event.get("requestContext", {}).get("http", {}).get("method")
    )
    return (method or "GET").upper()


def query_params(event: Dict[str, Any]) -> Dict[str, str]:
    return event.get("queryStringParameters") or {}


def header(event: Dict[str, Any], name: str, default: str = "") -> str:
    headers = event.get("headers") or {}
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return default


def raw_body(event: Dict[str, Any]) -> bytes:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        return base64.b64decode(body)
    return body.encode("utf-8") if isinstance(body, str) else body


def json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    body = event.get("body")
    if not body:
        return {}
    if isinstance(body, dict):
        return body
    try:
        parsed = json.loads(raw_body(event).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise BadRequest(f"Invalid JSON body: {e}") from e
    if not isinstance(parsed, dict):
        raise BadRequest("JSON body must be an object")
    return parsed
