"""
Minimal JSON-over-HTTP helper built on urllib.

Non-2xx responses raise UpstreamError carrying the vendor's message when the
error body has one.
"""

import json
import urllib.request
import urllib.error
from typing import Any, Dict, Optional

from agent_hub.errors import UpstreamError

USER_AGENT = "AgentHub/1.0"


def _vendor_message(payload: Any) -> Optional[str]:
    # Salesforce answers errors as a list of {"message", "errorCode"}
    if isinstance(payload, list) and payload and isinstance(payload[0], dict):
        payload = payload[0]
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error") or payload.get("detail")
        if isinstance(message, dict):
            message = message.get("message")
        if isinstance(message, str) and message:
            return message
    return None


def request_json(
    url: str,
    operation: str,
    method: str = "GET",
    payload: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: int = 30,
) -> Any:
    """
    Send a request and decode the JSON response body.

    Args:
        url: Absolute URL
        operation: Human readable name used in error messages ("Query", "Search")
        method: HTTP method
        payload: Optional JSON body
        headers: Extra headers (auth etc.)
        timeout: Socket timeout in seconds

    Returns:
        Decoded JSON response

    Raises:
        UpstreamError: on a non-2xx response
    """
    request_headers = {"User-Agent": USER_AGENT, "Content-Type": "application/json"}
    if headers:
        request_headers.update(headers)

    data = json.dumps(payload).encode("utf-8") if payload is not None else None
    request = urllib.request.Request(url, data=data, headers=request_headers, method=method)

    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            body = response.read().decode("utf-8")
    except urllib.error.HTTPError as e:
        error_body = e.read().decode("utf-8", errors="replace")
        try:
            message = _vendor_message(json.loads(error_body))
        except ValueError:
            message = None
        raise UpstreamError(operation, e.code, message) from e

    return json.loads(body) if body else {}
