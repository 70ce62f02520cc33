"""
Shared fixtures.
"""

import os
import sys

import pytest

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")
SCRIPTED_PROVIDER = os.path.join(FIXTURES_DIR, "scripted_provider.py")
SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def scripted_provider():
    """(command, args) that launch the scripted test provider."""
    return sys.executable, [SCRIPTED_PROVIDER]


@pytest.fixture
def api_event():
    """Build an API Gateway (REST, v1) event."""
    def build(method="GET", params=None, body=None, headers=None, is_base64=False):
        return {
            "httpMethod": method,
            "queryStringParameters": params,
            "headers": headers or {},
            "body": body,
            "isBase64Encoded": is_base64,
        }
    return build
