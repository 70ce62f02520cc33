"""
Unit tests for the Salesforce Lambda handler
"""

import json

import pytest
from unittest.mock import MagicMock, patch

from agent_hub.errors import UpstreamError
from agent_hub.handlers.salesforce import NOT_CONFIGURED, convert_with_ai, lambda_handler


@pytest.fixture
def salesforce_env(monkeypatch):
    monkeypatch.setenv("SALESFORCE_INSTANCE_URL", "https://example.my.salesforce.com")
    monkeypatch.setenv("SALESFORCE_ACCESS_TOKEN", "token-123")


@pytest.fixture
def no_salesforce_env(monkeypatch):
    monkeypatch.delenv("SALESFORCE_INSTANCE_URL", raising=False)
    monkeypatch.delenv("SALESFORCE_ACCESS_TOKEN", raising=False)


def _body(result):
    return json.loads(result["body"])


class TestSalesforceHandler:

    @patch('agent_hub.handlers.salesforce.SalesforceClient')
    def test_natural_language_query(self, mock_client_cls, salesforce_env, api_event):
        client = mock_client_cls.from_settings.return_value
        client.query.return_value = {
            "totalSize": 1,
            "records": [{"attributes": {"type": "Opportunity"}, "Id": "006", "Name": "Big deal"}],
        }

        result = lambda_handler(api_event("POST", body=json.dumps({"query": "open opportunities"})), None)
        body = _body(result)

        assert result["statusCode"] == 200
        assert body["success"] is True
        assert body["soql"].startswith("SELECT Id, Name, Amount, StageName")
        assert body["conversion"] == {"confidence": 0.9, "suggestion": None}
        assert body["total_records"] == 1
        assert body["records"] == [{"Id": "006", "Name": "Big deal"}]
        assert result["headers"]["Access-Control-Allow-Origin"] == "*"

    @patch('agent_hub.handlers.salesforce.SalesforceClient')
    def test_raw_soql(self, mock_client_cls, salesforce_env, api_event):
        client = mock_client_cls.from_settings.return_value
        client.query.return_value = {"totalSize": 0, "records": []}

        result = lambda_handler(api_event("POST", body=json.dumps({"soql": "SELECT Id FROM Case"})), None)
        body = _body(result)

        client.query.assert_called_once_with("SELECT Id FROM Case")
        assert body["query"] is None
        assert body["conversion"] is None

    @patch('agent_hub.handlers.salesforce.SalesforceClient')
    def test_untranslatable_query(self, mock_client_cls, salesforce_env, api_event):
        result = lambda_handler(api_event("POST", body=json.dumps({"query": "zzz"})), None)
        body = _body(result)

        assert result["statusCode"] == 400
        assert body["error"].startswith("Could not understand the query")
        assert "show all accounts" in body["examples"]
        mock_client_cls.from_settings.return_value.query.assert_not_called()

    @patch('agent_hub.handlers.salesforce.convert_with_ai')
    @patch('agent_hub.handlers.salesforce.SalesforceClient')
    def test_ai_mode(self, mock_client_cls, mock_convert, salesforce_env, api_event):
        mock_convert.return_value = {"query": "SELECT Id FROM Account LIMIT 10", "confidence": 0.85,
                                     "ai_generated": True}
        client = mock_client_cls.from_settings.return_value
        client.query.return_value = {"totalSize": 0, "records": []}

        result = lambda_handler(
            api_event("POST", body=json.dumps({"query": "top 10 accounts by revenue", "use_ai": True})), None
        )

        assert _body(result)["soql"] == "SELECT Id FROM Account LIMIT 10"
        assert _body(result)["conversion"]["confidence"] == 0.85

    def test_missing_query(self, salesforce_env, api_event):
        result = lambda_handler(api_event("POST", body="{}"), None)

        assert result["statusCode"] == 400

    @pytest.mark.parametrize("payload", [{"query": 5}, {"soql": ["SELECT Id FROM Account"]}, {"query": {"text": "accounts"}}])
    def test_non_string_query(self, payload, salesforce_env, api_event):
        result = lambda_handler(api_event("POST", body=json.dumps(payload)), None)

        assert result["statusCode"] == 400
        assert "must be a string" in _body(result)["error"]

    def test_not_configured(self, no_salesforce_env, api_event):
        result = lambda_handler(api_event("POST", body=json.dumps({"query": "show all accounts"})), None)

        assert result["statusCode"] == 401
        assert _body(result)["error"] == NOT_CONFIGURED

    @patch('agent_hub.handlers.salesforce.SalesforceClient')
    def test_upstream_error(self, mock_client_cls, salesforce_env, api_event):
        mock_client_cls.from_settings.return_value.query.side_effect = UpstreamError("Query", 401, "Session expired")

        result = lambda_handler(api_event("POST", body=json.dumps({"soql": "SELECT Id FROM Account"})), None)

        assert result["statusCode"] == 502
        assert _body(result)["error"] == "Session expired"

    def test_status_not_configured(self, no_salesforce_env, api_event):
        result = lambda_handler(api_event("GET", params={"action": "status"}), None)

        assert _body(result) == {"connected": False, "instance_url": None, "organization": None}

    @patch('agent_hub.handlers.salesforce.SalesforceClient')
    def test_status_connected(self, mock_client_cls, salesforce_env, api_event):
        mock_client_cls.from_settings.return_value.query.return_value = {
            "records": [{"attributes": {}, "Id": "00D", "Name": "Acme Org"}]
        }

        body = _body(lambda_handler(api_event("GET", params={"action": "status"}), None))

        assert body["connected"] is True
        assert body["organization"] == {"Id": "00D", "Name": "Acme Org"}

    @patch('agent_hub.handlers.salesforce.SalesforceClient')
    def test_objects(self, mock_client_cls, salesforce_env, api_event):
        mock_client_cls.from_settings.return_value.queryable_objects.return_value = [
            {"name": "Account", "label": "Account"}
        ]

        body = _body(lambda_handler(api_event("GET", params={"action": "objects"}), None))

        assert body == {"objects": [{"name": "Account", "label": "Account"}]}

    def test_help(self, no_salesforce_env, api_event):
        body = _body(lambda_handler(api_event("GET"), None))

        assert "POST { query }" in body["endpoints"]

    def test_method_not_allowed(self, api_event):
        assert lambda_handler(api_event("PUT"), None)["statusCode"] == 405


class TestConvertWithAI:

    @patch('agent_hub.handlers.salesforce.call_llm')
    def test_strips_code_fences(self, mock_llm):
        mock_llm.return_value = "```sql\nSELECT Id FROM Account LIMIT 10\n```"
        client = MagicMock()
        client.queryable_objects.return_value = [{"name": "Account", "label": "Account"}]

        result = convert_with_ai("top accounts", client)

        assert result == {"query": "SELECT Id FROM Account LIMIT 10", "confidence": 0.85, "ai_generated": True}
        assert "Available objects: Account" in mock_llm.call_args.kwargs["system"]

    @patch('agent_hub.handlers.salesforce.call_llm')
    def test_object_listing_failure_uses_defaults(self, mock_llm):
        mock_llm.return_value = "SELECT Id FROM Lead"
        client = MagicMock()
        client.queryable_objects.side_effect = UpstreamError("List objects", 500)

        result = convert_with_ai("leads", client)

        assert result["query"] == "SELECT Id FROM Lead"
        assert "Common objects:" in mock_llm.call_args.kwargs["system"]
