"""
Unit tests for the natural language to SOQL translator
"""

import re

import pytest

from agent_hub.salesforce.query_translator import (
    FALLBACK_CONFIDENCE,
    QUERY_RULES,
    RULE_CONFIDENCE,
    TRANSLATION_ERROR,
    QueryRule,
    escape_soql_like,
    escape_soql_string,
    escape_sosl_term,
    translate,
)


class TestPassthrough:

    @pytest.mark.parametrize("query", [
        "SELECT Id FROM Account",
        "select Name from Contact LIMIT 5",
        "  SeLeCt Id FROM Lead  ",
        "FIND {Acme} IN ALL FIELDS",
        "find{Acme}",
        "select",
        "SELECT\u00a0Id FROM Account",
    ])
    def test_structured_query_passes_through(self, query):
        result = translate(query)

        assert result.query == query.strip()
        assert result.confidence == 1.0
        assert result.raw_passthrough is True
        assert result.error is None

    def test_select_prefix_of_longer_word_is_translated(self):
        result = translate("selection of accounts")

        assert result.raw_passthrough is False

    def test_find_without_brace_is_translated(self):
        result = translate("find all accounts")

        assert result.raw_passthrough is False
        assert result.rule == "list_accounts"


class TestRules:

    @pytest.mark.parametrize("text,rule", [
        ("how many accounts", "count_accounts"),
        ("count contacts", "count_contacts"),
        ("How many deals do we have?", "count_opportunities"),
        ("count leads", "count_leads"),
        ("accounts in California", "accounts_in_region"),
        ("top accounts", "largest_accounts"),
        ("show all accounts", "list_accounts"),
        ("contacts at Acme Corp", "contacts_at_account"),
        ("list contacts", "list_contacts"),
        ("opportunities closing this month", "opportunities_closing_this_month"),
        ("open opportunities", "open_opportunities"),
        ("closed won deals", "won_opportunities"),
        ("lost opps", "lost_opportunities"),
        ("show opportunities", "list_opportunities"),
        ("pipeline forecast", "pipeline"),
        ("leads from California", "leads_in_region"),
        ("recent leads", "new_leads"),
        ("hot leads", "hot_leads"),
        ("get leads", "list_leads"),
        ("open tickets", "open_cases"),
        ("show cases", "list_cases"),
        ("list users", "list_users"),
    ])
    def test_rule_selection(self, text, rule):
        result = translate(text)

        assert result.rule == rule
        assert result.confidence == RULE_CONFIDENCE
        assert result.raw_passthrough is False
        assert result.suggestion is None

    def test_generic_list_does_not_shadow_region(self):
        generic = translate("show all accounts")
        region = translate("accounts in California")

        assert generic.query == "SELECT Id, Name, Industry, Type, Phone, Website FROM Account LIMIT 100"
        assert region.query == (
            "SELECT Id, Name, Industry, Type FROM Account "
            "WHERE BillingState = 'California' OR BillingCountry = 'California' LIMIT 100"
        )

    def test_count_before_list(self):
        assert translate("how many accounts").query == "SELECT COUNT() FROM Account"

    def test_multi_word_region(self):
        result = translate("show accounts in New York")

        assert "BillingState = 'New York'" in result.query

    def test_contacts_at_account(self):
        result = translate("contacts at Acme Corp")

        assert result.query == (
            "SELECT Id, Name, Email, Phone FROM Contact "
            "WHERE Account.Name LIKE '%Acme Corp%' LIMIT 100"
        )

    def test_case_insensitive(self):
        assert translate("OPEN OPPORTUNITIES").rule == "open_opportunities"

    def test_first_match_wins_in_custom_table(self):
        rules = (
            QueryRule("first", re.compile("widgets", re.IGNORECASE), "SELECT Id FROM Widget__c"),
            QueryRule("second", re.compile("widgets", re.IGNORECASE), "SELECT Name FROM Widget__c"),
        )

        result = translate("show widgets", rules=rules)

        assert result.rule == "first"
        assert result.query == "SELECT Id FROM Widget__c"

    def test_rule_names_are_unique(self):
        names = [rule.name for rule in QUERY_RULES]
        assert len(names) == len(set(names))


class TestInjection:

    def test_quote_in_region_is_escaped(self):
        result = translate("accounts in X' OR Name != '")

        assert "BillingState = 'X\\' OR Name != \\''" in result.query

    def test_like_wildcards_are_escaped(self):
        result = translate("contacts at 100%_Club")

        assert "LIKE '%100\\%\\_Club%'" in result.query

    def test_escape_soql_string(self):
        assert escape_soql_string("O'Brien\\") == "O\\'Brien\\\\"
        assert escape_soql_string('say "hi"\n') == 'say \\"hi\\"\\n'

    def test_escape_soql_like(self):
        assert escape_soql_like("50%_off") == "50\\%\\_off"

    def test_escape_sosl_term(self):
        assert escape_sosl_term("Acme {Corp}") == "Acme \\{Corp\\}"
        assert escape_sosl_term("a-b") == "a\\-b"


class TestFallback:

    def test_bare_entity_keyword(self):
        result = translate("xyz leads")

        assert result.confidence == FALLBACK_CONFIDENCE
        assert "FROM Lead" in result.query
        assert result.query == "SELECT Id, Name FROM Lead LIMIT 50"
        assert result.suggestion == "Could not parse specific query. Showing Lead records."

    def test_plural_opportunities(self):
        result = translate("weird opportunities report")

        assert result.query == "SELECT Id, Name FROM Opportunity LIMIT 50"

    def test_case_identifying_fields(self):
        result = translate("my case please")

        assert result.query == "SELECT Id, CaseNumber, Subject FROM Case LIMIT 50"


class TestErrors:

    def test_unrecognized_input(self):
        result = translate("zzz not a real query")

        assert result.query is None
        assert result.confidence == 0
        assert result.error == TRANSLATION_ERROR
        assert result.ok is False

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_blank_input(self, text):
        result = translate(text)

        assert result.query is None
        assert result.error

    def test_to_dict(self):
        data = translate("xyz leads").to_dict()

        assert data["confidence"] == FALLBACK_CONFIDENCE
        assert data["raw_passthrough"] is False
        assert data["error"] is None
