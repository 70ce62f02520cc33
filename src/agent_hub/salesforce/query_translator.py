"""
Natural Language to SOQL Translator
===================================

Maps free text such as "open opportunities" or "contacts at Acme Corp" to a
SOQL query using an ordered table of regex rules.

Resolution order:
1. Input that already is SOQL/SOSL is passed through untouched
2. First matching rule in QUERY_RULES (confidence 0.9)
3. Bare object keyword, e.g. "xyz leads" (confidence 0.5, with suggestion)
4. Error with example inputs

Rules are data, not code paths: more specific rules sit above the generic
"show <objects>" ones, so reordering the table changes behavior.

Free text captured by a rule is never pasted into a query verbatim; it goes
through escape_soql_string / escape_soql_like first.
"""

import re
from dataclasses import dataclass, asdict
from typing import Callable, Optional, Tuple, Union

Template = Union[str, Callable[["re.Match"], str]]

EXAMPLE_QUERIES = (
    "show all accounts",
    "open opportunities",
    "contacts at Acme Corp",
    "pipeline forecast",
    "leads from California",
    "how many contacts",
)

TRANSLATION_ERROR = (
    'Could not understand the query. Try: "show all accounts", '
    '"open opportunities", "contacts at Acme Corp"'
)

RULE_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.5
FALLBACK_LIMIT = 50

_PASSTHROUGH = re.compile(r"^(?:select\b|find\s*\{)", re.IGNORECASE)

# SOQL string literal escapes; LIKE additionally treats % and _ as wildcards
_SOQL_STRING_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}

_SOSL_RESERVED = set('?&|!{}[]()^~*:\\"\'+-')


def escape_soql_string(value: str) -> str:
    """Escape a value for use inside a single-quoted SOQL literal."""
    return "".join(_SOQL_STRING_ESCAPES.get(ch, ch) for ch in value)


def escape_soql_like(value: str) -> str:
    """Escape a value for use inside a quoted LIKE pattern."""
    escaped = escape_soql_string(value)
    return escaped.replace("%", "\\%").replace("_", "\\_")


def escape_sosl_term(value: str) -> str:
    """Escape reserved characters of a SOSL FIND {...} search term."""
    return "".join("\\" + ch if ch in _SOSL_RESERVED else ch for ch in value)


@dataclass(frozen=True)
class QueryRule:
    name: str
    pattern: "re.Pattern"
    template: Template

    def render(self, match: "re.Match") -> str:
        if callable(self.template):
            return self.template(match)
        return self.template


@dataclass(frozen=True)
class TranslationResult:
    query: Optional[str]
    confidence: float
    raw_passthrough: bool = False
    suggestion: Optional[str] = None
    error: Optional[str] = None
    rule: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.query is not None

    def to_dict(self) -> dict:
        return asdict(self)


def _rule(name: str, pattern: str, template: Template) -> QueryRule:
    return QueryRule(name, re.compile(pattern, re.IGNORECASE), template)


def _accounts_in_region(match: "re.Match") -> str:
    region = escape_soql_string(match.group(1).strip())
    return (
        "SELECT Id, Name, Industry, Type FROM Account "
        f"WHERE BillingState = '{region}' OR BillingCountry = '{region}' LIMIT 100"
    )


def _contacts_at_account(match: "re.Match") -> str:
    account = escape_soql_like(match.group(1).strip())
    return (
        "SELECT Id, Name, Email, Phone FROM Contact "
        f"WHERE Account.Name LIKE '%{account}%' LIMIT 100"
    )


def _leads_in_region(match: "re.Match") -> str:
    region = escape_soql_string(match.group(1).strip())
    return (
        "SELECT Id, Name, Email, Company, Status FROM Lead "
        f"WHERE State = '{region}' OR Country = '{region}' LIMIT 100"
    )


_OPPS = r"(?:opportunities|opportunity|opps?|deals?)"
_LIST = r"(?:show|list|get|find)\s+(?:all\s+)?"

QUERY_RULES: Tuple[QueryRule, ...] = (
    # Counts
    _rule("count_accounts", r"(?:how many|count)\s+accounts?",
          "SELECT COUNT() FROM Account"),
    _rule("count_contacts", r"(?:how many|count)\s+contacts?",
          "SELECT COUNT() FROM Contact"),
    _rule("count_opportunities", r"(?:how many|count)\s+(?:opportunities|opportunity|deals?)",
          "SELECT COUNT() FROM Opportunity"),
    _rule("count_leads", r"(?:how many|count)\s+leads?",
          "SELECT COUNT() FROM Lead"),

    # Accounts
    _rule("accounts_in_region", r"accounts?\s+(?:in|from)\s+(\S.*?)\s*$", _accounts_in_region),
    _rule("largest_accounts", r"(?:largest|biggest|top)\s+accounts?",
          "SELECT Id, Name, AnnualRevenue, Industry FROM Account "
          "WHERE AnnualRevenue != null ORDER BY AnnualRevenue DESC LIMIT 10"),
    _rule("list_accounts", _LIST + r"accounts?",
          "SELECT Id, Name, Industry, Type, Phone, Website FROM Account LIMIT 100"),

    # Contacts
    _rule("contacts_at_account", r"contacts?\s+(?:at|for|from)\s+(\S.*?)\s*$", _contacts_at_account),
    _rule("list_contacts", _LIST + r"contacts?",
          "SELECT Id, Name, Email, Phone, Account.Name FROM Contact LIMIT 100"),

    # Opportunities
    _rule("opportunities_closing_this_month", r"(?:opportunities|deals?)\s+closing\s+(?:this\s+)?month",
          "SELECT Id, Name, Amount, StageName, CloseDate, Account.Name FROM Opportunity "
          "WHERE CloseDate = THIS_MONTH AND IsClosed = false"),
    _rule("open_opportunities", r"(?:open|active)\s+" + _OPPS,
          "SELECT Id, Name, Amount, StageName, CloseDate, Account.Name FROM Opportunity "
          "WHERE IsClosed = false ORDER BY Amount DESC LIMIT 100"),
    _rule("won_opportunities", r"(?:won|closed[\s-]?won)\s+" + _OPPS,
          "SELECT Id, Name, Amount, CloseDate, Account.Name FROM Opportunity "
          "WHERE StageName = 'Closed Won' ORDER BY CloseDate DESC LIMIT 100"),
    _rule("lost_opportunities", r"(?:lost|closed[\s-]?lost)\s+" + _OPPS,
          "SELECT Id, Name, Amount, CloseDate, Account.Name FROM Opportunity "
          "WHERE StageName = 'Closed Lost' ORDER BY CloseDate DESC LIMIT 100"),
    _rule("list_opportunities", _LIST + _OPPS,
          "SELECT Id, Name, Amount, StageName, CloseDate, Account.Name FROM Opportunity LIMIT 100"),
    _rule("pipeline", r"pipeline|forecast",
          "SELECT StageName, COUNT(Id) numDeals, SUM(Amount) totalValue FROM Opportunity "
          "WHERE IsClosed = false GROUP BY StageName"),

    # Leads
    _rule("leads_in_region", r"leads?\s+(?:in|from)\s+(\S.*?)\s*$", _leads_in_region),
    _rule("new_leads", r"(?:new|recent)\s+leads?",
          "SELECT Id, Name, Email, Company, Status, CreatedDate FROM Lead "
          "ORDER BY CreatedDate DESC LIMIT 50"),
    _rule("hot_leads", r"(?:hot|qualified)\s+leads?",
          "SELECT Id, Name, Email, Company, Status FROM Lead "
          "WHERE Rating = 'Hot' OR Status = 'Qualified' LIMIT 100"),
    _rule("list_leads", _LIST + r"leads?",
          "SELECT Id, Name, Email, Company, Status, LeadSource FROM Lead LIMIT 100"),

    # Cases
    _rule("open_cases", r"(?:open|active)\s+(?:cases?|tickets?)",
          "SELECT Id, CaseNumber, Subject, Status, Priority, Account.Name FROM Case "
          "WHERE IsClosed = false ORDER BY Priority LIMIT 100"),
    _rule("list_cases", _LIST + r"(?:cases?|tickets?)",
          "SELECT Id, CaseNumber, Subject, Status, Priority, Account.Name FROM Case LIMIT 100"),

    # Users
    _rule("list_users", _LIST + r"users?",
          "SELECT Id, Name, Email, Profile.Name, IsActive FROM User WHERE IsActive = true LIMIT 100"),
)

# keyword -> (sObject, identifying fields)
_ENTITY_FIELDS = {
    "account": ("Account", "Id, Name"),
    "contact": ("Contact", "Id, Name"),
    "lead": ("Lead", "Id, Name"),
    "opportunity": ("Opportunity", "Id, Name"),
    "case": ("Case", "Id, CaseNumber, Subject"),
    "user": ("User", "Id, Name"),
}

_ENTITY_KEYWORD = re.compile(
    r"\b(accounts?|contacts?|leads?|opportunit(?:y|ies)|cases?|users?)\b",
    re.IGNORECASE,
)


def _normalize_entity(word: str) -> str:
    word = word.lower()
    if word == "opportunities":
        return "opportunity"
    return word[:-1] if word.endswith("s") else word


def translate(text: str, rules: Tuple[QueryRule, ...] = QUERY_RULES) -> TranslationResult:
    """
    Translate free text into a SOQL query.

    Args:
        text: User input (natural language, SOQL or SOSL)
        rules: Ordered rule table; first match wins

    Returns:
        TranslationResult with either ``query`` or ``error`` set
    """
    stripped = (text or "").strip()

    if _PASSTHROUGH.match(stripped):
        return TranslationResult(query=stripped, confidence=1.0, raw_passthrough=True)

    if stripped:
        for rule in rules:
            match = rule.pattern.search(stripped)
            if match:
                return TranslationResult(
                    query=rule.render(match),
                    confidence=RULE_CONFIDENCE,
                    rule=rule.name,
                )

        entity_match = _ENTITY_KEYWORD.search(stripped)
        if entity_match:
            sobject, fields = _ENTITY_FIELDS[_normalize_entity(entity_match.group(1))]
            return TranslationResult(
                query=f"SELECT {fields} FROM {sobject} LIMIT {FALLBACK_LIMIT}",
                confidence=FALLBACK_CONFIDENCE,
                suggestion=f"Could not parse specific query. Showing {sobject} records.",
            )

    return TranslationResult(query=None, confidence=0.0, error=TRANSLATION_ERROR)
