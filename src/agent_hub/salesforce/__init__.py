from agent_hub.salesforce.client import SalesforceClient
from agent_hub.salesforce.query_translator import translate, TranslationResult

__all__ = ["SalesforceClient", "translate", "TranslationResult"]
