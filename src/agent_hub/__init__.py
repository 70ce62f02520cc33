"""
Agent Hub
=========

Serverless handlers that glue an LLM, web search, Salesforce, a vector
document index and local MCP tool providers together.

Core pieces:
- salesforce.query_translator: natural language -> SOQL via ordered rules
- mcp.client: stdio JSON-RPC client for a tool provider subprocess
- mcp.registry: catalog of capabilities across several providers
"""

__version__ = "0.1.0"
