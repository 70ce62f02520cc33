"""
Lambda entry points (API Gateway proxy integration).

- chat.lambda_handler: web-search assistant
- research.lambda_handler: company research workflow
- documents.lambda_handler: document index upload/list/delete/search
- salesforce.lambda_handler: natural language Salesforce queries
- mcp.lambda_handler: MCP provider management and tool execution
- agent.lambda_handler: tool-augmented chat over registered MCP tools
"""
