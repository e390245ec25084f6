"""
MCP Protocol implementation.

Message schemas, request routing and the HTTP+SSE transport.
"""
