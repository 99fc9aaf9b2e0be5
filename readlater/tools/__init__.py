"""MCP tools for readlater."""
