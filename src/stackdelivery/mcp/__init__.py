"""MCP server exposing read-only delivery tools."""
