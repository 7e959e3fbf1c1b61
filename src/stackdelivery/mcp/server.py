"""stackdelivery MCP server entrypoint using FastMCP.

Exposes delivery tools (entries, assets, sync) for the configured stack.
Run with:
  - stackdelivery-mcp
  - or: python -m stackdelivery.mcp.server (ensure PYTHONPATH includes ./src)
"""
from __future__ import annotations

import logging
from typing import Optional

from fastmcp import FastMCP

from stackdelivery.config import Settings, load_settings
from stackdelivery.exceptions import ConfigurationError
from stackdelivery.mcp.tools import register_delivery_tools, register_sync_tools
from stackdelivery.stack import Stack


class AppState:
    """Application state shared by MCP tools."""

    def __init__(self, settings: Settings, logger: Optional[logging.Logger] = None) -> None:
        self.settings = settings
        self.logger = logger or logging.getLogger("stackdelivery.mcp")
        self.stack: Optional[Stack] = None

    def init_stack(self) -> None:
        """Build the stack from configuration; leave it unset when credentials are missing."""
        try:
            self.stack = Stack.from_settings(self.settings, logger=self.logger)
        except ConfigurationError as exc:
            self.logger.warning("stack not configured: %s", exc.error_message)
            self.stack = None


# Global state and server instance
_state: Optional[AppState] = None
mcp = FastMCP("stackdelivery MCP Server")


# ----- Tools -----

@mcp.tool
def health() -> str:
    """Simple health check tool."""
    return "ok"


# ----- Entrypoint -----

def main() -> None:
    """Initialize state and run the MCP server."""
    global _state
    settings = load_settings()
    logging.basicConfig(level=settings.mcp.log_level)
    _state = AppState(settings)
    _state.init_stack()
    register_delivery_tools(mcp, get_state=lambda: _state)
    register_sync_tools(mcp, get_state=lambda: _state)
    # Choose transport based on configuration: stdio (default), http, or sse
    transport = settings.mcp.transport
    if transport in ("http", "sse"):
        mcp.run(transport=transport, host=settings.mcp.host, port=settings.mcp.port)
    else:
        mcp.run()


if __name__ == "__main__":  # pragma: no cover
    main()
