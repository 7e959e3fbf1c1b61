"""Tool registration modules for the stackdelivery MCP server."""

from .delivery import register_delivery_tools
from .sync import register_sync_tools

__all__ = ["register_delivery_tools", "register_sync_tools"]
