"""Sync tools for FastMCP.

One call returns one page of the delta feed; the caller passes the
returned pagination_token back to continue.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from fastmcp import FastMCP

from stackdelivery.mcp.tools.delivery import require_stack, unwrap


def register_sync_tools(mcp: FastMCP, get_state: Callable[[], Any]) -> None:
    """Register the sync tool on the given FastMCP instance."""

    @mcp.tool
    async def sync_page(
        sync_token: Optional[str] = None,
        pagination_token: Optional[str] = None,
        content_type: Optional[str] = None,
        locale: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch one page of the sync feed.

        Pass `pagination_token` from the previous page to continue a run, or
        `sync_token` from a drained run to get changes since then. Without
        tokens a new run starts, optionally filtered by content type/locale.
        """
        stack = require_stack(get_state())
        if pagination_token:
            outcome = await stack.sync_pagination_token(pagination_token)
        elif sync_token:
            outcome = await stack.sync_token(sync_token)
        else:
            outcome = await stack.sync(content_type=content_type, locale=locale)
        page = unwrap(outcome)
        return {
            "items": page.items,
            "total_count": page.count,
            "sync_token": page.sync_token,
            "pagination_token": page.pagination_token,
        }
