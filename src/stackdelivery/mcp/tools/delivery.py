"""Delivery tools for FastMCP.

Read entries and assets of the configured stack.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP

from stackdelivery.entry import Entry
from stackdelivery.outcome import Outcome
from stackdelivery.stack import Stack


def require_stack(state_obj: Any) -> Stack:
    stack = getattr(state_obj, "stack", None)
    if stack is None:
        raise RuntimeError(
            "Stack is not configured. Set STACKDELIVERY_STACK__API_KEY, "
            "STACKDELIVERY_STACK__DELIVERY_TOKEN, STACKDELIVERY_STACK__ENVIRONMENT."
        )
    return stack


def unwrap(outcome: Outcome[Any]) -> Any:
    """Return the value or raise the delivered error as a tool failure."""
    if outcome.error is not None:
        raise RuntimeError(f"{outcome.error.error_message} (code {outcome.error.error_code})")
    return outcome.value


def _serialize_entry(entry: Entry) -> Dict[str, Any]:
    return {
        "uid": entry.uid,
        "content_type": entry.content_type_uid,
        "title": entry.title,
        "locale": entry.locale,
        "tags": list(entry.tags),
        "data": entry.to_json(),
    }


def register_delivery_tools(mcp: FastMCP, get_state: Callable[[], Any]) -> None:
    """Register entry and asset tools on the given FastMCP instance."""

    @mcp.tool
    async def entries_find(
        content_type: str,
        *,
        where: Optional[Dict[str, Any]] = None,
        only: Optional[List[str]] = None,
        include: Optional[List[str]] = None,
        locale: Optional[str] = None,
        limit: Optional[int] = 10,
        skip: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Query entries of a content type.

        Parameters
        ----------
        content_type: str
            Content type UID, e.g. "blog_post".
        where: dict | None
            Equality filters, field -> value.
        only: list[str] | None
            Restrict returned fields.
        include: list[str] | None
            Reference fields to resolve.
        locale: str | None
            Locale code, e.g. "en-us".
        limit / skip: int | None
            Pagination (default limit 10).
        """
        stack = require_stack(get_state())
        query = stack.content_type(content_type).query().include_count()
        for key, value in (where or {}).items():
            query.where(key, value)
        if only:
            query.only(only)
        if include:
            query.include_reference(*include)
        if locale:
            query.locale(locale)
        if limit is not None:
            query.limit(int(limit))
        if skip is not None:
            query.skip(int(skip))
        result = unwrap(await query.find())
        return {
            "count": result.count,
            "entries": [_serialize_entry(e) for e in result.entries],
        }

    @mcp.tool
    async def entry_fetch(content_type: str, uid: str, locale: Optional[str] = None) -> Dict[str, Any]:
        """Fetch one entry by content type UID and entry UID."""
        stack = require_stack(get_state())
        entry = stack.content_type(content_type).entry(uid)
        if locale:
            entry.set_locale(locale)
        return _serialize_entry(unwrap(await entry.fetch()))

    @mcp.tool
    async def assets_list(limit: int = 20, skip: int = 0) -> Dict[str, Any]:
        """List assets with their file name, type, size and URL."""
        stack = require_stack(get_state())
        library = stack.asset_library().include_count().limit(limit).skip(skip)
        result = unwrap(await library.fetch_all())
        return {
            "count": result.count,
            "assets": [
                {
                    "uid": a.uid,
                    "file_name": a.file_name,
                    "file_type": a.file_type,
                    "file_size": a.file_size,
                    "url": a.url,
                }
                for a in result.assets
            ],
        }
