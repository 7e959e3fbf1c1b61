"""Incremental synchronization against the ``/stacks/sync`` delta feed.

Every entry point issues exactly one request and reports one page. When the
page carries a ``pagination_token`` more pages remain and the caller asks
for the next one with ``sync_pagination_token``; when it carries a
``sync_token`` the feed is drained and that token is the checkpoint for the
next incremental run. The session never loops on its own, so an
interrupted run can always resume from the last token the caller stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from stackdelivery.exceptions import DeliveryError, ErrorMessages, ValidationError
from stackdelivery.outcome import Outcome, ResultCallback, settle
from stackdelivery.utils import format_sync_date

if TYPE_CHECKING:
    from stackdelivery.stack import Stack

SYNC_PATH = "/stacks/sync"


class PublishType(str, Enum):
    ENTRY_PUBLISHED = "entry_published"
    ENTRY_UNPUBLISHED = "entry_unpublished"
    ENTRY_DELETED = "entry_deleted"
    ASSET_PUBLISHED = "asset_published"
    ASSET_UNPUBLISHED = "asset_unpublished"
    ASSET_DELETED = "asset_deleted"
    CONTENT_TYPE_DELETED = "content_type_deleted"


class SyncMode(str, Enum):
    INIT = "init"
    TOKEN = "token"
    PAGINATION_TOKEN = "pagination_token"


class SyncState(str, Enum):
    NOT_STARTED = "not_started"
    REQUESTING = "requesting"
    PAGE_RECEIVED = "page_received"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SyncStack:
    """One page of the delta feed."""

    items: List[Dict[str, Any]] = field(default_factory=list)
    skip: int = 0
    limit: int = 0
    count: int = 0
    sync_token: Optional[str] = None
    pagination_token: Optional[str] = None
    url: str = ""
    json: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_more(self) -> bool:
        return self.pagination_token is not None

    @classmethod
    def from_json(cls, payload: Dict[str, Any], url: str = "") -> "SyncStack":
        items = payload.get("items")
        pagination_token = payload.get("pagination_token")
        sync_token = payload.get("sync_token")
        if not isinstance(pagination_token, str) or not pagination_token:
            pagination_token = None
        if pagination_token is not None or not isinstance(sync_token, str) or not sync_token:
            # a page that still has more to fetch is not a checkpoint
            sync_token = None

        def _int(key: str) -> int:
            value = payload.get(key)
            return value if isinstance(value, int) and not isinstance(value, bool) else 0

        return cls(
            items=[i for i in items if isinstance(i, dict)] if isinstance(items, list) else [],
            skip=_int("skip"),
            limit=_int("limit"),
            count=_int("total_count"),
            sync_token=sync_token,
            pagination_token=pagination_token,
            url=url,
            json=payload,
        )


class SyncSession:
    """Protocol state for one caller-driven sync run."""

    def __init__(self, stack: "Stack") -> None:
        self._stack = stack
        self.state = SyncState.NOT_STARTED
        self.mode: Optional[SyncMode] = None
        self.token: Optional[str] = None
        self.last_page: Optional[SyncStack] = None

    def __repr__(self) -> str:
        return f"SyncSession(state={self.state.value}, mode={self.mode and self.mode.value})"

    async def sync(
        self,
        content_type: Optional[str] = None,
        from_date: Optional[date] = None,
        locale: Optional[str] = None,
        publish_type: Optional[Union[PublishType, str]] = None,
        *,
        callback: Optional[ResultCallback] = None,
    ) -> Outcome[SyncStack]:
        """Start a sync run.

        With no arguments this is a full init. Any combination of filters may
        be given together; this is the only way to combine them.
        """
        params: Dict[str, Any] = {"init": True}
        error: Optional[DeliveryError] = None
        if content_type is not None:
            if not content_type:
                error = ValidationError(None, 0, {"content_type_uid": ErrorMessages.QUERY_FILTER})
            params["content_type_uid"] = content_type
        if locale is not None:
            if not locale:
                error = error or ValidationError(None, 0, {"locale": ErrorMessages.QUERY_FILTER})
            params["locale"] = locale
        if publish_type is not None:
            try:
                params["type"] = PublishType(publish_type).value
            except ValueError:
                error = error or ValidationError(None, 0, {"type": ErrorMessages.QUERY_FILTER})
        if from_date is not None:
            if isinstance(from_date, date):
                params["start_from"] = format_sync_date(from_date)
            else:
                error = error or ValidationError(None, 0, {"start_from": ErrorMessages.QUERY_FILTER})
        return await self._request(params, SyncMode.INIT, None, callback, error)

    async def sync_token(self, token: str, callback: Optional[ResultCallback] = None) -> Outcome[SyncStack]:
        """Resume an incremental run from a stored ``sync_token`` checkpoint."""
        params = {"init": True, "sync_token": token}
        error = None if token else ValidationError(None, 0, {"sync_token": ErrorMessages.QUERY_FILTER})
        return await self._request(params, SyncMode.TOKEN, token, callback, error)

    async def sync_pagination_token(
        self, token: str, callback: Optional[ResultCallback] = None
    ) -> Outcome[SyncStack]:
        """Fetch the next page of an undrained feed.

        ``init`` is still sent alongside the token; the service scopes the
        init by the token.
        """
        params = {"init": True, "pagination_token": token}
        error = (
            None if token else ValidationError(None, 0, {"pagination_token": ErrorMessages.QUERY_FILTER})
        )
        return await self._request(params, SyncMode.PAGINATION_TOKEN, token, callback, error)

    async def sync_from_date(self, from_date: date, callback: Optional[ResultCallback] = None) -> Outcome[SyncStack]:
        if from_date is None:
            error = ValidationError(None, 0, {"start_from": ErrorMessages.QUERY_FILTER})
            return await self._request({"init": True}, SyncMode.INIT, None, callback, error)
        return await self.sync(from_date=from_date, callback=callback)

    async def sync_content_type(self, uid: str, callback: Optional[ResultCallback] = None) -> Outcome[SyncStack]:
        return await self.sync(content_type=uid or "", callback=callback)

    async def sync_locale(self, locale: str, callback: Optional[ResultCallback] = None) -> Outcome[SyncStack]:
        return await self.sync(locale=locale or "", callback=callback)

    async def sync_publish_type(
        self, publish_type: Union[PublishType, str], callback: Optional[ResultCallback] = None
    ) -> Outcome[SyncStack]:
        return await self.sync(publish_type=publish_type or "", callback=callback)

    async def _request(
        self,
        params: Dict[str, Any],
        mode: SyncMode,
        token: Optional[str],
        callback: Optional[ResultCallback],
        error: Optional[DeliveryError],
    ) -> Outcome[SyncStack]:
        self.mode = mode
        self.token = token

        async def _run() -> SyncStack:
            self.state = SyncState.REQUESTING
            try:
                if error is not None:
                    raise error
                payload = await self._stack.request(SYNC_PATH, headers={}, params=params)
            except DeliveryError:
                self.state = SyncState.FAILED
                raise
            page = SyncStack.from_json(payload, url=self._stack.url_for(SYNC_PATH))
            self.last_page = page
            self.state = SyncState.PAGE_RECEIVED if page.has_more else SyncState.DONE
            return page

        return await settle(_run, callback, self._stack.logger)
