from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from stackdelivery.entry import Entry
from stackdelivery.exceptions import ConfigurationError, ErrorMessages
from stackdelivery.outcome import Outcome, ResultCallback, settle
from stackdelivery.query import Query

if TYPE_CHECKING:
    from stackdelivery.stack import Stack


class ContentType:
    """A content type of a stack; the entry point for entries and queries."""

    def __init__(self, stack: "Stack", uid: str) -> None:
        self.stack = stack
        self.uid = uid or ""
        self._headers: Dict[str, str] = {}

    def __repr__(self) -> str:
        return f"ContentType(uid={self.uid!r})"

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def set_header(self, key: str, value: str) -> "ContentType":
        if key and value:
            self._headers[key] = value
        return self

    def remove_header(self, key: str) -> "ContentType":
        self._headers.pop(key, None)
        return self

    def entry(self, uid: Optional[str] = None) -> Entry:
        return Entry(self, uid)

    def entry_from_json(self, data: Dict[str, Any]) -> Entry:
        """Wrap an already-fetched entry document."""
        return Entry(self, data=data)

    def query(self) -> Query:
        return Query(self)

    async def fetch(
        self,
        params: Optional[Dict[str, Any]] = None,
        callback: Optional[ResultCallback] = None,
    ) -> Outcome[Dict[str, Any]]:
        """Fetch this content type's schema document.

        ``params`` may carry toggles such as ``include_global_field_schema``.
        """

        async def _run() -> Dict[str, Any]:
            if not self.uid:
                raise ConfigurationError(ErrorMessages.CONTENT_TYPE_UID_REQUIRED)
            payload = await self.stack.request(
                f"/content_types/{self.uid}", headers=self._headers, params=dict(params or {})
            )
            schema = payload.get("content_type")
            return schema if isinstance(schema, dict) else {}

        return await settle(_run, callback, self.stack.logger)
