"""Queries over entries by the taxonomy terms attached to them."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from stackdelivery.exceptions import ErrorMessages, ValidationError
from stackdelivery.outcome import Outcome, ResultCallback, settle
from stackdelivery.query import QueryResult

if TYPE_CHECKING:
    from stackdelivery.stack import Stack


class Taxonomy:
    """Builder for ``/taxonomies/entries``.

    Keys are taxonomy paths such as ``taxonomies.color``; each method sets
    the constraint for its key, replacing any earlier one.
    """

    def __init__(self, stack: "Stack") -> None:
        self._stack = stack
        self._headers: Dict[str, str] = {}
        self._query: Dict[str, Any] = {}
        self._error: Optional[ValidationError] = None

    def _invalid(self, method: str) -> "Taxonomy":
        if self._error is None:
            self._error = ValidationError(None, 0, {method: ErrorMessages.QUERY_FILTER})
        return self

    def set_header(self, key: str, value: str) -> "Taxonomy":
        if key and value:
            self._headers[key] = value
        return self

    def in_(self, taxonomy: str, terms: Sequence[str]) -> "Taxonomy":
        if not taxonomy or not terms:
            return self._invalid("in")
        self._query[taxonomy] = {"$in": [t.strip() for t in terms]}
        return self

    def or_(self, conditions: Sequence[Dict[str, Any]]) -> "Taxonomy":
        if not conditions:
            return self._invalid("or")
        self._query["$or"] = [dict(c) for c in conditions]
        return self

    def and_(self, conditions: Sequence[Dict[str, Any]]) -> "Taxonomy":
        if not conditions:
            return self._invalid("and")
        self._query["$and"] = [dict(c) for c in conditions]
        return self

    def exists(self, taxonomy: str, value: bool = True) -> "Taxonomy":
        if not taxonomy:
            return self._invalid("exists")
        self._query[taxonomy] = {"$exists": bool(value)}
        return self

    def equal_and_below(self, taxonomy: str, term: str, level: Optional[int] = None) -> "Taxonomy":
        """The term and its descendants, optionally only ``level`` levels deep."""
        if not taxonomy or not term:
            return self._invalid("equal_and_below")
        cond: Dict[str, Any] = {"$eq_below": term}
        if level is not None:
            cond["levels"] = int(level)
        self._query[taxonomy] = cond
        return self

    def below(self, taxonomy: str, term: str) -> "Taxonomy":
        if not taxonomy or not term:
            return self._invalid("below")
        self._query[taxonomy] = {"$below": term}
        return self

    def equal_above(self, taxonomy: str, term: str) -> "Taxonomy":
        if not taxonomy or not term:
            return self._invalid("equal_above")
        self._query[taxonomy] = {"$eq_above": term}
        return self

    def above(self, taxonomy: str, term: str) -> "Taxonomy":
        if not taxonomy or not term:
            return self._invalid("above")
        self._query[taxonomy] = {"$above": term}
        return self

    def build_params(self) -> Dict[str, Any]:
        return {"query": dict(self._query)} if self._query else {}

    async def find(self, callback: Optional[ResultCallback] = None) -> Outcome[QueryResult]:
        return await settle(self._find, callback, self._stack.logger)

    async def _find(self) -> QueryResult:
        if self._error is not None:
            raise self._error
        payload = await self._stack.request(
            "/taxonomies/entries", headers=self._headers, params=self.build_params()
        )
        items = payload.get("entries")
        entries: List[Any] = []
        for doc in items if isinstance(items, list) else []:
            if isinstance(doc, dict):
                ct_uid = doc.get("_content_type_uid")
                ct = self._stack.content_type(ct_uid if isinstance(ct_uid, str) else "")
                entries.append(ct.entry_from_json(doc))
        return QueryResult.from_json(payload, entries)
