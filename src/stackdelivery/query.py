"""Fluent entry queries.

A ``Query`` accumulates filters, projection, sort, pagination and feature
toggles for one content type. Executing it snapshots that state into a
parameter map and issues a single GET; the builder keeps its state and can
be executed again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence

from stackdelivery.asset import SortOrder
from stackdelivery.entry import Entry
from stackdelivery.exceptions import ConfigurationError, ErrorMessages, ValidationError
from stackdelivery.filters import (
    Combinator,
    FilterExpression,
    FilterSet,
    Operator,
    composite,
    embed_subquery,
)
from stackdelivery.outcome import Outcome, ResultCallback, settle
from stackdelivery.projection import ProjectionSpec, field_names
from stackdelivery.utils import is_count, merge_headers

if TYPE_CHECKING:
    from stackdelivery.content_type import ContentType


@dataclass
class QueryResult:
    """Entries and metadata from one query response."""

    entries: List[Entry] = field(default_factory=list)
    count: Optional[int] = None
    schema: Optional[List[Any]] = None
    content_type: Optional[Dict[str, Any]] = None
    json: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, payload: Dict[str, Any], entries: List[Entry]) -> "QueryResult":
        count = payload.get("count")
        if not isinstance(count, int) or isinstance(count, bool):
            # ``count()`` queries answer with the number under "entries"
            alt = payload.get("entries")
            count = alt if isinstance(alt, int) and not isinstance(alt, bool) else None
        schema = payload.get("schema")
        content_type = payload.get("content_type")
        return cls(
            entries=entries,
            count=count,
            schema=schema if isinstance(schema, list) else None,
            content_type=content_type if isinstance(content_type, dict) else None,
            json=payload,
        )


class Query:
    """Query builder for the entries of one content type."""

    def __init__(self, content_type: "ContentType") -> None:
        self.content_type = content_type
        self._stack = content_type.stack
        self._headers: Dict[str, str] = {}
        self._filters = FilterSet()
        self._projection = ProjectionSpec()
        self._sort: Optional[tuple] = None
        self._limit: Optional[int] = None
        self._skip: Optional[int] = None
        self._locale: Optional[str] = None
        self._toggles: Dict[str, Any] = {}
        self._raw: Dict[str, Any] = {}
        self._error: Optional[ValidationError] = None

    def __repr__(self) -> str:
        return f"Query(content_type={self.content_type.uid!r})"

    @property
    def content_type_uid(self) -> str:
        return self.content_type.uid

    @property
    def filters(self) -> FilterSet:
        return self._filters

    # ----- headers -----

    def set_header(self, key: str, value: str) -> "Query":
        if key and value:
            self._headers[key] = value
        return self

    def remove_header(self, key: str) -> "Query":
        self._headers.pop(key, None)
        return self

    # ----- filters -----

    def _invalid(self, method: str) -> "Query":
        # the first problem wins; it is delivered by the next find()
        if self._error is None:
            self._error = ValidationError(None, 0, {method: ErrorMessages.QUERY_FILTER})
        return self

    def _apply(self, method: str, key: Optional[str], op: Operator, value: Any, **kw: Any) -> "Query":
        if not key or value is None:
            return self._invalid(method)
        self._filters.apply(FilterExpression(key, op, value, **kw))
        return self

    def where(self, key: str, value: Any) -> "Query":
        return self._apply("where", key, Operator.EQ, value)

    def less_than(self, key: str, value: Any) -> "Query":
        return self._apply("less_than", key, Operator.LT, value)

    def less_than_or_equal_to(self, key: str, value: Any) -> "Query":
        return self._apply("less_than_or_equal_to", key, Operator.LTE, value)

    def greater_than(self, key: str, value: Any) -> "Query":
        return self._apply("greater_than", key, Operator.GT, value)

    def greater_than_or_equal_to(self, key: str, value: Any) -> "Query":
        return self._apply("greater_than_or_equal_to", key, Operator.GTE, value)

    def not_equal_to(self, key: str, value: Any) -> "Query":
        return self._apply("not_equal_to", key, Operator.NE, value)

    def contained_in(self, key: str, values: Optional[Sequence[Any]]) -> "Query":
        if values is None or isinstance(values, (str, bytes)):
            return self._invalid("contained_in")
        return self._apply("contained_in", key, Operator.IN, list(values))

    def not_contained_in(self, key: str, values: Optional[Sequence[Any]]) -> "Query":
        if values is None or isinstance(values, (str, bytes)):
            return self._invalid("not_contained_in")
        return self._apply("not_contained_in", key, Operator.NIN, list(values))

    def exists(self, key: str) -> "Query":
        return self._apply("exists", key, Operator.EXISTS, True)

    def not_exists(self, key: str) -> "Query":
        return self._apply("not_exists", key, Operator.NOT_EXISTS, False)

    def regex(self, key: str, pattern: str, modifiers: Optional[str] = None) -> "Query":
        return self._apply("regex", key, Operator.REGEX, pattern, regex_modifiers=modifiers)

    def and_(self, queries: Iterable["Query"]) -> "Query":
        """``$and`` of the given queries' filters; their other state is ignored."""
        children = list(queries or [])
        if not children:
            return self._invalid("and")
        self._filters.combine(composite(Combinator.AND, [q.filters for q in children]))
        return self

    def or_(self, queries: Iterable["Query"]) -> "Query":
        """``$or`` of the given queries' filters; their other state is ignored."""
        children = list(queries or [])
        if not children:
            return self._invalid("or")
        self._filters.combine(composite(Combinator.OR, [q.filters for q in children]))
        return self

    def where_in(self, key: str, subquery: "Query") -> "Query":
        """Match entries whose reference ``key`` points at entries matching ``subquery``.

        The subquery's filters are embedded as a JSON string, not an object.
        """
        if subquery is None:
            return self._invalid("where_in")
        return self._apply("where_in", key, Operator.IN_QUERY, embed_subquery(subquery.filters))

    def where_not_in(self, key: str, subquery: "Query") -> "Query":
        if subquery is None:
            return self._invalid("where_not_in")
        return self._apply("where_not_in", key, Operator.NIN_QUERY, embed_subquery(subquery.filters))

    def tags(self, tags: Sequence[str]) -> "Query":
        if not tags:
            return self._invalid("tags")
        self._toggles["tags"] = ",".join(tags)
        return self

    def search(self, value: str) -> "Query":
        if not value:
            return self._invalid("search")
        self._toggles["typeahead"] = value
        return self

    # ----- projection -----

    def only(self, fields: Iterable[str]) -> "Query":
        names = field_names(fields)
        if not names:
            return self._invalid("only")
        self._projection.add_only(names)
        return self

    def except_(self, fields: Iterable[str]) -> "Query":
        names = field_names(fields)
        if not names:
            return self._invalid("except")
        self._projection.add_except(names)
        return self

    def only_with_reference_uid(self, fields: Iterable[str], reference: str) -> "Query":
        names = field_names(fields)
        if names is None or not reference:
            return self._invalid("only_with_reference_uid")
        self._projection.add_only_for_reference(reference, names)
        return self

    def except_with_reference_uid(self, fields: Iterable[str], reference: str) -> "Query":
        names = field_names(fields)
        if names is None or not reference:
            return self._invalid("except_with_reference_uid")
        self._projection.add_except_for_reference(reference, names)
        return self

    def include_reference(self, *references: str) -> "Query":
        if not references or not all(references):
            return self._invalid("include_reference")
        for ref in references:
            self._projection.include(ref)
        return self

    # ----- sort, pagination, locale -----

    def ascending(self, key: str) -> "Query":
        if not key:
            return self._invalid("ascending")
        self._sort = (key, SortOrder.ASCENDING)
        return self

    def descending(self, key: str) -> "Query":
        if not key:
            return self._invalid("descending")
        self._sort = (key, SortOrder.DESCENDING)
        return self

    def limit(self, number: int) -> "Query":
        if not is_count(number):
            return self._invalid("limit")
        self._limit = int(number)
        return self

    def skip(self, number: int) -> "Query":
        if not is_count(number):
            return self._invalid("skip")
        self._skip = int(number)
        return self

    def locale(self, code: str) -> "Query":
        if not code:
            return self._invalid("locale")
        self._locale = code
        return self

    # ----- feature toggles -----

    def include_count(self) -> "Query":
        self._toggles["include_count"] = True
        return self

    def count(self) -> "Query":
        self._toggles["count"] = True
        return self

    def include_content_type(self) -> "Query":
        self._toggles.pop("include_schema", None)
        self._toggles["include_content_type"] = True
        return self

    def include_schema(self) -> "Query":
        """Deprecated: prefer ``include_content_type``."""
        if "include_content_type" not in self._toggles:
            self._toggles["include_schema"] = True
        return self

    def include_global_field_schema(self) -> "Query":
        self._toggles["include_global_field_schema"] = True
        return self

    def include_fallback(self) -> "Query":
        self._toggles["include_fallback"] = True
        return self

    def include_embedded_items(self) -> "Query":
        self._toggles["include_embedded_items[]"] = ["BASE"]
        return self

    def include_reference_content_type_uid(self) -> "Query":
        self._toggles["include_reference_content_type_uid"] = True
        return self

    def include_owner(self) -> "Query":
        self._toggles["include_owner"] = True
        return self

    def include_branch(self) -> "Query":
        self._toggles["include_branch"] = True
        return self

    def include_metadata(self) -> "Query":
        self._toggles["include_metadata"] = True
        return self

    # ----- raw parameters -----

    def add_query(self, key: str, value: Any) -> "Query":
        if not key or value is None:
            return self._invalid("add_query")
        self._raw[key] = value
        return self

    add_param = add_query

    def remove_query(self, key: str) -> "Query":
        self._raw.pop(key, None)
        return self

    # ----- execution -----

    def build_params(self, *, limit: Optional[int] = None) -> Dict[str, Any]:
        """Snapshot the builder into wire parameters; ``limit`` overrides for one call."""
        params: Dict[str, Any] = {}
        query = self._filters.to_query()
        if query:
            params["query"] = query
        params.update(self._projection.to_params())
        if self._sort is not None:
            key, order = self._sort
            params[order.value] = key
        effective_limit = self._limit if limit is None else limit
        if effective_limit is not None:
            params["limit"] = effective_limit
        if self._skip is not None:
            params["skip"] = self._skip
        if self._locale:
            params["locale"] = self._locale
        params.update(self._toggles)
        params.update(self._raw)
        return params

    async def find(self, callback: Optional[ResultCallback] = None) -> Outcome[QueryResult]:
        """Run the query; the callback receives ``(QueryResult, None)`` or ``(None, error)``."""
        return await settle(self._find, callback, self._stack.logger)

    async def find_one(self, callback: Optional[ResultCallback] = None) -> Outcome[Optional[Entry]]:
        """Run the query with ``limit=1`` for this call only and return the first entry.

        Resolves to ``None`` when nothing matched. The builder's own limit is
        left untouched.
        """
        return await settle(self._find_one, callback, self._stack.logger)

    async def _find(self) -> QueryResult:
        params = self._checked_params()
        payload = await self._execute(params)
        return QueryResult.from_json(payload, self._entries(payload))

    async def _find_one(self) -> Optional[Entry]:
        params = self._checked_params(limit=1)
        payload = await self._execute(params)
        entries = self._entries(payload)
        return entries[0] if entries else None

    def _checked_params(self, *, limit: Optional[int] = None) -> Dict[str, Any]:
        if self._error is not None:
            raise self._error
        if not self.content_type.uid:
            raise ConfigurationError(ErrorMessages.CONTENT_TYPE_UID_REQUIRED)
        return self.build_params(limit=limit)

    async def _execute(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self._stack.request(
            f"/content_types/{self.content_type.uid}/entries",
            headers=merge_headers(self.content_type.headers, self._headers),
            params=params,
            content_type_uid=self.content_type.uid,
        )

    def _entries(self, payload: Dict[str, Any]) -> List[Entry]:
        items = payload.get("entries")
        if not isinstance(items, list):
            return []
        return [self.content_type.entry_from_json(doc) for doc in items if isinstance(doc, dict)]
