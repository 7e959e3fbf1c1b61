"""Filter expressions and the field-scoped operator map they fold into.

A query's filter state is a ``FilterSet``: an ordered mapping from field to
either a scalar (equality) or an operator map such as ``{"$gt": 10,
"$lt": 100}``. Operators applied to the same field share that field's map:
a new operator key is added, a repeated one is replaced. ``where`` replaces
whatever the field held. Composite ``$and``/``$or`` entries hold snapshots
of other filter sets.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class Operator(str, Enum):
    EQ = "eq"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    NE = "ne"
    IN = "in"
    NIN = "nin"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    REGEX = "regex"
    IN_QUERY = "in_query"
    NIN_QUERY = "nin_query"


class Combinator(str, Enum):
    AND = "$and"
    OR = "$or"


# Operator -> wire key inside the field's operator map.
_WIRE_KEYS = {
    Operator.LT: "$lt",
    Operator.LTE: "$lte",
    Operator.GT: "$gt",
    Operator.GTE: "$gte",
    Operator.NE: "$ne",
    Operator.IN: "$in",
    Operator.NIN: "$nin",
    Operator.EXISTS: "$exists",
    Operator.NOT_EXISTS: "$exists",
    Operator.REGEX: "$regex",
    Operator.IN_QUERY: "$in_query",
    Operator.NIN_QUERY: "$nin_query",
}


@dataclass(frozen=True)
class FilterExpression:
    """One constraint on one field."""

    field: str
    operator: Operator
    operand: Any = None
    regex_modifiers: Optional[str] = None

    def operator_map(self) -> Dict[str, Any]:
        """The operator keys this expression contributes to its field."""
        if self.operator is Operator.EXISTS:
            return {"$exists": True}
        if self.operator is Operator.NOT_EXISTS:
            return {"$exists": False}
        if self.operator in (Operator.IN, Operator.NIN):
            return {_WIRE_KEYS[self.operator]: list(self.operand)}
        if self.operator is Operator.REGEX:
            out: Dict[str, Any] = {"$regex": self.operand}
            if self.regex_modifiers is not None:
                out["$options"] = self.regex_modifiers
            return out
        return {_WIRE_KEYS[self.operator]: self.operand}


@dataclass(frozen=True)
class CompositeFilter:
    combinator: Combinator
    children: Sequence[Dict[str, Any]]


def embed_subquery(filters: "FilterSet") -> str:
    """Serialize a sub-builder's filters as the JSON *string* ``$in_query`` expects."""
    return json.dumps(filters.to_query(), separators=(",", ":"))


class FilterSet:
    """Ordered field -> constraint map for one query builder."""

    def __init__(self) -> None:
        self._fields: Dict[str, Any] = {}

    def __bool__(self) -> bool:
        return bool(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def get(self, field: str) -> Any:
        return copy.deepcopy(self._fields.get(field))

    def apply(self, expr: FilterExpression) -> None:
        if expr.operator is Operator.EQ:
            self._fields[expr.field] = expr.operand
            return
        current = self._fields.get(expr.field)
        merged: Dict[str, Any] = dict(current) if isinstance(current, dict) else {}
        if expr.operator is Operator.REGEX:
            # a new pattern must not inherit options from an earlier one
            merged.pop("$options", None)
        merged.update(expr.operator_map())
        self._fields[expr.field] = merged

    def combine(self, composite: CompositeFilter) -> None:
        self._fields[composite.combinator.value] = [copy.deepcopy(c) for c in composite.children]

    def remove(self, field: str) -> None:
        self._fields.pop(field, None)

    def to_query(self) -> Dict[str, Any]:
        """Deep snapshot suitable for the ``query`` parameter."""
        return copy.deepcopy(self._fields)

    def copy(self) -> "FilterSet":
        other = FilterSet()
        other._fields = self.to_query()
        return other


def composite(combinator: Combinator, children: List[FilterSet]) -> CompositeFilter:
    return CompositeFilter(combinator, [c.to_query() for c in children])
