"""Field selection shared by queries and single-entry fetches."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional


def field_names(fields: Any) -> Optional[List[str]]:
    """``fields`` as a list of names, or None when it is not a collection of names."""
    if fields is None or isinstance(fields, (str, bytes)):
        return None
    try:
        return list(fields)
    except TypeError:
        return None


def _extend_unique(target: List[str], items: Iterable[str]) -> None:
    for item in items:
        if item not in target:
            target.append(item)


class ProjectionSpec:
    """Accumulates only/except fields, their per-reference variants and includes.

    Every call is additive. Scoping a projection to a reference field also
    registers that field in ``includes`` since it must be fetched to be
    projected.
    """

    def __init__(self) -> None:
        self.only: List[str] = []
        self.except_: List[str] = []
        self.only_by_reference: Dict[str, List[str]] = {}
        self.except_by_reference: Dict[str, List[str]] = {}
        self.includes: List[str] = []

    def add_only(self, fields: Iterable[str]) -> None:
        _extend_unique(self.only, fields)

    def add_except(self, fields: Iterable[str]) -> None:
        _extend_unique(self.except_, fields)

    def add_only_for_reference(self, reference: str, fields: Iterable[str]) -> None:
        _extend_unique(self.only_by_reference.setdefault(reference, []), fields)
        self.include(reference)

    def add_except_for_reference(self, reference: str, fields: Iterable[str]) -> None:
        _extend_unique(self.except_by_reference.setdefault(reference, []), fields)
        self.include(reference)

    def include(self, reference: str) -> None:
        _extend_unique(self.includes, [reference])

    def to_params(self) -> Dict[str, Any]:
        """Wire parameters in the order the API expects them."""
        params: Dict[str, Any] = {}
        if self.only:
            params["only[BASE][]"] = list(self.only)
        if self.except_:
            params["except[BASE][]"] = list(self.except_)
        if self.only_by_reference:
            params["only"] = {k: list(v) for k, v in self.only_by_reference.items()}
        if self.except_by_reference:
            params["except"] = {k: list(v) for k, v in self.except_by_reference.items()}
        if self.includes:
            params["include[]"] = list(self.includes)
        return params
