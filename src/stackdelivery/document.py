"""Read-only views over fetched JSON documents.

Reads are lenient: a missing key or a value of the wrong type yields
``None`` (or an empty list) instead of an error. Reference resolution only
re-wraps data already present in the document; it never fetches.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from stackdelivery.utils import parse_date

if TYPE_CHECKING:
    from stackdelivery.asset import Asset
    from stackdelivery.entry import Entry
    from stackdelivery.stack import Stack


class JsonView:
    """Typed getters over ``self._json``."""

    _json: Dict[str, Any]

    def to_json(self) -> Dict[str, Any]:
        return self._json

    def get(self, key: str) -> Any:
        if not key or not isinstance(self._json, dict):
            return None
        return self._json.get(key)

    def get_string(self, key: str) -> Optional[str]:
        value = self.get(key)
        return value if isinstance(value, str) else None

    def get_bool(self, key: str) -> Optional[bool]:
        value = self.get(key)
        return value if isinstance(value, bool) else None

    def get_number(self, key: str) -> Optional[float]:
        value = self.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    def get_int(self, key: str) -> Optional[int]:
        value = self.get_number(key)
        return int(value) if value is not None else None

    def get_float(self, key: str) -> Optional[float]:
        value = self.get_number(key)
        return float(value) if value is not None else None

    def get_list(self, key: str) -> Optional[List[Any]]:
        value = self.get(key)
        return value if isinstance(value, list) else None

    def get_dict(self, key: str) -> Optional[Dict[str, Any]]:
        value = self.get(key)
        return value if isinstance(value, dict) else None

    def get_date(self, key: str) -> Optional[datetime]:
        return parse_date(self.get(key))


class AuditFields(JsonView):
    """Creation/update/deletion stamps common to entries and assets."""

    @property
    def created_at(self) -> Optional[datetime]:
        return self.get_date("created_at")

    @property
    def created_by(self) -> Optional[str]:
        return self.get_string("created_by")

    @property
    def updated_at(self) -> Optional[datetime]:
        return self.get_date("updated_at")

    @property
    def updated_by(self) -> Optional[str]:
        return self.get_string("updated_by")

    @property
    def deleted_at(self) -> Optional[datetime]:
        return self.get_date("deleted_at")

    @property
    def deleted_by(self) -> Optional[str]:
        return self.get_string("deleted_by")


class ReferenceResolver(JsonView):
    """Wraps nested documents as Asset, Group and Entry views."""

    _stack: "Stack"

    def get_asset(self, key: str) -> Optional["Asset"]:
        data = self.get_dict(key)
        if data is None:
            return None
        return self._stack.asset().configure(data)

    def get_assets(self, key: str) -> List["Asset"]:
        return [self._stack.asset().configure(d) for d in self.get_list(key) or [] if isinstance(d, dict)]

    def get_group(self, key: str) -> Optional["Group"]:
        data = self.get_dict(key)
        if data is None:
            return None
        return Group(self._stack, data)

    def get_groups(self, key: str) -> List["Group"]:
        return [Group(self._stack, d) for d in self.get_list(key) or [] if isinstance(d, dict)]

    def get_all_entries(self, ref_key: str, ref_content_type: str) -> List["Entry"]:
        """Entries embedded under ``ref_key``, bound to ``ref_content_type``.

        Elements that are not objects (e.g. unresolved uid stubs given as
        strings) are skipped.
        """
        content_type = self._stack.content_type(ref_content_type)
        return [
            content_type.entry_from_json(d) for d in self.get_list(ref_key) or [] if isinstance(d, dict)
        ]


class Group(ReferenceResolver):
    """A group (or modular block) field value inside an entry."""

    def __init__(self, stack: "Stack", data: Dict[str, Any]) -> None:
        self._stack = stack
        self._json = data

    def __repr__(self) -> str:
        return f"Group(keys={list(self._json)})"
