from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from stackdelivery.document import AuditFields
from stackdelivery.exceptions import ConfigurationError, ErrorMessages, ValidationError
from stackdelivery.outcome import Outcome, ResultCallback, settle
from stackdelivery.utils import is_count

if TYPE_CHECKING:
    from stackdelivery.stack import Stack


class SortOrder(str, Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


class Asset(AuditFields):
    """Metadata of one uploaded file."""

    def __init__(self, stack: "Stack", uid: Optional[str] = None) -> None:
        self._stack = stack
        self.uid = uid
        self.file_type: Optional[str] = None
        self.file_size: Optional[str] = None
        self.file_name: Optional[str] = None
        self.url: Optional[str] = None
        self.tags: List[str] = []
        self._json: Dict[str, Any] = {}
        self._headers: Dict[str, str] = {}
        self._params: Dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"Asset(uid={self.uid!r}, file_name={self.file_name!r})"

    def configure(self, data: Dict[str, Any]) -> "Asset":
        self._json = data if isinstance(data, dict) else {}
        d = self._json
        if isinstance(d.get("uid"), str):
            self.uid = d["uid"]
        self.file_type = d.get("content_type")
        size = d.get("file_size")
        self.file_size = str(size) if size is not None else None
        self.file_name = d.get("filename")
        self.url = d.get("url")
        tags = d.get("tags")
        self.tags = [t for t in tags if isinstance(t, str)] if isinstance(tags, list) else []
        return self

    def set_header(self, key: str, value: str) -> "Asset":
        if key and value:
            self._headers[key] = value
        return self

    def remove_header(self, key: str) -> "Asset":
        self._headers.pop(key, None)
        return self

    def include_dimension(self) -> "Asset":
        self._params["include_dimension"] = True
        return self

    def include_fallback(self) -> "Asset":
        self._params["include_fallback"] = True
        return self

    def add_param(self, key: str, value: Any) -> "Asset":
        if key and value is not None:
            self._params[key] = value
        return self

    async def fetch(self, callback: Optional[ResultCallback] = None) -> Outcome["Asset"]:
        return await settle(self._fetch, callback, self._stack.logger)

    async def _fetch(self) -> "Asset":
        if not self.uid:
            raise ConfigurationError(ErrorMessages.ASSET_UID_REQUIRED)
        payload = await self._stack.request(
            f"/assets/{self.uid}", headers=self._headers, params=dict(self._params)
        )
        asset = payload.get("asset")
        return self.configure(asset if isinstance(asset, dict) else {})


@dataclass
class AssetsResult:
    assets: List[Asset] = field(default_factory=list)
    count: Optional[int] = None


class AssetLibrary:
    """Builder for listing assets."""

    def __init__(self, stack: "Stack") -> None:
        self._stack = stack
        self._headers: Dict[str, str] = {}
        self._query: Dict[str, Any] = {}
        self._params: Dict[str, Any] = {}
        self._error: Optional[ValidationError] = None

    def set_header(self, key: str, value: str) -> "AssetLibrary":
        if key and value:
            self._headers[key] = value
        return self

    def remove_header(self, key: str) -> "AssetLibrary":
        self._headers.pop(key, None)
        return self

    def sort(self, field_name: str, order: SortOrder = SortOrder.ASCENDING) -> "AssetLibrary":
        if not field_name:
            self._error = self._error or ValidationError(None, 0, {"sort": ErrorMessages.QUERY_FILTER})
            return self
        self._params.pop("asc", None)
        self._params.pop("desc", None)
        self._params[SortOrder(order).value] = field_name
        return self

    def where(self, field_name: str, value: Any) -> "AssetLibrary":
        if not field_name or value is None:
            self._error = self._error or ValidationError(None, 0, {"where": ErrorMessages.QUERY_FILTER})
        else:
            self._query[field_name] = value
        return self

    def limit(self, number: int) -> "AssetLibrary":
        if not is_count(number):
            self._error = self._error or ValidationError(None, 0, {"limit": ErrorMessages.QUERY_FILTER})
            return self
        self._params["limit"] = number
        return self

    def skip(self, number: int) -> "AssetLibrary":
        if not is_count(number):
            self._error = self._error or ValidationError(None, 0, {"skip": ErrorMessages.QUERY_FILTER})
            return self
        self._params["skip"] = number
        return self

    def include_count(self) -> "AssetLibrary":
        self._params["include_count"] = True
        return self

    def include_relative_url(self) -> "AssetLibrary":
        self._params["relative_urls"] = True
        return self

    def include_fallback(self) -> "AssetLibrary":
        self._params["include_fallback"] = True
        return self

    def include_metadata(self) -> "AssetLibrary":
        self._params["include_metadata"] = True
        return self

    def build_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if self._query:
            params["query"] = dict(self._query)
        params.update(self._params)
        return params

    async def fetch_all(self, callback: Optional[ResultCallback] = None) -> Outcome[AssetsResult]:
        return await settle(self._fetch_all, callback, self._stack.logger)

    async def _fetch_all(self) -> AssetsResult:
        if self._error is not None:
            raise self._error
        payload = await self._stack.request("/assets", headers=self._headers, params=self.build_params())
        items = payload.get("assets")
        if not isinstance(items, list):
            items = []
        assets = [self._stack.asset().configure(a) for a in items if isinstance(a, dict)]
        count = payload.get("count")
        return AssetsResult(assets=assets, count=count if isinstance(count, int) else None)
