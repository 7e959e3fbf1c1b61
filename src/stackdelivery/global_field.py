from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from stackdelivery.exceptions import ConfigurationError, ErrorMessages
from stackdelivery.outcome import Outcome, ResultCallback, settle

if TYPE_CHECKING:
    from stackdelivery.stack import Stack


class GlobalField:
    """Reusable field-group schemas shared across content types."""

    def __init__(self, stack: "Stack", uid: Optional[str] = None) -> None:
        self._stack = stack
        self.uid = uid
        self._headers: Dict[str, str] = {}
        self._params: Dict[str, Any] = {}

    def set_header(self, key: str, value: str) -> "GlobalField":
        if key and value:
            self._headers[key] = value
        return self

    def remove_header(self, key: str) -> "GlobalField":
        self._headers.pop(key, None)
        return self

    def include_branch(self) -> "GlobalField":
        self._params["include_branch"] = True
        return self

    def include_global_field_schema(self) -> "GlobalField":
        self._params["include_global_field_schema"] = True
        return self

    async def fetch(self, callback: Optional[ResultCallback] = None) -> Outcome[Dict[str, Any]]:
        async def _run() -> Dict[str, Any]:
            if not self.uid:
                raise ConfigurationError(ErrorMessages.GLOBAL_FIELD_UID_REQUIRED)
            payload = await self._stack.request(
                f"/global_fields/{self.uid}", headers=self._headers, params=dict(self._params)
            )
            data = payload.get("global_field")
            return data if isinstance(data, dict) else {}

        return await settle(_run, callback, self._stack.logger)

    async def find_all(self, callback: Optional[ResultCallback] = None) -> Outcome[List[Dict[str, Any]]]:
        async def _run() -> List[Dict[str, Any]]:
            payload = await self._stack.request(
                "/global_fields", headers=self._headers, params=dict(self._params)
            )
            items = payload.get("global_fields")
            return [g for g in items if isinstance(g, dict)] if isinstance(items, list) else []

        return await settle(_run, callback, self._stack.logger)
