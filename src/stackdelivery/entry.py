from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from stackdelivery.document import AuditFields, ReferenceResolver
from stackdelivery.exceptions import ConfigurationError, ErrorMessages, ValidationError
from stackdelivery.outcome import Outcome, ResultCallback, settle
from stackdelivery.projection import ProjectionSpec, field_names
from stackdelivery.utils import merge_headers

if TYPE_CHECKING:
    from stackdelivery.content_type import ContentType


class Entry(AuditFields, ReferenceResolver):
    """One entry of a content type: a fetched document plus a fetch builder.

    Built either from query results (already populated) or from
    ``ContentType.entry(uid)`` and then ``fetch``-ed.
    """

    def __init__(
        self,
        content_type: "ContentType",
        uid: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.content_type = content_type
        self._stack = content_type.stack
        self.uid = uid
        self.title: Optional[str] = None
        self.url: Optional[str] = None
        self.locale: Optional[str] = None
        self.tags: List[str] = []
        self.owner: Dict[str, Any] = {}
        self.metadata: Dict[str, Any] = {}
        self._json: Dict[str, Any] = {}
        self._headers: Dict[str, str] = {}
        self._projection = ProjectionSpec()
        self._params: Dict[str, Any] = {}
        self._error: Optional[ValidationError] = None
        if data is not None:
            self.configure(data)

    def __repr__(self) -> str:
        return f"Entry(content_type={self.content_type.uid!r}, uid={self.uid!r})"

    @property
    def content_type_uid(self) -> str:
        return self.content_type.uid

    def configure(self, data: Dict[str, Any]) -> "Entry":
        """Populate identity fields from an entry document."""
        self._json = data if isinstance(data, dict) else {}
        d = self._json
        if isinstance(d.get("uid"), str):
            self.uid = d["uid"]
        self.title = d.get("title") if isinstance(d.get("title"), str) else None
        self.url = d.get("url") if isinstance(d.get("url"), str) else None
        self.locale = d.get("locale") if isinstance(d.get("locale"), str) else None
        tags = d.get("tags")
        self.tags = [t for t in tags if isinstance(t, str)] if isinstance(tags, list) else []
        owner = d.get("_owner")
        self.owner = dict(owner) if isinstance(owner, dict) else {}
        meta = d.get("_metadata")
        if isinstance(meta, dict):
            self.metadata = dict(meta)
            if isinstance(meta.get("uid"), str):
                self.uid = meta["uid"]
        elif "publish_details" in d:
            self.metadata = {"publish_details": d["publish_details"]}
        else:
            self.metadata = {}
        return self

    @property
    def owner_email(self) -> Optional[str]:
        value = self.owner.get("email")
        return value if isinstance(value, str) else None

    @property
    def owner_uid(self) -> Optional[str]:
        value = self.owner.get("uid")
        return str(value) if value is not None else None

    # ----- request builder -----

    def set_header(self, key: str, value: str) -> "Entry":
        if key and value:
            self._headers[key] = value
        return self

    def remove_header(self, key: str) -> "Entry":
        self._headers.pop(key, None)
        return self

    def _invalid(self, method: str) -> None:
        if self._error is None:
            self._error = ValidationError(None, 0, {method: ErrorMessages.QUERY_FILTER})

    def only(self, fields: Iterable[str]) -> "Entry":
        names = field_names(fields)
        if not names:
            self._invalid("only")
        else:
            self._projection.add_only(names)
        return self

    def except_(self, fields: Iterable[str]) -> "Entry":
        names = field_names(fields)
        if not names:
            self._invalid("except")
        else:
            self._projection.add_except(names)
        return self

    def include_reference(self, *references: str) -> "Entry":
        if not references or not all(references):
            self._invalid("include_reference")
        for ref in references:
            if ref:
                self._projection.include(ref)
        return self

    def only_with_reference_uid(self, fields: Iterable[str], reference: str) -> "Entry":
        names = field_names(fields)
        if names is None or not reference:
            self._invalid("only_with_reference_uid")
        else:
            self._projection.add_only_for_reference(reference, names)
        return self

    def except_with_reference_uid(self, fields: Iterable[str], reference: str) -> "Entry":
        names = field_names(fields)
        if names is None or not reference:
            self._invalid("except_with_reference_uid")
        else:
            self._projection.add_except_for_reference(reference, names)
        return self

    def set_locale(self, locale: str) -> "Entry":
        if not locale:
            self._invalid("locale")
        else:
            self._params["locale"] = locale
        return self

    def include_fallback(self) -> "Entry":
        self._params["include_fallback"] = True
        return self

    def include_branch(self) -> "Entry":
        self._params["include_branch"] = True
        return self

    def include_content_type(self) -> "Entry":
        self._params["include_content_type"] = True
        return self

    def include_reference_content_type_uid(self) -> "Entry":
        self._params["include_reference_content_type_uid"] = True
        return self

    def include_embedded_items(self) -> "Entry":
        self._params["include_embedded_items[]"] = ["BASE"]
        return self

    def add_param(self, key: str, value: Any) -> "Entry":
        if not key or value is None:
            self._invalid("add_param")
        else:
            self._params[key] = value
        return self

    def build_params(self) -> Dict[str, Any]:
        params = self._projection.to_params()
        params.update(self._params)
        return params

    async def fetch(self, callback: Optional[ResultCallback] = None) -> Outcome["Entry"]:
        """Fetch this entry by uid and populate it from the response."""
        return await settle(self._fetch, callback, self._stack.logger)

    async def _fetch(self) -> "Entry":
        if self._error is not None:
            raise self._error
        if not self.content_type.uid:
            raise ConfigurationError(ErrorMessages.CONTENT_TYPE_UID_REQUIRED)
        if not self.uid:
            raise ConfigurationError(ErrorMessages.ENTRY_UID_REQUIRED)
        payload = await self._stack.request(
            f"/content_types/{self.content_type.uid}/entries/{self.uid}",
            headers=merge_headers(self.content_type.headers, self._headers),
            params=self.build_params(),
            content_type_uid=self.content_type.uid,
        )
        entry = payload.get("entry")
        self.configure(entry if isinstance(entry, dict) else {})
        return self
