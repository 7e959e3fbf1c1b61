"""Stack: credentials, headers and the factories for everything else.

All requests of a stack go through ``Stack.request``, which layers the
caller's headers over the stack headers, applies the live preview swap and
copies the environment into the query parameters.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import urlencode

from stackdelivery.asset import Asset, AssetLibrary
from stackdelivery.config import Region, Settings, StackConfig
from stackdelivery.content_type import ContentType
from stackdelivery.exceptions import ConfigurationError, ErrorMessages
from stackdelivery.global_field import GlobalField
from stackdelivery.outcome import Outcome, ResultCallback, settle
from stackdelivery.sync import PublishType, SyncSession, SyncStack
from stackdelivery.taxonomy import Taxonomy
from stackdelivery.transport import ClientFactory, Transport
from stackdelivery.utils import merge_headers


class Stack:
    """A content repository and the credentials used to read it."""

    def __init__(
        self,
        config: StackConfig,
        *,
        logger: Optional[logging.Logger] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.config = config
        self.logger = logger or logging.getLogger("stackdelivery")
        lp = config.live_preview
        if lp.enabled and (not lp.host or not (lp.management_token or lp.preview_token)):
            self.logger.warning(ErrorMessages.LIVE_PREVIEW_SETUP)
            raise ConfigurationError(ErrorMessages.LIVE_PREVIEW_SETUP)
        self._headers: Dict[str, str] = {}
        for key, value in (
            ("api_key", config.api_key),
            ("access_token", config.delivery_token),
            ("environment", config.environment),
            ("branch", config.branch),
        ):
            if value:
                self._headers[key] = value
        self._transport = Transport(config, logger=self.logger, client_factory=client_factory)
        self.sync_session = SyncSession(self)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> "Stack":
        cfg = (settings or Settings()).stack
        return create_stack(cfg.api_key or "", cfg.delivery_token or "", cfg.environment or "", config=cfg, **kwargs)

    def __repr__(self) -> str:
        return f"Stack(api_key={self.api_key!r}, host={self.config.resolved_host()!r})"

    @property
    def api_key(self) -> Optional[str]:
        return self._headers.get("api_key")

    @property
    def delivery_token(self) -> Optional[str]:
        return self._headers.get("access_token")

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def set_header(self, key: str, value: str) -> "Stack":
        if key and value:
            self._headers[key] = value
        return self

    def remove_header(self, key: str) -> "Stack":
        self._headers.pop(key, None)
        return self

    # ----- factories -----

    def content_type(self, uid: str) -> ContentType:
        return ContentType(self, uid)

    def asset(self, uid: Optional[str] = None) -> Asset:
        return Asset(self, uid)

    def asset_library(self) -> AssetLibrary:
        return AssetLibrary(self)

    def global_field(self, uid: Optional[str] = None) -> GlobalField:
        return GlobalField(self, uid)

    def taxonomy(self) -> Taxonomy:
        return Taxonomy(self)

    def new_sync_session(self) -> SyncSession:
        return SyncSession(self)

    # ----- helpers -----

    def live_preview_query(self, query: Mapping[str, Optional[str]]) -> "Stack":
        """Record the preview hash and content type from a live preview request."""
        lp = self.config.live_preview
        if lp.enabled:
            lp.live_preview = query.get("live_preview")
            lp.content_type_uid = query.get("content_type_uid")
        return self

    def image_transform(self, image_url: str, params: Optional[Mapping[str, Any]] = None) -> str:
        if not params:
            return image_url
        sep = "&" if "?" in image_url else "?"
        return image_url + sep + urlencode([(str(k), str(v)) for k, v in params.items()])

    def url_for(self, path: str) -> str:
        return f"{self.config.base_url()}/{self.config.version}{path}"

    async def request(
        self,
        path: str,
        *,
        headers: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        content_type_uid: Optional[str] = None,
    ) -> Dict[str, Any]:
        """GET ``/<version><path>`` with call headers layered over the stack's."""
        merged = merge_headers(self._headers, headers)
        host = None
        lp = self.config.live_preview
        if lp.enabled and lp.live_preview and content_type_uid and content_type_uid == lp.content_type_uid:
            host = lp.host
            merged.pop("access_token", None)
            merged.pop("environment", None)
            merged["live_preview"] = lp.live_preview
            if lp.management_token:
                merged["authorization"] = lp.management_token
            if lp.preview_token:
                merged["preview_token"] = lp.preview_token
        if not merged.get("api_key"):
            raise ConfigurationError(ErrorMessages.MISSING_REQUEST_HEADERS)
        out = dict(params or {})
        if merged.get("environment"):
            out.setdefault("environment", merged["environment"])
        return await self._transport.get(
            f"/{self.config.version}{path}", headers=merged, params=out, host=host
        )

    async def get_content_types(
        self,
        params: Optional[Mapping[str, Any]] = None,
        callback: Optional[ResultCallback] = None,
    ) -> Outcome[Dict[str, Any]]:
        """List content types; resolves to the raw payload (``content_types``, ``count``)."""

        async def _run() -> Dict[str, Any]:
            query = dict(params or {})
            query.setdefault("include_count", True)
            return await self.request("/content_types", params=query)

        return await settle(_run, callback, self.logger)

    # ----- sync -----

    async def sync(
        self,
        content_type: Optional[str] = None,
        from_date: Optional[date] = None,
        locale: Optional[str] = None,
        publish_type: Optional[Union[PublishType, str]] = None,
        *,
        callback: Optional[ResultCallback] = None,
    ) -> Outcome[SyncStack]:
        return await self.sync_session.sync(
            content_type, from_date, locale, publish_type, callback=callback
        )

    async def sync_token(self, token: str, callback: Optional[ResultCallback] = None) -> Outcome[SyncStack]:
        return await self.sync_session.sync_token(token, callback)

    async def sync_pagination_token(
        self, token: str, callback: Optional[ResultCallback] = None
    ) -> Outcome[SyncStack]:
        return await self.sync_session.sync_pagination_token(token, callback)

    async def sync_from_date(self, from_date: date, callback: Optional[ResultCallback] = None) -> Outcome[SyncStack]:
        return await self.sync_session.sync_from_date(from_date, callback)

    async def sync_content_type(self, uid: str, callback: Optional[ResultCallback] = None) -> Outcome[SyncStack]:
        return await self.sync_session.sync_content_type(uid, callback)

    async def sync_locale(self, locale: str, callback: Optional[ResultCallback] = None) -> Outcome[SyncStack]:
        return await self.sync_session.sync_locale(locale, callback)

    async def sync_publish_type(
        self, publish_type: Union[PublishType, str], callback: Optional[ResultCallback] = None
    ) -> Outcome[SyncStack]:
        return await self.sync_session.sync_publish_type(publish_type, callback)


def create_stack(
    api_key: str,
    delivery_token: str,
    environment: str,
    *,
    config: Optional[StackConfig] = None,
    region: Union[Region, str, None] = None,
    logger: Optional[logging.Logger] = None,
    client_factory: Optional[ClientFactory] = None,
    **options: Any,
) -> Stack:
    """Validate credentials and build a ``Stack``.

    Extra keyword options are ``StackConfig`` fields (``host``, ``branch``,
    ``timeout``, ``retry``, ``live_preview`` ...). Raises
    ``ConfigurationError`` synchronously on missing credentials.
    """
    if not api_key:
        raise ConfigurationError(ErrorMessages.MISSING_API_KEY)
    if not delivery_token:
        raise ConfigurationError(ErrorMessages.MISSING_DELIVERY_TOKEN)
    if not environment:
        raise ConfigurationError(ErrorMessages.MISSING_ENVIRONMENT)
    base = config.model_dump() if config is not None else {}
    base.update(options)
    base.update(api_key=api_key, delivery_token=delivery_token, environment=environment)
    if region is not None:
        base["region"] = Region(region)
    return Stack(StackConfig(**base), logger=logger, client_factory=client_factory)
