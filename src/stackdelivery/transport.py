"""HTTP transport for the delivery API.

Executes one GET per call via httpx and turns every failure into a
``DeliveryError`` value. Retries live in ``RetryTransport``, an httpx
transport wrapper, so the rest of the library never sees them.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

import httpx

from stackdelivery import __version__
from stackdelivery.config import RetryOptions, StackConfig
from stackdelivery.exceptions import NetworkError, ParseError, RemoteError

USER_AGENT = f"stackdelivery-python/{__version__}"

ClientFactory = Callable[[str], httpx.AsyncClient]


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_params(params: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """Flatten a parameter map into ordered query-string pairs.

    ``query`` becomes compact JSON text, lists repeat their key per item and
    the scoped ``only``/``except`` objects expand to ``only[<ref>][]`` keys.
    """
    pairs: List[Tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if key == "query" and not isinstance(value, str):
            pairs.append((key, json.dumps(value, separators=(",", ":"))))
        elif key in ("only", "except") and isinstance(value, Mapping):
            for ref, fields in value.items():
                for field in fields:
                    pairs.append((f"{key}[{ref}][]", _scalar(field)))
        elif isinstance(value, (list, tuple)):
            for item in value:
                pairs.append((key, _scalar(item)))
        elif isinstance(value, Mapping):
            pairs.append((key, json.dumps(value, separators=(",", ":"))))
        else:
            pairs.append((key, _scalar(value)))
    return pairs


class RetryTransport(httpx.AsyncBaseTransport):
    """Wraps another async transport and re-issues requests per ``RetryOptions``."""

    def __init__(
        self,
        wrapped: httpx.AsyncBaseTransport,
        options: RetryOptions,
        *,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._wrapped = wrapped
        self._options = options
        self._logger = logger or logging.getLogger("stackdelivery")
        self._sleep = sleep

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        opts = self._options
        if not opts.enabled:
            return await self._wrapped.handle_async_request(request)
        max_attempts = opts.retry_limit + 1
        attempt = 0
        while True:
            try:
                response = await self._wrapped.handle_async_request(request)
            except httpx.TransportError as exc:
                if attempt + 1 >= max_attempts:
                    raise
                delay = opts.delay_for(attempt, -1, exc)
                reason = type(exc).__name__
            else:
                if response.status_code not in opts.retryable_status_codes or attempt + 1 >= max_attempts:
                    return response
                await response.aclose()
                delay = opts.delay_for(attempt, response.status_code, None)
                reason = f"status {response.status_code}"
            self._logger.info(
                "retry attempt %d for %s on %s in %.2fs", attempt + 1, reason, request.url, delay
            )
            await self._sleep(delay)
            attempt += 1

    async def aclose(self) -> None:
        await self._wrapped.aclose()


class Transport:
    """Executes GET requests against one stack's delivery host."""

    def __init__(
        self,
        config: StackConfig,
        *,
        logger: Optional[logging.Logger] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.config = config
        self._logger = logger or logging.getLogger("stackdelivery")
        self._client_factory = client_factory

    def _client(self, base_url: str) -> httpx.AsyncClient:
        if self._client_factory is not None:
            return self._client_factory(base_url)
        return httpx.AsyncClient(
            base_url=base_url,
            timeout=self.config.timeout,
            transport=RetryTransport(
                httpx.AsyncHTTPTransport(), self.config.retry, logger=self._logger
            ),
        )

    def _headers(self, headers: Mapping[str, Any]) -> Dict[str, str]:
        out = {str(k): str(v) for k, v in headers.items() if v is not None}
        out["Content-Type"] = "application/json"
        out["User-Agent"] = USER_AGENT
        out["X-User-Agent"] = USER_AGENT
        return out

    async def get(
        self,
        path: str,
        *,
        headers: Mapping[str, Any],
        params: Optional[Mapping[str, Any]] = None,
        host: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Issue one GET and return the decoded JSON object.

        Raises ``NetworkError``, ``RemoteError`` or ``ParseError``; callers
        convert those into delivered error values.
        """
        pairs = encode_params(params or {})
        self._logger.debug("GET %s params=%s", path, pairs)
        try:
            async with self._client(self.config.base_url(host)) as client:
                resp = await client.get(path, headers=self._headers(headers), params=pairs)
        except httpx.RequestError as exc:
            raise NetworkError(None, 0, {"detail": str(exc) or type(exc).__name__}) from exc

        if not resp.is_success:
            try:
                body = resp.json()
            except ValueError:
                body = None
            raise RemoteError.from_payload(body, resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            raise ParseError(None, resp.status_code) from exc
        if not isinstance(data, dict):
            raise ParseError(None, resp.status_code)
        return data
