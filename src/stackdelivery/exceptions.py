"""Error hierarchy for stackdelivery.

Errors are values as much as exceptions: network-facing operations never
raise them across their async boundary but hand them to the caller's
callback (and return them in an ``Outcome``). Each carries the fields the
delivery API reports for a failed request.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorMessages:
    """Fixed messages used when the server or the caller supplies none."""

    MISSING_API_KEY = "Missing API key. Provide a valid key from your stack settings and try again."
    MISSING_DELIVERY_TOKEN = (
        "Missing delivery token. Provide a valid token from your stack settings and try again."
    )
    MISSING_ENVIRONMENT = "Missing environment. Provide a valid environment name and try again."
    MISSING_REQUEST_HEADERS = (
        "Missing request headers. Provide api_key, access_token, and environment, then try again."
    )
    CONTENT_TYPE_UID_REQUIRED = "Content type UID is required. Provide a valid UID and try again."
    ENTRY_UID_REQUIRED = "Missing entry UID. Provide a valid UID and try again."
    ASSET_UID_REQUIRED = "Missing asset UID. Provide a valid UID and try again."
    GLOBAL_FIELD_UID_REQUIRED = "Missing global field UID. Provide a valid UID and try again."
    QUERY_FILTER = "Please provide valid params."
    LIVE_PREVIEW_SETUP = "To enable live preview, management_token and host are required."
    INVALID_JSON_RESPONSE = "Invalid JSON response. Check the server response format and try again."
    DEFAULT = "Oops! Something went wrong. Please try again."
    NETWORK = "Network request failed. Check your connection and try again."


class DeliveryError(Exception):
    """Base class for all stackdelivery errors."""

    default_message = ErrorMessages.DEFAULT

    def __init__(
        self,
        error_message: Optional[str] = None,
        error_code: int = 0,
        errors: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.error_message = error_message or self.default_message
        self.error_code = int(error_code or 0)
        self.errors: Dict[str, Any] = dict(errors or {})
        super().__init__(self.error_message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_message": self.error_message,
            "error_code": self.error_code,
            "errors": dict(self.errors),
        }


class ConfigurationError(DeliveryError):
    """A required identifier or credential is missing before any request."""


class ValidationError(DeliveryError):
    """A builder method received malformed arguments."""

    default_message = ErrorMessages.QUERY_FILTER


class NetworkError(DeliveryError):
    """The transport failed without producing an HTTP status."""

    default_message = ErrorMessages.NETWORK


class RemoteError(DeliveryError):
    """The server answered with a non-2xx status."""

    @classmethod
    def from_payload(cls, payload: Any, status_code: int) -> "RemoteError":
        """Build from an error body, falling back to the HTTP status."""
        if not isinstance(payload, dict):
            return cls(None, status_code, None)
        message = payload.get("error_message")
        code = payload.get("error_code")
        errors = payload.get("errors")
        if not isinstance(code, int):
            code = status_code
        if not isinstance(errors, dict):
            errors = {"errors": errors} if errors is not None else None
        return cls(message if isinstance(message, str) else None, code, errors)


class ParseError(RemoteError):
    """The response body was not a JSON object."""

    default_message = ErrorMessages.INVALID_JSON_RESPONSE
