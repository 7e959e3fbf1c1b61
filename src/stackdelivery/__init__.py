"""Async client for a headless content-delivery API."""

__version__ = "0.1.0"

from stackdelivery.asset import Asset, AssetLibrary, AssetsResult, SortOrder  # noqa: E402
from stackdelivery.config import (  # noqa: E402
    BackoffStrategy,
    LivePreviewConfig,
    Region,
    RetryOptions,
    Settings,
    StackConfig,
    load_settings,
)
from stackdelivery.content_type import ContentType  # noqa: E402
from stackdelivery.document import Group  # noqa: E402
from stackdelivery.entry import Entry  # noqa: E402
from stackdelivery.exceptions import (  # noqa: E402
    ConfigurationError,
    DeliveryError,
    NetworkError,
    ParseError,
    RemoteError,
    ValidationError,
)
from stackdelivery.global_field import GlobalField  # noqa: E402
from stackdelivery.outcome import Outcome  # noqa: E402
from stackdelivery.query import Query, QueryResult  # noqa: E402
from stackdelivery.stack import Stack, create_stack  # noqa: E402
from stackdelivery.sync import PublishType, SyncSession, SyncState, SyncStack  # noqa: E402
from stackdelivery.taxonomy import Taxonomy  # noqa: E402

__all__ = [
    "Asset",
    "AssetLibrary",
    "AssetsResult",
    "BackoffStrategy",
    "ConfigurationError",
    "ContentType",
    "DeliveryError",
    "Entry",
    "GlobalField",
    "Group",
    "LivePreviewConfig",
    "NetworkError",
    "Outcome",
    "ParseError",
    "PublishType",
    "Query",
    "QueryResult",
    "Region",
    "RemoteError",
    "RetryOptions",
    "Settings",
    "SortOrder",
    "Stack",
    "StackConfig",
    "SyncSession",
    "SyncStack",
    "SyncState",
    "Taxonomy",
    "ValidationError",
    "create_stack",
    "load_settings",
]
