from datetime import datetime, timezone
from typing import Any, List

import httpx
import pytest

from stackdelivery import ConfigurationError, SortOrder, ValidationError, create_stack
from stackdelivery.stack import Stack

# ---------- Helpers ----------


def make_stack(responder: Any = None) -> Stack:
    def fallback(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request {request.url}")

    def factory(base_url: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(responder or fallback), base_url=base_url)

    return create_stack("k", "t", "production", client_factory=factory)


ENTRY_DOC = {
    "uid": "blt_entry",
    "title": "Hello",
    "url": "/hello",
    "locale": "en-us",
    "tags": ["news"],
    "rating": 4.5,
    "views": 10,
    "featured": True,
    "created_at": "2020-01-02T03:04:05.000Z",
    "updated_by": "blt_user",
    "_owner": {"email": "owner@example.com", "uid": "blt_owner"},
    "publish_details": {"environment": "production"},
    "hero": {"uid": "blt_asset", "filename": "hero.png", "content_type": "image/png", "file_size": "2048", "url": "https://images/hero.png"},
    "gallery": [{"uid": "a1", "filename": "1.png"}, {"uid": "a2", "filename": "2.png"}],
    "seo": {"title": "SEO title", "image": {"uid": "a3", "filename": "seo.png"}},
    "authors": [{"uid": "au1", "title": "Ada"}, "au2", {"uid": "au3", "title": "Grace"}],
}


# ---------- Entry accessors ----------


def test_entry_fields_and_typed_getters() -> None:
    entry = make_stack().content_type("blog").entry_from_json(ENTRY_DOC)
    assert entry.uid == "blt_entry"
    assert (entry.title, entry.url, entry.locale, entry.tags) == ("Hello", "/hello", "en-us", ["news"])
    assert entry.get_string("title") == "Hello"
    assert entry.get_string("views") is None
    assert entry.get_number("rating") == 4.5
    assert entry.get_int("views") == 10
    assert entry.get_number("featured") is None
    assert entry.get_bool("featured") is True
    assert entry.get("missing") is None
    assert entry.created_at == datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert entry.updated_by == "blt_user"
    assert entry.deleted_at is None
    assert entry.owner_email == "owner@example.com"
    assert entry.owner_uid == "blt_owner"
    assert entry.metadata == {"publish_details": {"environment": "production"}}


def test_metadata_uid_wins() -> None:
    entry = make_stack().content_type("blog").entry_from_json(
        {"uid": "plain", "_metadata": {"uid": "from_meta", "partial": True}}
    )
    assert entry.uid == "from_meta"
    assert entry.metadata["partial"] is True


def test_reference_resolution_wraps_embedded_documents() -> None:
    entry = make_stack().content_type("blog").entry_from_json(ENTRY_DOC)

    hero = entry.get_asset("hero")
    assert hero.uid == "blt_asset"
    assert (hero.file_name, hero.file_type, hero.file_size) == ("hero.png", "image/png", "2048")
    assert [a.uid for a in entry.get_assets("gallery")] == ["a1", "a2"]
    assert entry.get_asset("title") is None

    seo = entry.get_group("seo")
    assert seo.get_string("title") == "SEO title"
    assert seo.get_asset("image").file_name == "seo.png"
    assert entry.get_groups("gallery")[1].get("uid") == "a2"

    authors = entry.get_all_entries("authors", "author")
    assert [a.uid for a in authors] == ["au1", "au3"]
    assert authors[0].content_type_uid == "author"
    assert entry.get_all_entries("missing", "author") == []


# ---------- Entry fetch ----------


@pytest.mark.asyncio
async def test_entry_fetch_builds_request_and_populates() -> None:
    seen: List[httpx.Request] = []

    def responder(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"entry": ENTRY_DOC})

    entry = make_stack(responder).content_type("blog").entry("blt_entry")
    entry.only(["title"]).include_reference("authors").set_locale("en-us").include_embedded_items()
    outcome = await entry.fetch()

    assert outcome.value is entry
    assert entry.title == "Hello"
    request = seen[0]
    assert request.url.path == "/v3/content_types/blog/entries/blt_entry"
    assert request.url.params.get_list("only[BASE][]") == ["title"]
    assert request.url.params.get_list("include[]") == ["authors"]
    assert request.url.params["locale"] == "en-us"
    assert request.url.params["include_embedded_items[]"] == "BASE"


@pytest.mark.asyncio
async def test_entry_fetch_without_uid_is_configuration_error() -> None:
    calls: List[Any] = []
    outcome = await make_stack().content_type("blog").entry().fetch(lambda r, e: calls.append((r, e)))
    assert isinstance(outcome.error, ConfigurationError)
    assert calls == [(None, outcome.error)]


@pytest.mark.asyncio
async def test_entry_invalid_projection_is_validation_error() -> None:
    outcome = await make_stack().content_type("blog").entry("x").only([]).fetch()
    assert isinstance(outcome.error, ValidationError)
    assert "only" in outcome.error.errors


# ---------- Assets ----------


@pytest.mark.asyncio
async def test_asset_fetch() -> None:
    def responder(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v3/assets/blt_asset"
        assert request.url.params["include_dimension"] == "true"
        return httpx.Response(
            200,
            json={"asset": {"uid": "blt_asset", "filename": "a.pdf", "content_type": "application/pdf", "file_size": 99, "tags": ["doc"]}},
        )

    outcome = await make_stack(responder).asset("blt_asset").include_dimension().fetch()
    asset = outcome.value
    assert (asset.file_name, asset.file_type, asset.file_size, asset.tags) == ("a.pdf", "application/pdf", "99", ["doc"])


@pytest.mark.asyncio
async def test_asset_fetch_requires_uid() -> None:
    outcome = await make_stack().asset().fetch()
    assert isinstance(outcome.error, ConfigurationError)


@pytest.mark.asyncio
async def test_asset_library_lists_assets() -> None:
    seen: List[httpx.Request] = []

    def responder(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"assets": [{"uid": "a1"}, {"uid": "a2"}], "count": 2})

    library = make_stack(responder).asset_library()
    library.where("content_type", "image/png").sort("created_at", SortOrder.DESCENDING).include_count().limit(2)
    outcome = await library.fetch_all()

    assert [a.uid for a in outcome.value.assets] == ["a1", "a2"]
    assert outcome.value.count == 2
    params = seen[0].url.params
    assert params["query"] == '{"content_type":"image/png"}'
    assert params["desc"] == "created_at"
    assert params["limit"] == "2"


def test_asset_library_sort_replaces_direction() -> None:
    library = make_stack().asset_library().sort("title").sort("created_at", "desc")
    params = library.build_params()
    assert params["desc"] == "created_at"
    assert "asc" not in params


@pytest.mark.asyncio
async def test_entry_bare_string_projection_is_validation_error() -> None:
    entry = make_stack().content_type("blog").entry("x").only("title").except_with_reference_uid("bio", "author")
    assert entry.build_params() == {}
    outcome = await entry.fetch()
    assert isinstance(outcome.error, ValidationError)
    assert "only" in outcome.error.errors


@pytest.mark.asyncio
async def test_asset_library_invalid_pagination_is_delivered() -> None:
    library = make_stack().asset_library().limit("x").skip(-3)
    assert "limit" not in library.build_params()
    assert "skip" not in library.build_params()

    calls: List[Any] = []
    outcome = await library.fetch_all(lambda result, error: calls.append((result, error)))
    assert isinstance(outcome.error, ValidationError)
    assert "limit" in outcome.error.errors
    assert calls == [(None, outcome.error)]
