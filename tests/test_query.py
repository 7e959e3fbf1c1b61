import json
from typing import Any, Dict, List

import httpx
import pytest

from stackdelivery import ValidationError, create_stack
from stackdelivery.stack import Stack

# ---------- Helpers ----------


def make_stack(responder: Any, **options: Any) -> Stack:
    def factory(base_url: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(responder), base_url=base_url)

    return create_stack("blt_api_key", "cs_token", "production", client_factory=factory, **options)


def offline_stack() -> Stack:
    def responder(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request {request.url}")

    return make_stack(responder)


# ---------- Filter state ----------


def test_where_twice_keeps_last_value() -> None:
    q = offline_stack().content_type("blog").query()
    q.where("title", "first").where("title", "second")
    assert q.build_params()["query"] == {"title": "second"}


def test_comparisons_on_same_field_share_operator_map() -> None:
    q = offline_stack().content_type("product").query()
    q.greater_than("price", 10).less_than("price", 100)
    assert q.build_params()["query"] == {"price": {"$gt": 10, "$lt": 100}}


def test_repeated_operator_replaces_only_its_own_key() -> None:
    q = offline_stack().content_type("product").query()
    q.greater_than("price", 10).less_than("price", 100).less_than("price", 50)
    assert q.build_params()["query"] == {"price": {"$gt": 10, "$lt": 50}}


def test_where_overwrites_operator_map() -> None:
    q = offline_stack().content_type("product").query()
    q.greater_than("price", 10).where("price", 42)
    assert q.build_params()["query"] == {"price": 42}


def test_operator_after_where_starts_fresh_map() -> None:
    q = offline_stack().content_type("product").query()
    q.where("price", 42).not_equal_to("price", 0)
    assert q.build_params()["query"] == {"price": {"$ne": 0}}


def test_set_and_existence_operators() -> None:
    q = offline_stack().content_type("blog").query()
    q.contained_in("tags", ("a", "b")).not_contained_in("category", ["x"])
    q.exists("author").not_exists("legacy")
    q.less_than_or_equal_to("rank", 3).greater_than_or_equal_to("rank", 1)
    assert q.build_params()["query"] == {
        "tags": {"$in": ["a", "b"]},
        "category": {"$nin": ["x"]},
        "author": {"$exists": True},
        "legacy": {"$exists": False},
        "rank": {"$lte": 3, "$gte": 1},
    }


def test_regex_with_and_without_modifiers() -> None:
    q = offline_stack().content_type("blog").query()
    q.regex("title", "^hello", "i")
    assert q.filters.get("title") == {"$regex": "^hello", "$options": "i"}
    q.regex("title", "world$")
    assert q.filters.get("title") == {"$regex": "world$"}


def test_or_and_snapshots_child_filters() -> None:
    ct = offline_stack().content_type("blog")
    first = ct.query().where("title", "a")
    second = ct.query().less_than("views", 5)
    q = ct.query().or_([first, second])
    first.where("title", "changed later")
    assert q.build_params()["query"] == {"$or": [{"title": "a"}, {"views": {"$lt": 5}}]}

    q.and_([second])
    assert q.build_params()["query"]["$and"] == [{"views": {"$lt": 5}}]


def test_where_in_embeds_subquery_as_json_string() -> None:
    stack = offline_stack()
    sub = stack.content_type("author").query().where("name", "Ada")
    q = stack.content_type("blog").query().where_in("author", sub)
    operand = q.build_params()["query"]["author"]["$in_query"]
    assert isinstance(operand, str)
    assert operand == '{"name":"Ada"}'

    q.where_not_in("editor", sub)
    assert q.build_params()["query"]["editor"] == {"$nin_query": '{"name":"Ada"}'}


def test_empty_filters_send_no_query_param() -> None:
    q = offline_stack().content_type("blog").query().limit(3)
    params = q.build_params()
    assert "query" not in params
    assert params["limit"] == 3


# ---------- Projection, sort, toggles ----------


def test_projection_is_union_of_calls() -> None:
    q = offline_stack().content_type("blog").query()
    q.only(["title"]).only(["url", "title"]).except_(["body"])
    params = q.build_params()
    assert params["only[BASE][]"] == ["title", "url"]
    assert params["except[BASE][]"] == ["body"]


def test_reference_scoped_projection_includes_reference() -> None:
    q = offline_stack().content_type("blog").query()
    q.only_with_reference_uid(["name"], "author")
    q.except_with_reference_uid(["bio"], "author")
    q.include_reference("category", "author")
    params = q.build_params()
    assert params["only"] == {"author": ["name"]}
    assert params["except"] == {"author": ["bio"]}
    assert params["include[]"] == ["author", "category"]


def test_param_order_and_single_sort_key() -> None:
    q = offline_stack().content_type("blog").query()
    q.include_count().locale("en-us").skip(4).limit(2)
    q.ascending("title").descending("created_at")
    q.only(["title"]).where("status", "live")
    params = q.build_params()
    assert list(params)[:5] == ["query", "only[BASE][]", "desc", "limit", "skip"]
    assert "asc" not in params
    assert params["locale"] == "en-us"
    assert params["include_count"] is True


def test_include_content_type_supersedes_include_schema() -> None:
    q = offline_stack().content_type("blog").query()
    q.include_schema().include_content_type().include_schema()
    params = q.build_params()
    assert params["include_content_type"] is True
    assert "include_schema" not in params


def test_tags_search_and_raw_params() -> None:
    q = offline_stack().content_type("blog").query()
    q.tags(["news", "tech"]).search("hel").add_query("custom", "1").add_param("other", 2)
    q.remove_query("other")
    params = q.build_params()
    assert params["tags"] == "news,tech"
    assert params["typeahead"] == "hel"
    assert params["custom"] == "1"
    assert "other" not in params


def test_embedded_items_toggle() -> None:
    params = offline_stack().content_type("blog").query().include_embedded_items().build_params()
    assert params["include_embedded_items[]"] == ["BASE"]


# ---------- Execution ----------


@pytest.mark.asyncio
async def test_find_sends_encoded_params_and_parses_entries() -> None:
    seen: List[httpx.Request] = []

    def responder(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/v3/content_types/blog/entries":
            return httpx.Response(
                200,
                json={
                    "entries": [
                        {"uid": "e1", "title": "Hello", "locale": "en-us", "tags": ["a", 3]},
                        "stray",
                    ],
                    "count": 7,
                },
            )
        return httpx.Response(404, json={"error_message": "nope"})

    stack = make_stack(responder)
    q = stack.content_type("blog").query()
    q.where("title", "Hello").only(["title", "url"]).include_count()

    calls: List[Any] = []
    outcome = await q.find(lambda result, error: calls.append((result, error)))

    assert outcome.ok
    assert len(calls) == 1 and calls[0][1] is None
    result = outcome.value
    assert result.count == 7
    assert [e.uid for e in result.entries] == ["e1"]
    assert result.entries[0].tags == ["a"]
    assert result.entries[0].content_type_uid == "blog"

    request = seen[0]
    assert request.url.host == "cdn.contentstack.io"
    assert json.loads(request.url.params["query"]) == {"title": "Hello"}
    assert request.url.params["query"] == '{"title":"Hello"}'
    assert request.url.params.get_list("only[BASE][]") == ["title", "url"]
    assert request.url.params["include_count"] == "true"
    assert request.url.params["environment"] == "production"
    assert request.headers["api_key"] == "blt_api_key"
    assert request.headers["access_token"] == "cs_token"
    assert request.headers["X-User-Agent"].startswith("stackdelivery-python/")


@pytest.mark.asyncio
async def test_scoped_projection_is_encoded_per_reference() -> None:
    seen: List[httpx.Request] = []

    def responder(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"entries": []})

    q = make_stack(responder).content_type("blog").query()
    q.only_with_reference_uid(["name", "email"], "author")
    await q.find()

    params = seen[0].url.params
    assert params.get_list("only[author][]") == ["name", "email"]
    assert params.get_list("include[]") == ["author"]


@pytest.mark.asyncio
async def test_find_one_uses_limit_one_and_keeps_builder_limit() -> None:
    limits: List[str] = []

    def responder(request: httpx.Request) -> httpx.Response:
        limits.append(request.url.params.get("limit"))
        return httpx.Response(200, json={"entries": [{"uid": "first"}, {"uid": "second"}]})

    q = make_stack(responder).content_type("blog").query().limit(5)
    outcome = await q.find_one()
    assert outcome.value.uid == "first"
    assert q.build_params()["limit"] == 5

    await q.find()
    assert limits == ["1", "5"]


@pytest.mark.asyncio
async def test_find_one_resolves_none_when_nothing_matches() -> None:
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"entries": []})

    outcome = await make_stack(responder).content_type("blog").query().find_one()
    assert outcome.ok
    assert outcome.value is None


@pytest.mark.asyncio
async def test_builder_can_run_twice_with_same_params() -> None:
    queries: List[str] = []

    def responder(request: httpx.Request) -> httpx.Response:
        queries.append(str(request.url.params))
        return httpx.Response(200, json={"entries": []})

    q = make_stack(responder).content_type("blog").query().where("a", 1).only(["title"])
    await q.find()
    await q.find()
    assert queries[0] == queries[1]


@pytest.mark.asyncio
async def test_count_query_reads_number_under_entries() -> None:
    def responder(request: httpx.Request) -> httpx.Response:
        assert request.url.params["count"] == "true"
        return httpx.Response(200, json={"entries": 12})

    outcome = await make_stack(responder).content_type("blog").query().count().find()
    assert outcome.value.count == 12
    assert outcome.value.entries == []


@pytest.mark.asyncio
async def test_invalid_argument_is_delivered_without_request() -> None:
    q = offline_stack().content_type("blog").query()
    q.where("", "x").limit(-1)

    received: Dict[str, Any] = {}

    def callback(result: Any, error: Any) -> None:
        received.setdefault("calls", []).append((result, error))

    outcome = await q.find(callback)
    assert not outcome.ok
    assert isinstance(outcome.error, ValidationError)
    assert outcome.error.error_message == "Please provide valid params."
    assert "where" in outcome.error.errors
    assert received["calls"] == [(None, outcome.error)]


@pytest.mark.asyncio
async def test_async_callback_is_awaited_once() -> None:
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"entries": [{"uid": "x"}]})

    calls: List[Any] = []

    async def callback(result: Any, error: Any) -> None:
        calls.append((result, error))

    await make_stack(responder).content_type("blog").query().find(callback)
    assert len(calls) == 1
    assert calls[0][0].entries[0].uid == "x"


def test_bare_string_projection_is_rejected() -> None:
    q = offline_stack().content_type("blog").query()
    q.only("title").except_("body").only_with_reference_uid("name", "author")
    params = q.build_params()
    assert "only[BASE][]" not in params
    assert "except[BASE][]" not in params
    assert "only" not in params


@pytest.mark.asyncio
async def test_bare_string_projection_is_delivered_as_validation_error() -> None:
    outcome = await offline_stack().content_type("blog").query().only("title").find()
    assert isinstance(outcome.error, ValidationError)
    assert "only" in outcome.error.errors


@pytest.mark.parametrize("value", ["5", -1, 2.5, True, None])
@pytest.mark.asyncio
async def test_non_integer_pagination_is_delivered_as_validation_error(value: Any) -> None:
    q = offline_stack().content_type("blog").query().limit(value)
    assert "limit" not in q.build_params()

    calls: List[Any] = []
    outcome = await q.find(lambda result, error: calls.append((result, error)))
    assert isinstance(outcome.error, ValidationError)
    assert "limit" in outcome.error.errors
    assert calls == [(None, outcome.error)]

    skipped = offline_stack().content_type("blog").query().skip(value)
    assert "skip" in (await skipped.find()).error.errors
