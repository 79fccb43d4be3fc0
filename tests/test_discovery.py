"""Tests for auto-discovery injection."""

from __future__ import annotations

import copy
import logging
from typing import Any

import httpx
import pytest

from marvelquery.discovery import (
    AutoDiscovery,
    DiscoveryRegistry,
    ExtendedCollection,
    ExtendedResource,
    NodeKind,
    UnresolvedCollection,
    UnresolvedResource,
    classify,
    find_name,
    resolve_key_type,
)
from marvelquery.endpoint import EndpointType, validate
from marvelquery.exceptions import EndpointMismatchError, InvalidEndpointError, InvalidURIError


BASE = "http://gateway.marvel.com/v1/public"


class RecordingFactory:
    """Query factory that records its calls instead of creating queries."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, dict[str, Any]]] = []

    def __call__(self, endpoint, params):
        self.calls.append((endpoint, dict(params)))
        return ("query", endpoint)


@pytest.fixture
def factory() -> RecordingFactory:
    return RecordingFactory()


def _discovery(endpoint, factory, strict: bool = True) -> AutoDiscovery:
    return AutoDiscovery(validate(endpoint), factory, strict=strict)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassify:
    def test_resource(self) -> None:
        assert classify({"resourceURI": f"{BASE}/series/1", "name": "X"}) is NodeKind.RESOURCE

    def test_collection(self) -> None:
        value = {"available": 0, "returned": 0, "collectionURI": f"{BASE}/comics/1/characters", "items": []}
        assert classify(value) is NodeKind.COLLECTION

    def test_resource_array(self) -> None:
        value = [{"resourceURI": f"{BASE}/comics/1"}, {"resourceURI": f"{BASE}/comics/2"}]
        assert classify(value) is NodeKind.RESOURCE_ARRAY

    @pytest.mark.parametrize(
        "value",
        [
            "text",
            42,
            None,
            [],
            [{"resourceURI": f"{BASE}/comics/1"}, {"type": "print"}],
            [{"type": "onsaleDate", "date": "2008-06-04"}],
            {"resourceURI": ""},
            {"collectionURI": f"{BASE}/comics/1/characters", "items": "none"},
            {"type": "detail", "url": "http://marvel.com"},
        ],
    )
    def test_plain(self, value) -> None:
        assert classify(value) is NodeKind.PLAIN


class TestResolveKeyType:
    def test_type_name_key(self) -> None:
        assert resolve_key_type("series", EndpointType.COMICS) is EndpointType.SERIES

    def test_override_key(self) -> None:
        assert resolve_key_type("originalIssue", EndpointType.STORIES) is EndpointType.COMICS

    @pytest.mark.parametrize("key", ["variants", "next", "previous", "collections"])
    def test_other_keys_use_base_type(self, key: str) -> None:
        assert resolve_key_type(key, EndpointType.EVENTS) is EndpointType.EVENTS


class TestFindName:
    def test_name_title_full_name(self) -> None:
        assert find_name({"name": "Hulk"}) == "Hulk"
        assert find_name({"title": "Hulk #1"}) == "Hulk #1"
        assert find_name({"fullName": "Stan Lee"}) == "Stan Lee"
        assert find_name({"id": 1}) == ""


# ---------------------------------------------------------------------------
# Injection
# ---------------------------------------------------------------------------


class TestInject:
    def test_top_level_item_gets_resource_endpoint(self, factory, comic_item) -> None:
        [result] = _discovery("comics", factory).inject([comic_item])
        assert isinstance(result, ExtendedResource)
        assert result.endpoint == validate(("comics", 21366))

    def test_sub_collection_items_use_resolved_type(self, factory, character_item) -> None:
        [result] = _discovery(("series", 1000, "characters"), factory).inject([character_item])
        assert result.endpoint == validate(("characters", 1009610))

    def test_series_resource(self, factory, comic_item) -> None:
        [result] = _discovery("comics", factory).inject([comic_item])
        series = result["series"]
        assert isinstance(series, ExtendedResource)
        assert series.endpoint == validate(("series", 1945))
        assert series["name"] == "Avengers: The Initiative (2007 - 2010)"

    def test_series_collection_items(self, factory, character_item) -> None:
        [result] = _discovery("characters", factory).inject([character_item])
        [series] = result["series"]["items"]
        assert series.endpoint == validate(("series", 1000))

    def test_collection_endpoint(self, factory, comic_item) -> None:
        [result] = _discovery("comics", factory).inject([comic_item])
        characters = result["characters"]
        assert isinstance(characters, ExtendedCollection)
        assert characters.endpoint == validate(("comics", 21366, "characters"))
        assert characters["available"] == 1
        assert characters["items"][0].endpoint == validate(("characters", 1010802))

    def test_resource_array_uses_base_type(self, factory, comic_item) -> None:
        [result] = _discovery("comics", factory).inject([comic_item])
        [variant] = result["variants"]
        assert variant.endpoint == validate(("comics", 24571))

    def test_override_key(self, factory, story_item) -> None:
        [result] = _discovery("stories", factory).inject([story_item])
        assert result["originalIssue"].endpoint == validate(("comics", 21366))

    def test_plain_values_untouched(self, factory, comic_item) -> None:
        [result] = _discovery("comics", factory).inject([comic_item])
        assert result["title"] == comic_item["title"]
        assert result["collections"] == []
        assert type(result["collections"]) is list

    def test_input_not_modified(self, factory, comic_item) -> None:
        original = copy.deepcopy(comic_item)
        _discovery("comics", factory).inject([comic_item])
        assert comic_item == original
        assert type(comic_item["series"]) is dict

    def test_extended_nodes_are_json_compatible(self, factory, comic_item) -> None:
        [result] = _discovery("comics", factory).inject([comic_item])
        assert result == comic_item

    def test_result_without_id_is_unresolved(self, factory) -> None:
        item = {"title": "No id", "series": {"resourceURI": f"{BASE}/series/5", "name": "S"}}
        [result] = _discovery("comics", factory).inject([item])
        assert isinstance(result, UnresolvedResource)
        assert isinstance(result.error, InvalidEndpointError)
        assert result["series"].endpoint == validate(("series", 5))


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------


class TestFailures:
    def test_mismatch_isolated_to_node(self, factory, comic_item, caplog) -> None:
        comic_item["series"] = {"resourceURI": f"{BASE}/comics/5", "name": "Wrong"}
        with caplog.at_level(logging.ERROR, logger="marvelquery"):
            [result] = _discovery("comics", factory).inject([comic_item])

        series = result["series"]
        assert isinstance(series, UnresolvedResource)
        assert isinstance(series.error, EndpointMismatchError)
        assert series.error.expected is EndpointType.SERIES
        assert series.error.actual is EndpointType.COMICS
        assert series["name"] == "Wrong"
        assert "Endpoint mismatch" in caplog.text

        # siblings are still extended
        assert isinstance(result["characters"], ExtendedCollection)
        assert result["variants"][0].endpoint == validate(("comics", 24571))

    def test_unresolved_helpers_raise_original_error(self, factory, comic_item) -> None:
        comic_item["series"] = {"resourceURI": f"{BASE}/characters/5", "name": "Wrong"}
        [result] = _discovery("comics", factory).inject([comic_item])
        with pytest.raises(EndpointMismatchError):
            result["series"].query("comics")
        assert factory.calls == []

    @pytest.mark.asyncio
    async def test_unresolved_fetch_raises(self, factory, comic_item) -> None:
        comic_item["series"] = {"resourceURI": "http://example.com/series/x", "name": "Bad"}
        [result] = _discovery("comics", factory).inject([comic_item])
        with pytest.raises(InvalidURIError):
            await result["series"].fetch()
        with pytest.raises(InvalidURIError):
            await result["series"].fetch_single()

    def test_non_strict_trusts_uri(self, factory, comic_item) -> None:
        comic_item["series"] = {"resourceURI": f"{BASE}/characters/5", "name": "Trusted"}
        [result] = _discovery("comics", factory, strict=False).inject([comic_item])
        assert result["series"].endpoint == validate(("characters", 5))

    def test_resource_uri_must_address_one_item(self, factory, comic_item) -> None:
        comic_item["series"] = {"resourceURI": f"{BASE}/series", "name": "All"}
        [result] = _discovery("comics", factory).inject([comic_item])
        assert isinstance(result["series"], UnresolvedResource)

    def test_collection_mismatch(self, factory, comic_item) -> None:
        comic_item["creators"]["collectionURI"] = f"{BASE}/comics/21366/events"
        [result] = _discovery("comics", factory).inject([comic_item])
        creators = result["creators"]
        assert isinstance(creators, UnresolvedCollection)
        with pytest.raises(EndpointMismatchError):
            creators.query()

        # items are checked against the collection's own type
        item = creators["items"][0]
        assert isinstance(item, UnresolvedResource)
        assert item.error.expected is EndpointType.EVENTS
        assert item.error.actual is EndpointType.CREATORS

    def test_unparseable_collection_items_use_key_type(self, factory, comic_item) -> None:
        comic_item["creators"]["collectionURI"] = "http://example.com/creators"
        [result] = _discovery("comics", factory).inject([comic_item])
        creators = result["creators"]
        assert isinstance(creators, UnresolvedCollection)
        assert isinstance(creators.error, InvalidURIError)
        assert creators["items"][0].endpoint == validate(("creators", 8635))

    def test_mismatched_item_inside_collection(self, factory, comic_item, caplog) -> None:
        comic_item["creators"]["items"][1]["resourceURI"] = f"{BASE}/comics/10021"
        with caplog.at_level(logging.ERROR, logger="marvelquery"):
            [result] = _discovery("comics", factory).inject([comic_item])

        creators = result["creators"]
        assert isinstance(creators, ExtendedCollection)
        assert creators.endpoint == validate(("comics", 21366, "creators"))
        first, second = creators["items"]
        assert isinstance(first, ExtendedResource)
        assert first.endpoint == validate(("creators", 8635))
        assert isinstance(second, UnresolvedResource)
        assert isinstance(second.error, EndpointMismatchError)
        assert second.error.expected is EndpointType.CREATORS
        assert second.error.actual is EndpointType.COMICS
        assert "Endpoint mismatch" in caplog.text

    @pytest.mark.parametrize("bad_id", ["²", "１２"])
    def test_non_ascii_id_isolated_to_node(self, factory, comic_item, bad_id: str) -> None:
        comic_item["series"] = {"resourceURI": f"{BASE}/series/{bad_id}", "name": "Odd"}
        comic_item["characters"]["collectionURI"] = f"{BASE}/comics/{bad_id}/characters"
        [result] = _discovery("comics", factory).inject([comic_item])

        assert isinstance(result, ExtendedResource)
        assert isinstance(result["series"], UnresolvedResource)
        assert isinstance(result["series"].error, InvalidURIError)
        assert isinstance(result["characters"], UnresolvedCollection)
        assert isinstance(result["creators"], ExtendedCollection)
        assert result["variants"][0].endpoint == validate(("comics", 24571))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_resource_query_extends_endpoint(self, factory, character_item) -> None:
        [result] = _discovery("characters", factory).inject([character_item])
        assert result.query("comics", {"noVariants": True}, limit=5) == (
            "query",
            validate(("characters", 1009610, "comics")),
        )
        assert factory.calls[-1][1] == {"noVariants": True, "limit": 5}

    def test_resource_query_same_type_rejected(self, factory, comic_item) -> None:
        [result] = _discovery("comics", factory).inject([comic_item])
        with pytest.raises(InvalidEndpointError):
            result.query("comics")

    def test_collection_query(self, factory, comic_item) -> None:
        [result] = _discovery("comics", factory).inject([comic_item])
        result["creators"].query(orderBy="lastName")
        endpoint, params = factory.calls[-1]
        assert endpoint == validate(("comics", 21366, "creators"))
        assert params == {"orderBy": "lastName"}

    @pytest.mark.asyncio
    async def test_resource_fetch_single_uses_client(
        self, client, fake_http, make_envelope, comic_item
    ) -> None:
        series = {
            "id": 1945,
            "title": "Avengers: The Initiative (2007 - 2010)",
            "resourceURI": f"{BASE}/series/1945",
        }
        fake_http.queue(make_envelope([series]))
        [result] = AutoDiscovery(validate("comics"), client.query).inject([comic_item])

        fetched = await result["series"].fetch_single()

        assert fetched["id"] == 1945
        assert httpx.URL(fake_http.urls[-1]).path == "/v1/public/series/1945"
        assert fetched.endpoint == validate(("series", 1945))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    def test_shared_creator_deduplicated(self, factory, comic_item) -> None:
        second = copy.deepcopy(comic_item)
        second["id"] = 21367
        second["resourceURI"] = f"{BASE}/comics/21367"
        second["creators"] = {
            "available": 1,
            "returned": 1,
            "collectionURI": f"{BASE}/comics/21367/creators",
            "items": [{"resourceURI": f"{BASE}/creators/8635", "name": "Christos Gage"}],
        }
        discovery = _discovery("comics", factory)
        discovery.inject([comic_item, second])

        registry = discovery.registry
        creators = [e for e in registry.sorted_resources() if e.type is EndpointType.CREATORS]
        assert creators == [validate(("creators", 8635)), validate(("creators", 10021))]
        assert len(registry.resources[EndpointType.CREATORS]) == 3

    def test_fresh_registry_per_inject(self, factory, comic_item) -> None:
        discovery = _discovery("comics", factory)
        discovery.inject([comic_item])
        first = discovery.registry
        discovery.inject([])
        assert discovery.registry is not first
        assert discovery.registry.total_resources == 0

    def test_add_reports_duplicates(self) -> None:
        registry = DiscoveryRegistry()
        endpoint = validate(("series", 1000))
        assert registry.add_resource(endpoint, "Amazing Spider-Man") is True
        assert registry.add_resource(endpoint) is False
        assert registry.names[endpoint] == "Amazing Spider-Man"

    def test_summary_and_listing(self, factory, comic_item) -> None:
        discovery = _discovery("comics", factory)
        discovery.inject([comic_item])
        summary = discovery.registry.summary()
        assert summary.startswith("AutoQuery Injection Summary")
        assert "Total Collections Processed: 4" in summary
        assert "creators: 2" in summary

        listing = discovery.registry.listing(
            discovery.registry.sorted_collections(), "Unknown Collection"
        )
        assert "comics/21366/characters - Avengers: The Initiative (2007) #14" in listing

    def test_summary_logged_at_verbose(self, factory, comic_item, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="marvelquery"):
            _discovery("comics", factory).inject([comic_item])
        assert "AutoQuery Injection Summary" in caplog.text
        assert "series/1945 - Avengers: The Initiative (2007 - 2010)" in caplog.text
