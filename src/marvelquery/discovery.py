"""Auto-discovery -- make every reference inside a page navigable.

API items embed two kinds of pointers to other items:

* **Resources** (summaries): ``{"resourceURI": ".../series/1000", "name": "X"}``,
  a reference to exactly one item.
* **Collections** (lists): ``{"available": 12, "returned": 12,
  "collectionURI": ".../comics/5/characters", "items": [<summaries>]}``.

:class:`AutoDiscovery` walks each item of a page, classifies every value
(:func:`classify`), works out the type each key implies
(:func:`resolve_key_type`), parses the URI into an
:class:`~marvelquery.endpoint.Endpoint`, and wraps the value in a ``dict``
subclass that carries the endpoint plus ``query``/``fetch``/``fetch_single``
helpers. The raw JSON stays readable through the usual ``node["name"]``
access.

A node whose endpoint cannot be computed does not stop the walk. It becomes
an :class:`UnresolvedResource` or :class:`UnresolvedCollection` whose helpers
raise the original error, and the failure is logged.

Each :meth:`AutoDiscovery.inject` call keeps a fresh
:class:`DiscoveryRegistry` of what it found. After the page is walked the
registry is logged as a per-type summary and as sorted, deduplicated lists
of endpoints. The registry has no effect on the returned data.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence

from marvelquery.endpoint import (
    KEY_TYPE_OVERRIDES,
    VALID_TYPES,
    Endpoint,
    EndpointType,
    extend,
    from_uri,
    sort_key,
    type_of,
    validate,
)
from marvelquery.exceptions import (
    EndpointMismatchError,
    InvalidEndpointError,
    InvalidURIError,
)
from marvelquery.logger import QueryLogger, get_logger

if TYPE_CHECKING:
    from marvelquery.query import Query

QueryFactory = Callable[[Endpoint, Mapping[str, Any]], "Query"]
"""Creates a new, unfetched query for an endpoint and call parameters."""

_NAME_KEYS = ("name", "title", "fullName")


class NodeKind(enum.Enum):
    """Shape of a value found under a key of an item."""

    PLAIN = "plain"
    RESOURCE = "resource"
    COLLECTION = "collection"
    RESOURCE_ARRAY = "resource_array"


def _has_uri(value: Mapping[str, Any], key: str) -> bool:
    uri = value.get(key)
    return isinstance(uri, str) and bool(uri)


def classify(value: Any) -> NodeKind:
    """Classify *value* as a resource, collection, resource array or plain value.

    * ``COLLECTION`` -- a mapping with a ``collectionURI`` string and an
      ``items`` list.
    * ``RESOURCE`` -- a mapping with a ``resourceURI`` string.
    * ``RESOURCE_ARRAY`` -- a non-empty list whose elements are all resources.
    * ``PLAIN`` -- anything else, including empty lists.
    """
    if isinstance(value, Mapping):
        if _has_uri(value, "collectionURI") and isinstance(value.get("items"), list):
            return NodeKind.COLLECTION
        if _has_uri(value, "resourceURI"):
            return NodeKind.RESOURCE
        return NodeKind.PLAIN
    if isinstance(value, list) and value:
        if all(classify(v) is NodeKind.RESOURCE for v in value):
            return NodeKind.RESOURCE_ARRAY
    return NodeKind.PLAIN


def resolve_key_type(key: str, base_type: EndpointType) -> EndpointType:
    """Return the resource type implied by *key* inside an item of *base_type*.

    A key that is itself a type name (``"series"``) maps to that type; a
    known special key (``"originalIssue"``) maps to its override; any other
    key (``"variants"``, ``"next"``, ``"previous"``) refers back to
    *base_type*.
    """
    if key in VALID_TYPES:
        return EndpointType(key)
    if key in KEY_TYPE_OVERRIDES:
        return KEY_TYPE_OVERRIDES[key]
    return base_type


def find_name(value: Mapping[str, Any]) -> str:
    """Human-readable label of an item or summary, or ``""``."""
    for key in _NAME_KEYS:
        name = value.get(key)
        if name:
            return str(name)
    return ""


# --- Extended nodes ---


class ExtendedResource(dict):
    """A resource (or top-level item) with navigation helpers.

    Attributes:
        endpoint: The ``(type, id)`` endpoint of the referenced item.
    """

    def __init__(self, value: Mapping[str, Any], endpoint: Endpoint, factory: QueryFactory) -> None:
        super().__init__(value)
        self.endpoint = endpoint
        self._factory = factory

    def query(self, subtype: Any, params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Query:
        """Open an unfetched query over the *subtype* items related to this one."""
        return self._factory(extend(self.endpoint, subtype), {**(params or {}), **kwargs})

    async def fetch(self) -> Query:
        """Fetch the full item this resource points to; returns the fetched query."""
        return await self._factory(self.endpoint, {}).fetch()

    async def fetch_single(self) -> dict[str, Any]:
        """Fetch the full item this resource points to and return it."""
        return await self._factory(self.endpoint, {}).fetch_single()


class ExtendedCollection(dict):
    """A collection whose ``items`` have been extended.

    Attributes:
        endpoint: The collection endpoint parsed from ``collectionURI``.
    """

    def __init__(self, value: Mapping[str, Any], endpoint: Endpoint, factory: QueryFactory) -> None:
        super().__init__(value)
        self.endpoint = endpoint
        self._factory = factory

    def query(self, params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Query:
        """Open an unfetched query over the whole collection."""
        return self._factory(self.endpoint, {**(params or {}), **kwargs})


class UnresolvedResource(dict):
    """A resource whose endpoint could not be determined.

    The raw value is kept; every helper raises :attr:`error`.
    """

    endpoint = None

    def __init__(self, value: Mapping[str, Any], error: Exception) -> None:
        super().__init__(value)
        self.error = error

    def query(self, *args: Any, **kwargs: Any) -> Query:
        raise self.error

    async def fetch(self) -> Query:
        raise self.error

    async def fetch_single(self) -> dict[str, Any]:
        raise self.error


class UnresolvedCollection(dict):
    """A collection whose endpoint could not be determined; ``query`` raises :attr:`error`."""

    endpoint = None

    def __init__(self, value: Mapping[str, Any], error: Exception) -> None:
        super().__init__(value)
        self.error = error

    def query(self, *args: Any, **kwargs: Any) -> Query:
        raise self.error


# --- Registry ---


class DiscoveryRegistry:
    """Endpoints discovered during one :meth:`AutoDiscovery.inject` call.

    Resources and collections are partitioned by type. Every discovery is
    recorded (so the summary counts what was processed); the sorted listings
    are deduplicated.
    """

    def __init__(self) -> None:
        self.resources: dict[EndpointType, list[Endpoint]] = {t: [] for t in EndpointType}
        self.collections: dict[EndpointType, list[Endpoint]] = {t: [] for t in EndpointType}
        self.names: dict[Endpoint, str] = {}

    def add_resource(self, endpoint: Endpoint, name: str = "") -> bool:
        """Record a resource; return ``False`` if it was already seen on this page."""
        return self._add(self.resources, endpoint, name)

    def add_collection(self, endpoint: Endpoint, name: str = "") -> bool:
        """Record a collection; return ``False`` if it was already seen on this page."""
        return self._add(self.collections, endpoint, name)

    def _add(self, bucket: dict[EndpointType, list[Endpoint]], endpoint: Endpoint, name: str) -> bool:
        entries = bucket[type_of(endpoint)]
        is_new = endpoint not in entries
        entries.append(endpoint)
        if name and endpoint not in self.names:
            self.names[endpoint] = name
        return is_new

    @staticmethod
    def _sorted(bucket: dict[EndpointType, list[Endpoint]]) -> list[Endpoint]:
        unique = dict.fromkeys(e for entries in bucket.values() for e in entries)
        return sorted(unique, key=sort_key)

    def sorted_resources(self) -> list[Endpoint]:
        return self._sorted(self.resources)

    def sorted_collections(self) -> list[Endpoint]:
        return self._sorted(self.collections)

    @property
    def total_resources(self) -> int:
        return sum(len(entries) for entries in self.resources.values())

    @property
    def total_collections(self) -> int:
        return sum(len(entries) for entries in self.collections.values())

    @staticmethod
    def _counts(bucket: dict[EndpointType, list[Endpoint]]) -> str:
        return ", ".join(
            f"{endpoint_type.value}: {len(entries)}"
            for endpoint_type, entries in bucket.items()
            if entries
        )

    def summary(self) -> str:
        rule = "=" * 65
        return "\n".join(
            [
                "AutoQuery Injection Summary",
                rule,
                f" Total Collections Processed: {self.total_collections}",
                f" {self._counts(self.collections)}",
                "-" * 65,
                f" Total Resources Processed: {self.total_resources}",
                f" {self._counts(self.resources)}",
                rule,
            ]
        )

    def listing(self, endpoints: Sequence[Endpoint], fallback: str) -> str:
        return "\n".join(
            f"{endpoint.path} - {self.names.get(endpoint, fallback)}" for endpoint in endpoints
        )


# --- Engine ---


class AutoDiscovery:
    """Attach navigation helpers to every resource and collection in a page.

    Args:
        endpoint: The endpoint that produced the page. Its resolved type is
            the type of every top-level item.
        query_factory: Creates the queries returned by the helpers.
        logger: Logger for failures and the post-walk summary.
        strict: Check that each URI's type matches the type implied by
            its key. When ``False`` the parsed URI is trusted.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        query_factory: QueryFactory,
        logger: Optional[QueryLogger] = None,
        strict: bool = True,
    ) -> None:
        self.endpoint = endpoint
        self.query_factory = query_factory
        self.logger = logger or get_logger(__name__)
        self.strict = strict
        self.registry = DiscoveryRegistry()

    @property
    def base_type(self) -> EndpointType:
        return type_of(self.endpoint)

    def inject(self, results: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Extend every item of *results* and log what was discovered.

        A new registry is started for each call.
        """
        self.registry = DiscoveryRegistry()
        self.logger.verbose("Starting auto-query injection...")

        extended = [self.extend_result(result) for result in results]

        self.logger.verbose(self.registry.summary())
        self.logger.verbose(
            "Resources:\n\n"
            + self.registry.listing(self.registry.sorted_resources(), "Unknown Resource")
        )
        self.logger.verbose(
            "Collections:\n\n"
            + self.registry.listing(self.registry.sorted_collections(), "Unknown Collection")
        )
        return extended

    def extend_result(self, result: Mapping[str, Any]) -> dict[str, Any]:
        """Extend one top-level item and every linked value inside it."""
        base_type = self.base_type
        parent_name = find_name(result)

        extended = {
            key: self._extend_value(key, value, base_type, parent_name)
            for key, value in result.items()
        }

        try:
            endpoint = validate((base_type, result.get("id")))
        except InvalidEndpointError as exc:
            self.logger.error(f"Failed to determine result endpoint: {exc}")
            return UnresolvedResource(extended, exc)

        return ExtendedResource(extended, endpoint, self.query_factory)

    def _extend_value(self, key: str, value: Any, base_type: EndpointType, parent_name: str) -> Any:
        kind = classify(value)
        if kind is NodeKind.PLAIN:
            return value

        key_type = resolve_key_type(key, base_type)
        if kind is NodeKind.RESOURCE:
            return self._extend_resource(value, key_type)
        if kind is NodeKind.COLLECTION:
            return self._extend_collection(value, key_type, parent_name)
        return [self._extend_resource(item, key_type) for item in value]

    def _check_type(self, endpoint: Endpoint, expected: EndpointType, uri: str) -> None:
        actual = type_of(endpoint)
        if self.strict and actual != expected:
            raise EndpointMismatchError(
                f"Endpoint mismatch for {uri}: expected '{expected.value}', "
                f"found '{actual.value}'",
                expected=expected,
                actual=actual,
            )

    def _resource_endpoint(self, uri: str, expected: EndpointType) -> Endpoint:
        endpoint = from_uri(uri)
        if not endpoint.is_resource:
            raise InvalidURIError(f"Resource URI does not address a single item: {uri}", uri=uri)
        self._check_type(endpoint, expected, uri)
        return endpoint

    def _extend_resource(self, value: Mapping[str, Any], expected: EndpointType) -> dict[str, Any]:
        try:
            endpoint = self._resource_endpoint(value["resourceURI"], expected)
        except (InvalidEndpointError, EndpointMismatchError) as exc:
            self.logger.error(f"Failed to determine resource endpoint: {exc}")
            return UnresolvedResource(value, exc)

        if not self.registry.add_resource(endpoint, find_name(value)):
            self.logger.debug(f"Resource {endpoint.path} already discovered on this page")
        return ExtendedResource(value, endpoint, self.query_factory)

    def _extend_collection(
        self, value: Mapping[str, Any], expected: EndpointType, parent_name: str
    ) -> dict[str, Any]:
        uri = value["collectionURI"]
        endpoint: Optional[Endpoint] = None
        error: Optional[Exception] = None
        try:
            endpoint = from_uri(uri)
            self._check_type(endpoint, expected, uri)
        except (InvalidEndpointError, EndpointMismatchError) as exc:
            error = exc

        # items belong to the collection's own type when its URI parses
        item_type = type_of(endpoint) if endpoint is not None else expected
        items = [
            self._extend_resource(item, item_type) if classify(item) is NodeKind.RESOURCE else item
            for item in value["items"]
        ]
        extended = {**value, "items": items}

        if error is not None:
            self.logger.error(f"Failed to determine collection endpoint: {error}")
            return UnresolvedCollection(extended, error)

        self.registry.add_collection(endpoint, parent_name)
        return ExtendedCollection(extended, endpoint, self.query_factory)
