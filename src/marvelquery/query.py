"""Query lifecycle controller -- one logical, possibly multi-page request.

A :class:`Query` owns everything about one request sequence: its endpoint,
its resolved parameters (including the moving ``offset``), the most recent
page, every page it has ever returned, and whether the sequence is complete.

States::

    UNFETCHED --fetch()--> FETCHED --fetch()--> FETCHED | COMPLETE

Each successful :meth:`Query.fetch` advances ``offset`` past the page it
received and returns the query itself, so both styles work::

    query = await client.query("comics", titleStartsWith="Hulk").fetch()
    while not query.is_complete:
        await query.fetch()

A page completes the query when it is empty, when nothing remains after it
(``total - (offset + count) <= 0``), or when it repeats the ids of the
previous page. Fetching a complete query is allowed and requests the page at
the current offset; stopping is the caller's decision.

A query instance must not be fetched concurrently with itself. Queries
created by auto-discovery helpers are always new instances.
"""

from __future__ import annotations

import enum
import inspect
import uuid
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence

from pydantic import ValidationError

from marvelquery.discovery import AutoDiscovery
from marvelquery.endpoint import EndpointLike, type_of, validate
from marvelquery.exceptions import (
    EmptyResultError,
    ParameterValidationError,
    RequestError,
    ResponseValidationError,
)
from marvelquery.request import build_url
from marvelquery.schemas import APIWrapper
from marvelquery.validation import validate_results

if TYPE_CHECKING:
    from marvelquery.client import MarvelQuery


class QueryState(str, enum.Enum):
    """Lifecycle position of a :class:`Query`."""

    UNFETCHED = "unfetched"
    FETCHED = "fetched"
    COMPLETE = "complete"


def _page_ids(results: Sequence[Mapping[str, Any]]) -> list[Any]:
    return [item.get("id") for item in results]


class Query:
    """Stateful controller for one endpoint and parameter set.

    Usually created through :meth:`marvelquery.client.MarvelQuery.query`.

    Args:
        endpoint: Anything :func:`~marvelquery.endpoint.validate` accepts.
        params: Call-specific parameters.
        client: The configured entry point; supplies configuration, the
            parameter manager, credentials, the HTTP client and the factory
            for queries created by auto-discovery.

    Raises:
        InvalidEndpointError: If *endpoint* is invalid.

    Parameter validation errors are not raised here; they are recorded in
    ``validated["parameters"]`` and raised by the next :meth:`fetch` before
    any request is sent.
    """

    def __init__(
        self,
        endpoint: EndpointLike,
        params: Optional[Mapping[str, Any]] = None,
        *,
        client: MarvelQuery,
    ) -> None:
        self.client = client
        self.config = client.config
        self.endpoint = validate(endpoint)
        self.type = type_of(self.endpoint)
        self.query_id = uuid.uuid4().hex[:8]
        self.logger = client.logger.identify(self.query_id)
        self.logger.verbose(f"New query for /{self.endpoint.path} (type: {self.type.value})")

        self.validated: dict[str, Optional[bool]] = {"parameters": None, "results": None}
        self._parameter_error: Optional[ParameterValidationError] = None

        manager = client.parameters
        try:
            self.params: dict[str, Any] = manager.resolve(self.endpoint, params)
            if manager.validation_enabled:
                self.validated["parameters"] = True
        except ParameterValidationError as exc:
            self._parameter_error = exc
            self.validated["parameters"] = False
            self.params = manager.merge(self.endpoint, manager.clean(params or {}))

        on_result = self.config.on_result
        self.on_result: Optional[Callable[..., Any]] = on_result.get(
            self.type.value, on_result.get("any")
        )

        self.state = QueryState.UNFETCHED
        self.url: Optional[str] = None
        self.metadata: dict[str, Any] = {}
        self.offset: int = self.params.get("offset", 0)
        self.limit: int = self.params.get("limit", 0)
        self.total: Optional[int] = None
        self.count: int = 0
        self.results: list[dict[str, Any]] = []
        self.result_history: list[dict[str, Any]] = []
        self.is_complete = False

    def __repr__(self) -> str:
        return (
            f"Query(/{self.endpoint.path}, id={self.query_id}, state={self.state.value}, "
            f"offset={self.params.get('offset')}, total={self.total})"
        )

    @property
    def result(self) -> Optional[dict[str, Any]]:
        """First item of the most recent page, or ``None``."""
        return self.results[0] if self.results else None

    def build_url(self, timestamp: Optional[int] = None) -> str:
        """URL the next :meth:`fetch` would request."""
        return build_url(
            self.endpoint,
            self.params,
            self.client.keys,
            timestamp=timestamp,
            base_url=self.config.base_url,
        )

    async def fetch(self) -> Query:
        """Request the page at the current offset and record it.

        Returns:
            This query, with ``results``, ``result_history``, counters and
            ``is_complete`` updated and ``params["offset"]`` moved past the
            page.

        Raises:
            ParameterValidationError: If the parameters failed validation.
            RequestError: If the HTTP call failed.
            ResponseValidationError: If the response is not an API envelope.
        """
        if self._parameter_error is not None:
            raise self._parameter_error
        if self.is_complete:
            self.logger.warn(
                f"Query is already complete; fetching again at offset {self.params.get('offset')}"
            )

        url = self.build_url()
        self.url = url
        if self.config.on_request is not None:
            self.config.on_request(url, self.endpoint, dict(self.params))

        self.logger.verbose(f"Fetching /{self.endpoint.path} with parameters {self.params}")
        try:
            payload = await self.client.http(url)
        except Exception as exc:
            self.logger.error(f"Request for /{self.endpoint.path} failed: {exc!r}")
            raise RequestError(f"Request failed for /{self.endpoint.path}") from exc

        try:
            envelope = APIWrapper.model_validate(payload)
        except ValidationError as exc:
            self.logger.error(f"Unexpected response for /{self.endpoint.path}: {exc}")
            raise ResponseValidationError(
                f"Invalid API response for /{self.endpoint.path}"
            ) from exc

        await self._record(envelope)
        return self

    async def fetch_single(self) -> dict[str, Any]:
        """Fetch with ``limit=1, offset=0`` and return the only item.

        Raises:
            EmptyResultError: If the page was empty.
        """
        self.params["limit"] = 1
        self.params["offset"] = 0
        await self.fetch()
        if not self.results:
            raise EmptyResultError(f"No results for /{self.endpoint.path}")
        return self.results[0]

    async def _record(self, envelope: APIWrapper) -> None:
        data = envelope.data
        results: list[dict[str, Any]] = list(data.results)

        fetched = data.offset + data.count
        remaining = data.total - fetched
        self.params["offset"] = fetched

        no_results = not results
        complete = remaining <= 0
        ids = _page_ids(results)
        # id-less items cannot be compared across pages
        duplicate = bool(results) and None not in ids and ids == _page_ids(self.results)
        if duplicate:
            self.logger.warn("Page repeats the previous page's results; stopping")
        self.is_complete = no_results or complete or duplicate

        self.logger.verbose(
            f"Received {data.count} of {data.total} results "
            f"(offset {data.offset}, remaining {max(remaining, 0)})"
        )

        if results and self.config.validation.is_enabled("api_response"):
            self.validated["results"] = validate_results(results, self.type, self.logger)

        if self.config.auto_query and results:
            discovery = AutoDiscovery(
                self.endpoint,
                self.client.query,
                self.logger,
                strict=self.config.validation.is_enabled("auto_query"),
            )
            results = discovery.inject(results)

        self.metadata = envelope.metadata()
        self.offset = data.offset
        self.limit = data.limit
        self.total = data.total
        self.count = data.count
        self.results = results
        self.result_history.extend(results)
        self.state = QueryState.COMPLETE if self.is_complete else QueryState.FETCHED

        if self.on_result is not None:
            outcome = self.on_result(results)
            if inspect.isawaitable(outcome):
                await outcome
