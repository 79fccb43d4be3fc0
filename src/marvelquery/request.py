"""Request builder and default HTTP transport.

:func:`build_url` turns an endpoint, a resolved parameter set and the API
keys into a signed request URL::

    https://gateway.marvel.com/v1/public/characters/1009610/comics
        ?apikey=<public>&ts=<epoch ms>&hash=<md5(ts + private + public)>
        &offset=0&limit=50&noVariants=true

Without a private key the hash is empty. The server rejects such requests;
the resulting error propagates to the caller like any other transport
failure.

:class:`HttpxTransport` is the HTTP client used when the configuration does
not inject one. Any async callable ``(url) -> envelope`` can replace it.
"""

from __future__ import annotations

import hashlib
import time
from datetime import date, datetime
from typing import Any, Mapping, Optional

import httpx
from pydantic import BaseModel

from marvelquery.endpoint import BASE_URL, Endpoint
from marvelquery.logger import get_logger

logger = get_logger(__name__)


class APIKeys(BaseModel):
    """Credentials issued by the developer portal."""

    public_key: str
    private_key: Optional[str] = None


def timestamp_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def sign(timestamp: int, keys: APIKeys) -> str:
    """Return ``md5(timestamp + private_key + public_key)``, or ``""`` without a private key."""
    if not keys.private_key:
        return ""
    payload = f"{timestamp}{keys.private_key}{keys.public_key}"
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


def serialize_value(value: Any) -> str:
    """Render one parameter value the way the API expects it on the wire."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ",".join(serialize_value(v) for v in value)
    return str(value)


def build_url(
    endpoint: Endpoint,
    params: Mapping[str, Any],
    keys: APIKeys,
    timestamp: Optional[int] = None,
    base_url: str = BASE_URL,
) -> str:
    """Build the signed request URL for *endpoint* with *params*.

    Deterministic for a fixed *timestamp*. Parameters whose value is ``None``
    are left out of the query string.

    Args:
        endpoint: Validated endpoint to request.
        params: Resolved parameters (see
            :meth:`~marvelquery.params.ParameterManager.resolve`).
        keys: Public and optional private API key.
        timestamp: Epoch milliseconds; defaults to now.
        base_url: API root, without trailing slash.

    Returns:
        The absolute URL string.
    """
    ts = timestamp if timestamp is not None else timestamp_ms()
    signature = sign(ts, keys)
    if not signature:
        logger.warn("No private key configured; sending an unsigned request")

    query: list[tuple[str, str]] = [
        ("apikey", keys.public_key),
        ("ts", str(ts)),
        ("hash", signature),
    ]
    query.extend(
        (key, serialize_value(value)) for key, value in params.items() if value is not None
    )

    url = httpx.URL(f"{base_url.rstrip('/')}/{endpoint.path}", params=query)
    return str(url)


class HttpxTransport:
    """Default HTTP client: GET the URL and return the decoded JSON body.

    Non-2xx responses raise :class:`httpx.HTTPStatusError`; network errors
    raise the corresponding :class:`httpx.HTTPError`. There is no retry.

    Args:
        timeout: Request timeout in seconds.
        client: Pre-built :class:`httpx.AsyncClient` (not closed by
            :meth:`aclose`).
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        async with HttpxTransport(timeout=10) as http:
            envelope = await http(url)
    """

    def __init__(
        self,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def __call__(self, url: str) -> Any:
        response = await self._get_client().get(url)
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
