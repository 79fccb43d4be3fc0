"""Entry point -- configure once, create queries.

:class:`MarvelQuery` holds everything shared by the queries it creates: the
configuration, the :class:`~marvelquery.params.ParameterManager` (built once,
so global parameters are validated at construction), the API keys, and the
HTTP client. It is also the factory that auto-discovery helpers call, so a
query created from an injected result shares the same session.

Example::

    async with MarvelQuery.init(public, private, global_params={"comics": {"noVariants": True}}) as marvel:
        comics = await marvel.query(("characters", 1009610, "comics")).fetch()
        series = await comics.results[0]["series"].fetch_single()
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional

from marvelquery.config import Config, load_config
from marvelquery.endpoint import EndpointLike
from marvelquery.exceptions import ConfigError
from marvelquery.logger import QueryLogger, get_logger
from marvelquery.params import ParameterManager
from marvelquery.query import Query
from marvelquery.request import APIKeys, HttpxTransport


class MarvelQuery:
    """Configured session that creates :class:`~marvelquery.query.Query` objects.

    Args:
        config: Resolved configuration.
        logger: Logger to report through. Defaults to the package logger.

    Raises:
        ConfigError: If ``config.public_key`` is empty.
        ParameterValidationError: If ``config.global_params`` is invalid.
    """

    def __init__(self, config: Config, logger: Optional[QueryLogger] = None) -> None:
        if not config.public_key:
            raise ConfigError(
                "Missing public key. Set MARVEL_PUBLIC_KEY or pass public_key."
            )
        self.config = config
        self.logger = logger or get_logger()
        self.keys = APIKeys(public_key=config.public_key, private_key=config.private_key)
        self.parameters = ParameterManager(config, self.logger)

        self._transport: Optional[HttpxTransport] = None
        if config.http_client is not None:
            self.http = config.http_client
        else:
            self._transport = HttpxTransport(timeout=config.timeout)
            self.http = self._transport

    @classmethod
    def init(cls, public_key: str, private_key: Optional[str] = None, **options: Any) -> MarvelQuery:
        """Build a session from keys and keyword :class:`Config` options."""
        return cls(Config(public_key=public_key, private_key=private_key, **options))

    @classmethod
    def from_config(cls, path: Optional[Path] = None, **overrides: Any) -> MarvelQuery:
        """Build a session from the config file, environment and *overrides*."""
        return cls(load_config(path, **overrides))

    def query(
        self,
        endpoint: EndpointLike,
        params: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> Query:
        """Create a new, unfetched query.

        Keyword arguments are merged over *params*.
        """
        merged = {**(params or {}), **kwargs}
        return Query(endpoint, merged, client=self)

    async def aclose(self) -> None:
        """Close the default transport; an injected client is left open."""
        if self._transport is not None:
            await self._transport.aclose()

    async def __aenter__(self) -> MarvelQuery:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
