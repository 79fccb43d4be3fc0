"""marvelquery -- query engine for the Marvel Comics developer API.

Build validated, signed requests against the six resource types (characters,
comics, creators, events, series, stories), page through results, and
navigate from any result to the items it references::

    from marvelquery import MarvelQuery

    async with MarvelQuery.init(public_key, private_key) as marvel:
        spider_man = await marvel.query("characters", name="Spider-Man").fetch_single()
        comics = await spider_man.query("comics", noVariants=True).fetch()

Modules:
    endpoint: Endpoint value objects, URI parsing and formatting.
    schemas: Pydantic parameter, envelope and result schemas.
    params: Parameter cleaning, validation and merging.
    request: URL signing and the default httpx transport.
    discovery: Auto-discovery injection of navigation helpers.
    query: The paginated query lifecycle.
    client: The configured entry point.
    config: Configuration models and file/environment loading.
    logger: Logging levels, query-scoped loggers and rich output.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer command-line interface.
"""

__version__ = "0.1.0"

from marvelquery.client import MarvelQuery  # noqa: E402
from marvelquery.config import Config, ValidationConfig, LogOptions, load_config  # noqa: E402
from marvelquery.endpoint import Endpoint, EndpointType  # noqa: E402
from marvelquery.exceptions import MarvelQueryError  # noqa: E402
from marvelquery.logger import configure_logging  # noqa: E402
from marvelquery.query import Query, QueryState  # noqa: E402

__all__ = [
    "Config",
    "Endpoint",
    "EndpointType",
    "LogOptions",
    "MarvelQuery",
    "MarvelQueryError",
    "Query",
    "QueryState",
    "ValidationConfig",
    "configure_logging",
    "load_config",
]
