"""Shared test fixtures for marvelquery.

Provides sample API items, an envelope factory, a fake async HTTP client
that records requested URLs, and configured sessions. Environment variables
and logging state are isolated per test.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import pytest

from marvelquery.client import MarvelQuery
from marvelquery.config import Config
from marvelquery.logger import LOGGER_NAME


BASE = "http://gateway.marvel.com/v1/public"


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Point the config dir at a temp dir and clear key variables."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in ("MARVEL_PUBLIC_KEY", "MARVEL_PRIVATE_KEY", "MARVEL_BASE_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_logging() -> None:
    """Undo :func:`configure_logging` so caplog sees records in every test."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_marvelquery", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------


def summary(path: str, name: str) -> dict[str, Any]:
    return {"resourceURI": f"{BASE}/{path}", "name": name}


def collection(path: str, items: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "available": len(items),
        "returned": len(items),
        "collectionURI": f"{BASE}/{path}",
        "items": items,
    }


@pytest.fixture
def make_envelope() -> Callable[..., dict[str, Any]]:
    """Factory for API response envelopes around a list of items."""

    def _make(
        results: list[dict[str, Any]],
        offset: int = 0,
        limit: int = 20,
        total: int | None = None,
        count: int | None = None,
    ) -> dict[str, Any]:
        return {
            "code": 200,
            "status": "Ok",
            "copyright": "(c) 2026 MARVEL",
            "attributionText": "Data provided by Marvel. (c) 2026 MARVEL",
            "attributionHTML": '<a href="http://marvel.com">Data provided by Marvel. (c) 2026 MARVEL</a>',
            "etag": "f0fbab7d5b4b8b5c1a8d9e2b9b8a7c6d5e4f3a2b",
            "data": {
                "offset": offset,
                "limit": limit,
                "total": total if total is not None else len(results),
                "count": count if count is not None else len(results),
                "results": results,
            },
        }

    return _make


# ---------------------------------------------------------------------------
# Sample items
# ---------------------------------------------------------------------------


@pytest.fixture
def comic_item() -> dict[str, Any]:
    """A comic with a series summary, a variant and four collections."""
    return {
        "id": 21366,
        "title": "Avengers: The Initiative (2007) #14",
        "resourceURI": f"{BASE}/comics/21366",
        "modified": "2014-04-29T14:18:17-0400",
        "series": summary("series/1945", "Avengers: The Initiative (2007 - 2010)"),
        "variants": [summary("comics/24571", "Avengers: The Initiative (2007) #14 (SPOTLIGHT VARIANT)")],
        "collections": [],
        "collectedIssues": [],
        "creators": collection(
            "comics/21366/creators",
            [summary("creators/8635", "Christos Gage"), summary("creators/10021", "Jim Calafiore")],
        ),
        "characters": collection(
            "comics/21366/characters",
            [summary("characters/1010802", "Ant-Man (Eric O'Grady)")],
        ),
        "stories": collection(
            "comics/21366/stories",
            [summary("stories/19947", "Cover #19947")],
        ),
        "events": collection(
            "comics/21366/events",
            [summary("events/269", "Secret Invasion")],
        ),
    }


@pytest.fixture
def character_item() -> dict[str, Any]:
    return {
        "id": 1009610,
        "name": "Spider-Man (Peter Parker)",
        "resourceURI": f"{BASE}/characters/1009610",
        "modified": "2020-07-21T10:30:10-0400",
        "comics": collection(
            "characters/1009610/comics",
            [summary("comics/21366", "Avengers: The Initiative (2007) #14")],
        ),
        "series": collection(
            "characters/1009610/series",
            [summary("series/1000", "Amazing Spider-Man (1963 - 1998)")],
        ),
        "stories": collection("characters/1009610/stories", []),
        "events": collection("characters/1009610/events", []),
    }


@pytest.fixture
def story_item() -> dict[str, Any]:
    return {
        "id": 19947,
        "title": "Cover #19947",
        "resourceURI": f"{BASE}/stories/19947",
        "modified": "1969-12-31T19:00:00-0500",
        "originalIssue": summary("comics/21366", "Avengers: The Initiative (2007) #14"),
        "comics": collection("stories/19947/comics", []),
        "series": collection("stories/19947/series", []),
        "events": collection("stories/19947/events", []),
        "characters": collection("stories/19947/characters", []),
        "creators": collection("stories/19947/creators", []),
    }


# ---------------------------------------------------------------------------
# HTTP and sessions
# ---------------------------------------------------------------------------


class FakeHTTP:
    """Async ``(url) -> envelope`` callable serving queued responses.

    The last queued response is repeated once the queue runs dry. An
    exception instance in the queue is raised instead of returned.
    """

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.responses: list[Any] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def __call__(self, url: str) -> Any:
        self.urls.append(url)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {url}")
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_http() -> FakeHTTP:
    return FakeHTTP()


@pytest.fixture
def config(fake_http: FakeHTTP) -> Config:
    return Config(public_key="public-key", private_key="private-key", http_client=fake_http)


@pytest.fixture
def client(config: Config) -> MarvelQuery:
    return MarvelQuery(config)
