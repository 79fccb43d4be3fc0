"""Endpoint model -- canonical ``(type, id?, subtype?)`` addresses.

An endpoint names something the API can return:

* ``("characters",)`` -- the characters collection.
* ``("characters", 1009610)`` -- one specific character.
* ``("characters", 1009610, "comics")`` -- the comics related to that
  character.

:class:`Endpoint` is an immutable value object with structural equality, so
two endpoints built from different sources (a user request, a
``resourceURI`` in a payload) compare and hash equal when they address the
same thing. The module-level helpers :func:`validate`, :func:`type_of`,
:func:`extend`, :func:`from_uri` and :func:`to_uri` are the only ways the
rest of the package creates or inspects endpoints.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence, Union

from marvelquery.exceptions import InvalidEndpointError, InvalidURIError

BASE_URL = "https://gateway.marvel.com/v1/public"
"""Fixed base of every API request and every URI found in payloads."""

_PUBLIC_PREFIX = re.compile(r"^.*?/public/")


class EndpointType(str, enum.Enum):
    """Resource categories exposed by the API."""

    COMICS = "comics"
    CHARACTERS = "characters"
    CREATORS = "creators"
    EVENTS = "events"
    SERIES = "series"
    STORIES = "stories"

    def __str__(self) -> str:
        return self.value


VALID_TYPES: frozenset[str] = frozenset(t.value for t in EndpointType)

KEY_TYPE_OVERRIDES: dict[str, EndpointType] = {
    "originalIssue": EndpointType.COMICS,
}
"""Payload keys whose name is not a type but still imply one."""


@dataclass(frozen=True)
class Endpoint:
    """An immutable, validated ``(type, id?, subtype?)`` triple.

    Instances behave like the tuple they represent: ``len()``, iteration and
    indexing only see the elements that are present, so
    ``Endpoint(EndpointType.SERIES, 1000)`` has length 2 and unpacks to
    ``("series", 1000)``.

    Invariants are enforced on construction; violating any of them raises
    :class:`~marvelquery.exceptions.InvalidEndpointError`.
    """

    type: EndpointType
    id: Optional[int] = None
    subtype: Optional[EndpointType] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", _coerce_type(self.type, "type"))
        if self.subtype is not None:
            object.__setattr__(self, "subtype", _coerce_type(self.subtype, "subtype"))

        if self.id is not None and (
            isinstance(self.id, bool) or not isinstance(self.id, int)
        ):
            raise InvalidEndpointError(f"Invalid endpoint id: {self.id!r}")
        if self.id is not None and self.id < 0:
            raise InvalidEndpointError(f"Invalid endpoint id: {self.id!r}")
        if self.subtype is not None and self.id is None:
            raise InvalidEndpointError(
                f"Endpoint {self.type.value}/{self.subtype.value} is missing an id"
            )
        if self.subtype is not None and self.subtype == self.type:
            raise InvalidEndpointError(
                f"Invalid endpoint: {self.type.value} and {self.subtype.value} "
                "cannot be the same type"
            )

    @property
    def parts(self) -> tuple[Any, ...]:
        """The present elements as plain values, e.g. ``("series", 1000)``."""
        values: list[Any] = [self.type.value]
        if self.id is not None:
            values.append(self.id)
        if self.subtype is not None:
            values.append(self.subtype.value)
        return tuple(values)

    @property
    def path(self) -> str:
        """URL path relative to :data:`BASE_URL`, e.g. ``"series/1000/comics"``."""
        return "/".join(str(p) for p in self.parts)

    @property
    def is_resource(self) -> bool:
        """True for 2-element endpoints that address exactly one item."""
        return self.id is not None and self.subtype is None

    def __len__(self) -> int:
        return len(self.parts)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.parts)

    def __getitem__(self, index: int) -> Any:
        return self.parts[index]

    def __str__(self) -> str:
        return self.path


EndpointLike = Union[Endpoint, str, EndpointType, Sequence[Any]]


def _coerce_type(value: Any, position: str) -> EndpointType:
    if isinstance(value, EndpointType):
        return value
    if isinstance(value, str) and value in VALID_TYPES:
        return EndpointType(value)
    raise InvalidEndpointError(f"Unknown endpoint {position}: {value!r}")


def validate(candidate: EndpointLike) -> Endpoint:
    """Validate *candidate* and return it as an :class:`Endpoint`.

    Accepts an existing :class:`Endpoint`, a bare type name (a 1-element
    endpoint) or a list/tuple of one to three elements.

    Raises:
        InvalidEndpointError: If the candidate is not a sequence of 1-3
            elements, the first or third element is not a known type, the
            second element is not an integer, or the first and third
            elements are the same type.
    """
    if isinstance(candidate, Endpoint):
        return candidate
    if isinstance(candidate, str):
        return Endpoint(_coerce_type(candidate, "type"))
    if not isinstance(candidate, (list, tuple)):
        raise InvalidEndpointError(f"Endpoint must be a list or tuple, got {candidate!r}")
    if not 1 <= len(candidate) <= 3:
        raise InvalidEndpointError(
            f"Endpoint must have 1 to 3 elements, got {len(candidate)}"
        )

    elements = list(candidate) + [None] * (3 - len(candidate))
    type_, id_, subtype = elements
    if len(candidate) >= 2 and id_ is None:
        raise InvalidEndpointError(f"Invalid endpoint id: {id_!r}")
    return Endpoint(type_, id_, subtype)


def type_of(endpoint: Endpoint) -> EndpointType:
    """Return the kind of item *endpoint* returns: its subtype, else its type."""
    return endpoint.subtype if endpoint.subtype is not None else endpoint.type


def extend(endpoint: Endpoint, subtype: Union[str, EndpointType]) -> Endpoint:
    """Relate a single-item endpoint to one of its sub-collections.

    ``extend(("characters", 1009610), "comics")`` returns
    ``("characters", 1009610, "comics")``.

    Raises:
        InvalidEndpointError: If *endpoint* is not a 2-element resource
            endpoint or *subtype* equals its type.
    """
    endpoint = validate(endpoint)
    if not endpoint.is_resource:
        raise InvalidEndpointError(
            f"Cannot extend endpoint {endpoint.path}: only (type, id) endpoints "
            "can be related to a sub-collection"
        )
    return Endpoint(endpoint.type, endpoint.id, subtype)


def from_uri(uri: str) -> Endpoint:
    """Parse a ``resourceURI``/``collectionURI`` into an :class:`Endpoint`.

    Everything up to and including ``/public/`` is stripped, as are any query
    string, fragment and trailing slash. The remaining path must be
    ``{type}``, ``{type}/{id}`` or ``{type}/{id}/{subtype}``.

    Raises:
        InvalidURIError: If the URI has no ``/public/`` segment, the id is
            not numeric, or the resulting endpoint is invalid.
    """
    if not isinstance(uri, str) or "/public/" not in uri:
        raise InvalidURIError(f"Invalid URI: {uri!r}", uri=str(uri))

    remainder = _PUBLIC_PREFIX.sub("", uri, count=1)
    remainder = remainder.split("?", 1)[0].split("#", 1)[0].strip("/")
    segments = remainder.split("/") if remainder else []

    if not 1 <= len(segments) <= 3:
        raise InvalidURIError(f"Invalid URI: {uri}", uri=uri)

    parts: list[Any] = list(segments)
    if len(parts) >= 2:
        if not (parts[1].isascii() and parts[1].isdecimal()):
            raise InvalidURIError(f"Invalid ID in URI: {uri}", uri=uri)
        parts[1] = int(parts[1])

    try:
        return validate(parts)
    except InvalidEndpointError as exc:
        raise InvalidURIError(f"Invalid URI {uri}: {exc}", uri=uri) from exc


def to_uri(endpoint: EndpointLike, base_url: str = BASE_URL) -> str:
    """Render *endpoint* as an absolute URI under *base_url*."""
    return f"{base_url.rstrip('/')}/{validate(endpoint).path}"


def sort_key(endpoint: Endpoint) -> tuple[Any, ...]:
    """Ordering used for summaries: type, then id, then subtype; absent elements first."""
    return (
        endpoint.type.value,
        endpoint.id is not None,
        endpoint.id if endpoint.id is not None else 0,
        endpoint.subtype is not None,
        endpoint.subtype.value if endpoint.subtype is not None else "",
    )
