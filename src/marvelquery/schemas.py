"""Pydantic schemas for query parameters and API payloads.

This is the single source of truth for data shapes in the package. The
models fall into three groups:

**Parameter schemas** -- one per resource type, all extending
:class:`BaseParams`. They validate the parameters a caller passes to a
query; unknown keys are rejected. Field names follow the API's own
camelCase names (``noVariants``, ``titleStartsWith``) so that parameters can
be passed straight through to the query string. :data:`PARAMETER_SCHEMAS`
maps each type (and ``"all"``) to its schema.

**Envelope** -- :class:`APIWrapper` and :class:`APIResponseData`, the fixed
wrapper the API puts around every page of results.

**Result schemas** -- a light description of each resource type's linked
fields (summaries and lists), used by :mod:`marvelquery.validation` to
report malformed items. :data:`RESULT_SCHEMAS` maps type to schema.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    field_validator,
)

from marvelquery.endpoint import EndpointType

# --- Shared field types ---

MIN_YEAR = 1939
"""Year of the oldest issue in the catalog."""
MAX_YEAR = datetime.now().year + 5

Year = Annotated[StrictInt, Field(ge=MIN_YEAR, le=MAX_YEAR)]
IDList = Union[StrictInt, list[StrictInt]]
DateString = Annotated[StrictStr, Field(pattern=r"^\d{4}-\d{2}-\d{2}$")]

Format = Literal[
    "comic",
    "magazine",
    "trade paperback",
    "hardcover",
    "digest",
    "graphic novel",
    "digital comic",
    "infinite comic",
]

ORDER_BY_FIELDS: dict[str, tuple[str, ...]] = {
    "comics": ("focDate", "onsaleDate", "title", "issueNumber", "modified"),
    "characters": ("name", "modified"),
    "creators": ("lastName", "firstName", "middleName", "suffix", "modified"),
    "events": ("name", "startDate", "modified"),
    "series": ("title", "modified", "startYear"),
    "stories": ("id", "modified"),
}
"""Sortable fields per type. Each may be prefixed with ``-`` for descending order."""


# --- Parameter schemas ---


class BaseParams(BaseModel):
    """Parameters accepted by every endpoint."""

    model_config = ConfigDict(extra="forbid")

    modifiedSince: Optional[Any] = None
    limit: Optional[Annotated[StrictInt, Field(gt=0, le=100)]] = None
    offset: Optional[Annotated[StrictInt, Field(ge=0)]] = None

    @field_validator("modifiedSince")
    @classmethod
    def _check_modified_since(cls, value: Any) -> Any:
        if value is None or isinstance(value, (date, datetime)):
            return value
        if isinstance(value, str):
            try:
                datetime.fromisoformat(value)
            except ValueError:
                raise ValueError("expected an ISO 8601 date such as 2024-01-31") from None
            return value
        raise ValueError("expected a date, datetime or ISO 8601 string")


class _SortableParams(BaseParams):
    """Adds ``orderBy``, restricted to the fields in :data:`ORDER_BY_FIELDS`."""

    sortable: ClassVar[tuple[str, ...]] = ()

    orderBy: Optional[Union[StrictStr, list[StrictStr]]] = None

    @field_validator("orderBy")
    @classmethod
    def _check_order_by(cls, value: Any) -> Any:
        if value is None:
            return value
        allowed = set(cls.sortable) | {f"-{name}" for name in cls.sortable}
        values = value if isinstance(value, list) else [value]
        invalid = [v for v in values if v not in allowed]
        if invalid:
            raise ValueError(
                f"invalid orderBy value(s) {', '.join(invalid)}; "
                f"expected one of {', '.join(sorted(allowed))}"
            )
        return value


class CharacterParams(_SortableParams):
    sortable: ClassVar[tuple[str, ...]] = ORDER_BY_FIELDS["characters"]

    name: Optional[StrictStr] = None
    nameStartsWith: Optional[StrictStr] = None
    comics: Optional[IDList] = None
    series: Optional[IDList] = None
    events: Optional[IDList] = None
    stories: Optional[IDList] = None


class ComicParams(_SortableParams):
    sortable: ClassVar[tuple[str, ...]] = ORDER_BY_FIELDS["comics"]

    format: Optional[StrictStr] = None
    formatType: Optional[Literal["comic", "collection"]] = None
    noVariants: Optional[StrictBool] = None
    dateDescriptor: Optional[
        Literal["lastWeek", "thisWeek", "nextWeek", "thisMonth"]
    ] = None
    dateRange: Optional[
        Annotated[list[DateString], Field(min_length=2, max_length=2)]
    ] = None
    title: Optional[StrictStr] = None
    titleStartsWith: Optional[StrictStr] = None
    startYear: Optional[Year] = None
    issueNumber: Optional[
        Union[
            Annotated[StrictInt, Field(ge=0)],
            Annotated[StrictFloat, Field(ge=0)],
        ]
    ] = None
    diamondCode: Optional[StrictStr] = None
    digitalId: Optional[StrictInt] = None
    upc: Optional[StrictStr] = None
    isbn: Optional[StrictStr] = None
    ean: Optional[StrictStr] = None
    issn: Optional[StrictStr] = None
    hasDigitalIssue: Optional[StrictBool] = None
    creators: Optional[IDList] = None
    characters: Optional[IDList] = None
    series: Optional[IDList] = None
    events: Optional[IDList] = None
    stories: Optional[IDList] = None
    sharedAppearances: Optional[IDList] = None
    collaborators: Optional[IDList] = None


class CreatorParams(_SortableParams):
    sortable: ClassVar[tuple[str, ...]] = ORDER_BY_FIELDS["creators"]

    firstName: Optional[StrictStr] = None
    middleName: Optional[StrictStr] = None
    lastName: Optional[StrictStr] = None
    suffix: Optional[StrictStr] = None
    nameStartsWith: Optional[StrictStr] = None
    firstNameStartsWith: Optional[StrictStr] = None
    middleNameStartsWith: Optional[StrictStr] = None
    lastNameStartsWith: Optional[StrictStr] = None
    comics: Optional[IDList] = None
    series: Optional[IDList] = None
    events: Optional[IDList] = None
    stories: Optional[IDList] = None


class EventParams(_SortableParams):
    sortable: ClassVar[tuple[str, ...]] = ORDER_BY_FIELDS["events"]

    name: Optional[StrictStr] = None
    nameStartsWith: Optional[StrictStr] = None
    creators: Optional[IDList] = None
    characters: Optional[IDList] = None
    series: Optional[IDList] = None
    comics: Optional[IDList] = None
    stories: Optional[IDList] = None


class SeriesParams(_SortableParams):
    sortable: ClassVar[tuple[str, ...]] = ORDER_BY_FIELDS["series"]

    title: Optional[StrictStr] = None
    titleStartsWith: Optional[StrictStr] = None
    startYear: Optional[Year] = None
    comics: Optional[IDList] = None
    stories: Optional[IDList] = None
    events: Optional[IDList] = None
    creators: Optional[IDList] = None
    characters: Optional[IDList] = None
    seriesType: Optional[Literal["collection", "one shot", "limited", "ongoing"]] = None
    contains: Optional[Union[Format, list[Format]]] = None


class StoryParams(_SortableParams):
    sortable: ClassVar[tuple[str, ...]] = ORDER_BY_FIELDS["stories"]

    comics: Optional[IDList] = None
    series: Optional[IDList] = None
    events: Optional[IDList] = None
    creators: Optional[IDList] = None
    characters: Optional[IDList] = None


PARAMETER_SCHEMAS: dict[str, type[BaseParams]] = {
    EndpointType.CHARACTERS.value: CharacterParams,
    EndpointType.COMICS.value: ComicParams,
    EndpointType.CREATORS.value: CreatorParams,
    EndpointType.EVENTS.value: EventParams,
    EndpointType.SERIES.value: SeriesParams,
    EndpointType.STORIES.value: StoryParams,
    "all": BaseParams,
}


# --- Envelope ---


class APIResponseData(BaseModel):
    """The ``data`` member of every response: pagination counters plus items."""

    offset: int
    limit: int
    total: int
    count: int
    results: list[dict[str, Any]]


class APIWrapper(BaseModel):
    """The envelope around every API response."""

    model_config = ConfigDict(extra="allow")

    code: int
    status: str
    copyright: str
    attributionText: str
    attributionHTML: str
    etag: str
    data: APIResponseData

    def metadata(self) -> dict[str, Any]:
        """Everything in the envelope except ``data``."""
        return self.model_dump(exclude={"data"})


# --- Result schemas ---


class _Shape(BaseModel):
    model_config = ConfigDict(extra="allow")


class Summary(_Shape):
    resourceURI: str
    name: str


class ResourceList(_Shape):
    available: int
    returned: int
    collectionURI: str
    items: list[Summary]


class MarvelResult(_Shape):
    id: int
    resourceURI: str
    modified: Optional[str] = None


class MarvelComic(MarvelResult):
    title: str
    series: Summary
    variants: list[Summary]
    collections: list[Summary]
    collectedIssues: list[Summary]
    creators: ResourceList
    characters: ResourceList
    stories: ResourceList
    events: ResourceList


class MarvelCharacter(MarvelResult):
    name: str
    comics: ResourceList
    stories: ResourceList
    events: ResourceList
    series: ResourceList


class MarvelCreator(MarvelResult):
    fullName: str
    comics: ResourceList
    stories: ResourceList
    events: ResourceList
    series: ResourceList


class MarvelEvent(MarvelResult):
    title: str
    comics: ResourceList
    stories: ResourceList
    series: ResourceList
    characters: ResourceList
    creators: ResourceList
    next: Optional[Summary] = None
    previous: Optional[Summary] = None


class MarvelSeries(MarvelResult):
    title: str
    comics: ResourceList
    stories: ResourceList
    events: ResourceList
    characters: ResourceList
    creators: ResourceList
    next: Optional[Summary] = None
    previous: Optional[Summary] = None


class MarvelStory(MarvelResult):
    title: str
    comics: ResourceList
    series: ResourceList
    events: ResourceList
    characters: ResourceList
    creators: ResourceList
    originalIssue: Optional[Summary] = None


RESULT_SCHEMAS: dict[str, type[MarvelResult]] = {
    EndpointType.COMICS.value: MarvelComic,
    EndpointType.CHARACTERS.value: MarvelCharacter,
    EndpointType.CREATORS.value: MarvelCreator,
    EndpointType.EVENTS.value: MarvelEvent,
    EndpointType.SERIES.value: MarvelSeries,
    EndpointType.STORIES.value: MarvelStory,
}
