"""Exception hierarchy for marvelquery.

All exceptions inherit from :class:`MarvelQueryError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`marvelquery.exit_codes`. The CLI entry point in
:func:`marvelquery.app.main` catches ``MarvelQueryError`` and exits with the
appropriate code; library callers simply catch the subclass they care about.

Subclass hierarchy::

    MarvelQueryError              (exit 1)
    +-- ConfigError               (exit 3)
    +-- InvalidEndpointError      (exit 2)
    |   +-- InvalidURIError       (exit 2)
    +-- ParameterValidationError  (exit 2)
    +-- EndpointMismatchError     (exit 1)
    +-- EmptyResultError          (exit 5)
    +-- RequestError              (exit 4)
        +-- ResponseValidationError (exit 4)

Only :class:`EndpointMismatchError` is recovered from locally: auto-discovery
confines it to the offending node. Everything else aborts the operation in
progress.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from marvelquery.exit_codes import (
    EXIT_CONFIG_ERROR,
    EXIT_EMPTY_RESULT,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_REQUEST_FAILURE,
)


class MarvelQueryError(Exception):
    """Base exception for all marvelquery errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(MarvelQueryError):
    """Raised for configuration problems (missing keys, unreadable config file)."""

    exit_code = EXIT_CONFIG_ERROR


class InvalidEndpointError(MarvelQueryError):
    """Raised when an endpoint is not a valid ``(type, id?, subtype?)`` triple."""

    exit_code = EXIT_INVALID_USAGE


class InvalidURIError(InvalidEndpointError):
    """Raised when a resource or collection URI cannot be turned into an endpoint."""

    def __init__(self, message: str, uri: str = ""):
        super().__init__(message)
        self.uri = uri


class ParameterValidationError(MarvelQueryError):
    """Raised when query parameters fail their type's schema.

    Attributes:
        fields: Names of the offending parameters, in the order the
            validator reported them.
    """

    exit_code = EXIT_INVALID_USAGE

    def __init__(self, message: str, fields: Optional[Iterable[str]] = None):
        self.fields: list[str] = list(fields or [])
        if self.fields:
            message = f"{message}: {', '.join(self.fields)}"
        super().__init__(message)


class EndpointMismatchError(MarvelQueryError):
    """Raised when a URI's type disagrees with the type implied by its key."""

    def __init__(self, message: str, expected: Any = None, actual: Any = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class EmptyResultError(MarvelQueryError):
    """Raised by ``fetch_single()`` when the API returned no items."""

    exit_code = EXIT_EMPTY_RESULT


class RequestError(MarvelQueryError):
    """Raised when the HTTP call fails. The transport error is chained as ``__cause__``."""

    exit_code = EXIT_REQUEST_FAILURE


class ResponseValidationError(RequestError):
    """Raised when the response body does not match the API envelope."""
