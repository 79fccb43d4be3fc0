"""Parameter manager -- clean, validate and merge query parameters.

Parameters reach a query from four places. They are merged in order of
increasing precedence, last writer wins:

1. Built-in defaults: :data:`DEFAULT_PARAMS` (``offset=0, limit=50``).
2. ``config.global_params["all"]``.
3. ``config.global_params[<type>]`` for the endpoint's resolved type.
4. The parameters passed to the individual query.

Only the call-specific parameters are validated per query; the global
parameters are validated once, eagerly, when the manager is created so that
a misconfiguration surfaces at start-up rather than on the first request.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from marvelquery.config import Config
from marvelquery.endpoint import (
    VALID_TYPES,
    Endpoint,
    EndpointType,
    type_of,
)
from marvelquery.exceptions import ParameterValidationError
from marvelquery.logger import QueryLogger, get_logger
from marvelquery.schemas import PARAMETER_SCHEMAS

DEFAULT_PARAMS: dict[str, Any] = {"offset": 0, "limit": 50}

_ALL = "all"


def _type_name(target: Union[Endpoint, EndpointType, str]) -> str:
    if isinstance(target, Endpoint):
        return type_of(target).value
    if isinstance(target, EndpointType):
        return target.value
    return target


class ParameterManager:
    """Resolves the final parameter set for each query.

    Args:
        config: Shared configuration; supplies ``global_params``,
            ``omit_undefined`` and the ``parameters`` validation toggle.
        logger: Logger to report through. Defaults to the package logger.

    Raises:
        ParameterValidationError: If any entry of ``config.global_params``
            fails its type's schema.
    """

    def __init__(self, config: Config, logger: Optional[QueryLogger] = None) -> None:
        self.config = config
        self.logger = logger or get_logger(__name__)
        self._validate_global_params()

    @property
    def validation_enabled(self) -> bool:
        return self.config.validation.is_enabled("parameters")

    def _validate_global_params(self) -> None:
        if not self.config.global_params:
            return

        self.logger.verbose("Validating global parameters")
        for key, params in self.config.global_params.items():
            if key != _ALL and key not in VALID_TYPES:
                self.logger.warn(f"Invalid endpoint type in global parameters: {key}")
                continue
            self.validate(key, params)

    def clean(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """Drop ``None`` values when ``omit_undefined`` is enabled."""
        if not self.config.omit_undefined:
            return dict(params)

        cleaned = {k: v for k, v in params.items() if v is not None}
        removed = len(params) - len(cleaned)
        if removed:
            self.logger.verbose(f"Removed {removed} undefined parameters from query")
        return cleaned

    def validate(self, target: Union[Endpoint, EndpointType, str], params: Mapping[str, Any]) -> None:
        """Check *params* against the schema for *target*'s resolved type.

        *target* may be an :class:`Endpoint`, an :class:`EndpointType`, a type
        name, or ``"all"`` for the parameters common to every type.

        Raises:
            ParameterValidationError: Listing every offending field.
        """
        if not self.validation_enabled:
            return

        type_name = _type_name(target)
        schema = PARAMETER_SCHEMAS.get(type_name)
        if schema is None:
            raise ParameterValidationError(
                f"Could not find validation schema for type '{type_name}'"
            )

        self.logger.verbose(f"Validating parameters for '{type_name}'")
        try:
            schema.model_validate(dict(params))
        except ValidationError as exc:
            fields: list[str] = []
            for error in exc.errors():
                name = str(error["loc"][0]) if error["loc"] else "<root>"
                if name not in fields:
                    fields.append(name)
            self.logger.error(f"Parameter validation error for type '{type_name}': {exc}")
            raise ParameterValidationError(
                f"Invalid parameters for '{type_name}'", fields=fields
            ) from exc

    def merge(self, target: Union[Endpoint, EndpointType, str], params: Mapping[str, Any]) -> dict[str, Any]:
        """Layer defaults, global parameters and *params*; no validation."""
        type_name = _type_name(target)
        global_params = self.config.global_params
        return {
            **DEFAULT_PARAMS,
            **global_params.get(_ALL, {}),
            **global_params.get(type_name, {}),
            **params,
        }

    def resolve(self, endpoint: Endpoint, params: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        """Clean, validate and merge *params* for *endpoint*.

        Returns:
            A new dict; the caller's mapping is never modified.

        Raises:
            ParameterValidationError: If the cleaned parameters fail the
                schema of ``type_of(endpoint)``.
        """
        cleaned = self.clean(params or {})
        self.validate(endpoint, cleaned)
        return self.merge(endpoint, cleaned)
