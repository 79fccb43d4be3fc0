"""Configuration models and precedence resolution.

A :class:`Config` is built once per process and passed by reference into
:class:`~marvelquery.client.MarvelQuery`, which shares it with every
:class:`~marvelquery.params.ParameterManager`,
:class:`~marvelquery.query.Query` and
:class:`~marvelquery.discovery.AutoDiscovery` it creates. Nothing in the
package mutates it after construction.

:func:`load_config` merges, lowest precedence first:

1. The JSON config file (``$XDG_CONFIG_HOME/marvelquery/config.json`` by
   default, or an explicit path).
2. Environment variables (``MARVEL_PUBLIC_KEY``, ``MARVEL_PRIVATE_KEY``,
   ``MARVEL_BASE_URL``).
3. Keyword overrides passed by the caller.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from marvelquery.endpoint import BASE_URL
from marvelquery.exceptions import ConfigError

_APP_NAME = "marvelquery"
_CONFIG_FILENAME = "config.json"

ENV_PUBLIC_KEY = "MARVEL_PUBLIC_KEY"
ENV_PRIVATE_KEY = "MARVEL_PRIVATE_KEY"
ENV_BASE_URL = "MARVEL_BASE_URL"


class ValidationConfig(BaseModel):
    """Toggles for the three validation passes. All are enabled by default."""

    disable_all: bool = False
    parameters: bool = True
    api_response: bool = True
    auto_query: bool = True

    def is_enabled(self, name: str) -> bool:
        """Return whether the validator called *name* should run."""
        if self.disable_all:
            return False
        return bool(getattr(self, name))


class LogOptions(BaseModel):
    """Logging preferences applied by :func:`~marvelquery.logger.configure_logging`."""

    verbose: bool = False
    max_lines: Optional[int] = Field(
        default=None, description="Truncate log messages to this many lines"
    )
    max_line_length: Optional[int] = Field(
        default=None, description="Truncate each log line to this many characters"
    )
    log_file: Optional[str] = Field(
        default=None, description="Also write logs to this file, rotated daily"
    )


class Config(BaseModel):
    """Process-wide settings shared by every query.

    Example::

        Config(
            public_key="abc",
            private_key="xyz",
            global_params={"all": {"limit": 10}, "comics": {"noVariants": True}},
            on_result={"comics": save_comics},
        )

    ``on_request`` receives the signed URL, the :class:`~marvelquery.endpoint.Endpoint`
    and a copy of the parameters. A hook that only needs the URL can ignore
    the rest::

        Config(public_key="abc", on_request=lambda url, *_: print(url))
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    public_key: str = ""
    private_key: Optional[str] = None
    base_url: str = BASE_URL
    auto_query: bool = Field(
        default=True, description="Attach navigation helpers to every fetched page"
    )
    omit_undefined: bool = Field(
        default=True, description="Drop parameters whose value is None"
    )
    global_params: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Parameters applied to every query ('all') or to one type",
    )
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    log_options: LogOptions = Field(default_factory=LogOptions)
    timeout: float = Field(default=30.0, description="Timeout of the default HTTP client")
    on_request: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Called as on_request(url, endpoint, params) before each request",
    )
    on_result: dict[str, Callable[..., Any]] = Field(
        default_factory=dict,
        description="Called with each page of items, keyed by type or 'any'",
    )
    http_client: Optional[Callable[..., Any]] = Field(
        default=None, description="Async callable (url) -> response envelope"
    )


# --- Paths ---


def get_config_dir() -> Path:
    """Return ``$XDG_CONFIG_HOME/marvelquery`` (default ``~/.config/marvelquery``)."""
    env_value = os.environ.get("XDG_CONFIG_HOME", "")
    base = Path(env_value) if env_value else Path.home() / ".config"
    return base / _APP_NAME


def get_config_path() -> Path:
    """Return the default config file path."""
    return get_config_dir() / _CONFIG_FILENAME


# --- Loading ---


def load_config_file(path: Optional[Path] = None) -> dict[str, Any]:
    """Read the JSON config file at *path* (default :func:`get_config_path`).

    A missing default file yields an empty dict; a missing explicit path is
    an error.

    Raises:
        ConfigError: If the file is unreadable, is not valid JSON, or does
            not contain a JSON object.
    """
    explicit = path is not None
    path = Path(path) if path is not None else get_config_path()

    if not path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def _env_values() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for env_var, key in (
        (ENV_PUBLIC_KEY, "public_key"),
        (ENV_PRIVATE_KEY, "private_key"),
        (ENV_BASE_URL, "base_url"),
    ):
        value = os.environ.get(env_var)
        if value:
            values[key] = value
    return values


def load_config(path: Optional[Path] = None, **overrides: Any) -> Config:
    """Build a :class:`Config` from file, environment and *overrides*.

    Args:
        path: Explicit config file. When omitted the XDG default is used if
            it exists.
        **overrides: Field values with the highest precedence.

    Raises:
        ConfigError: If the file cannot be read or the merged values do not
            form a valid :class:`Config`.
    """
    values = load_config_file(path)
    values.update(_env_values())
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return Config.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
