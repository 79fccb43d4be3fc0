"""Typer command-line interface for marvelquery.

A thin shell over :class:`~marvelquery.client.MarvelQuery` for trying
queries from a terminal::

    marvelquery fetch characters --param nameStartsWith=Spider --limit 5
    marvelquery fetch characters 1009610 comics --param noVariants=true --all
    marvelquery fetch comics 21366 --single --json

Keys come from the config file or the ``MARVEL_PUBLIC_KEY`` /
``MARVEL_PRIVATE_KEY`` environment variables (see :mod:`marvelquery.config`).
Results go to stdout as a table or JSON; logging goes to stderr.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from marvelquery import __version__
from marvelquery.client import MarvelQuery
from marvelquery.config import load_config
from marvelquery.discovery import find_name
from marvelquery.exceptions import MarvelQueryError
from marvelquery.exit_codes import EXIT_GENERIC_FAILURE, EXIT_SUCCESS
from marvelquery.logger import configure_logging


app = typer.Typer(
    name="marvelquery",
    help="Query the Marvel Comics API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"marvelquery {__version__}")
        raise typer.Exit(code=EXIT_SUCCESS)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to a JSON config file."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging."
    ),
) -> None:
    """Store shared options in the Typer context."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _parse_value(raw: str) -> Any:  # noqa: ANN401
    """Parse *raw* as JSON if possible (numbers, booleans, lists), else keep the string."""
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return raw


def parse_params(pairs: list[str]) -> dict[str, Any]:
    """Turn ``["limit=5", "noVariants=true"]`` into ``{"limit": 5, "noVariants": True}``.

    Raises:
        typer.BadParameter: If a pair has no ``=``.
    """
    params: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{pair}'", param_hint="--param")
        params[key.strip()] = _parse_value(value.strip())
    return params


def _print_results(results: list[dict[str, Any]], title: str, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(results, indent=2, ensure_ascii=False, default=str))
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    for item in results:
        table.add_row(str(item.get("id", "-")), find_name(item) or "-")
    Console(file=sys.stdout).print(table)


async def _run_fetch(
    marvel: MarvelQuery,
    endpoint: tuple[Any, ...],
    params: dict[str, Any],
    single: bool,
    all_pages: bool,
) -> tuple[list[dict[str, Any]], Optional[int]]:
    async with marvel:
        query = marvel.query(endpoint, params)
        if single:
            return [await query.fetch_single()], 1

        await query.fetch()
        while all_pages and not query.is_complete:
            await query.fetch()
        results = query.result_history if all_pages else query.results
        return results, query.total


@app.command("fetch")
def fetch_command(
    ctx: typer.Context,
    resource_type: str = typer.Argument(..., help="Endpoint type, e.g. comics."),
    resource_id: Optional[int] = typer.Argument(None, help="Item id."),
    subtype: Optional[str] = typer.Argument(None, help="Related type, e.g. characters."),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-p", help="Query parameter as KEY=VALUE (repeatable)."
    ),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Page size (1-100)."),
    offset: Optional[int] = typer.Option(None, "--offset", help="Items to skip."),
    single: bool = typer.Option(False, "--single", help="Fetch exactly one item."),
    all_pages: bool = typer.Option(False, "--all", help="Fetch pages until complete."),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON."),
) -> None:
    """Fetch a page of results for an endpoint.

    Example::

        marvelquery fetch characters 1009610 comics -p noVariants=true --limit 10
    """
    obj = ctx.obj or {}
    params = parse_params(param or [])
    if limit is not None:
        params["limit"] = limit
    if offset is not None:
        params["offset"] = offset

    endpoint = tuple(p for p in (resource_type, resource_id, subtype) if p is not None)

    try:
        config = load_config(obj.get("config_path"))
        log_options = config.log_options
        if obj.get("verbose"):
            log_options = log_options.model_copy(update={"verbose": True})
        configure_logging(log_options)

        marvel = MarvelQuery(config)
        results, total = asyncio.run(_run_fetch(marvel, endpoint, params, single, all_pages))
    except MarvelQueryError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=exc.exit_code) from None

    if not results:
        typer.echo("No results.", err=True)
        return

    path = "/".join(str(p) for p in endpoint)
    title = f"/{path} ({len(results)} of {total if total is not None else '?'})"
    _print_results(results, title, json_output)


def main() -> None:
    """Console-script entry point.

    :class:`~marvelquery.exceptions.MarvelQueryError` instances that escape a
    command exit with the error's ``exit_code``.
    """
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except MarvelQueryError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        sys.exit(exc.exit_code)
    except Exception as exc:
        sys.stderr.write(f"Unexpected error: {exc!r}\n")
        sys.exit(EXIT_GENERIC_FAILURE)
