"""Logging for marvelquery.

Every module logs through the standard :mod:`logging` tree under the
``marvelquery`` logger. :func:`configure_logging` is optional; it installs a
:class:`rich.logging.RichHandler` on stderr, an optional daily-rotated log
file, and a filter that truncates long messages. Applications that manage
logging themselves can skip it and attach their own handlers.

:class:`QueryLogger` adds the leveled calls used throughout the package
(``verbose``, ``info``, ``warn``, ``error``) and :meth:`QueryLogger.identify`,
which returns a child logger whose messages carry a query id so that lines
from concurrent queries can be told apart. Logging is purely observational.
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Any, MutableMapping, Optional

from rich.console import Console
from rich.logging import RichHandler

from marvelquery.config import LogOptions

LOGGER_NAME = "marvelquery"

VERBOSE = 15
"""Between DEBUG and INFO: discovery summaries, URLs, parameter handling."""

logging.addLevelName(VERBOSE, "VERBOSE")


class QueryLogger(logging.LoggerAdapter):
    """Logger adapter with a ``verbose`` level and per-query child contexts."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        query_id = (self.extra or {}).get("query_id")
        if query_id:
            msg = f"[{query_id}] {msg}"
        return msg, kwargs

    def verbose(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(VERBOSE, msg, *args, **kwargs)

    def warn(self, msg: Any, *args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        self.warning(msg, *args, **kwargs)

    def identify(self, query_id: str) -> QueryLogger:
        """Return a child logger that prefixes every message with *query_id*."""
        return QueryLogger(self.logger, {**(self.extra or {}), "query_id": query_id})

    @property
    def query_id(self) -> Optional[str]:
        return (self.extra or {}).get("query_id")


def get_logger(name: str = LOGGER_NAME) -> QueryLogger:
    """Return a :class:`QueryLogger` for *name* (a child of ``marvelquery``)."""
    return QueryLogger(logging.getLogger(name), {})


class TruncateFilter(logging.Filter):
    """Shorten long records to *max_lines* lines of *max_line_length* characters."""

    def __init__(
        self, max_lines: Optional[int] = None, max_line_length: Optional[int] = None
    ) -> None:
        super().__init__()
        self.max_lines = max_lines
        self.max_line_length = max_line_length

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.max_lines and not self.max_line_length:
            return True

        lines = record.getMessage().splitlines() or [""]
        if self.max_line_length:
            lines = [
                line if len(line) <= self.max_line_length
                else line[: self.max_line_length] + "..."
                for line in lines
            ]
        if self.max_lines and len(lines) > self.max_lines:
            hidden = len(lines) - self.max_lines
            lines = lines[: self.max_lines] + [f"... ({hidden} more lines)"]

        record.msg = "\n".join(lines)
        record.args = None
        return True


def configure_logging(
    options: Optional[LogOptions] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Install console (and optional file) handlers on the ``marvelquery`` logger.

    Safe to call more than once: handlers installed by a previous call are
    replaced.

    Args:
        options: Verbosity, truncation and log-file settings.
        console: Rich console to render to. Defaults to a stderr console.

    Returns:
        The configured package logger.
    """
    options = options or LogOptions()
    logger = logging.getLogger(LOGGER_NAME)

    for handler in list(logger.handlers):
        if getattr(handler, "_marvelquery", False):
            logger.removeHandler(handler)
            handler.close()

    truncate = TruncateFilter(options.max_lines, options.max_line_length)

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.addFilter(truncate)
    console_handler._marvelquery = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)

    if options.log_file:
        path = Path(options.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.TimedRotatingFileHandler(
            path, when="midnight", backupCount=14, encoding="utf-8"
        )
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] - %(message)s", "%Y-%m-%d %H:%M:%S"
            )
        )
        file_handler._marvelquery = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.setLevel(VERBOSE if options.verbose else logging.INFO)
    logger.propagate = False
    return logger
