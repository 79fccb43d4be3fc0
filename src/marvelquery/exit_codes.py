"""Numeric process exit codes for the ``marvelquery`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~marvelquery.exceptions.MarvelQueryError` subclass.
Shell wrappers can inspect the exit code to determine the failure class
without parsing stderr.

Example::

    $ marvelquery fetch characters --param name=Thor
    $ echo $?
    4   # EXIT_REQUEST_FAILURE -- the API call failed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The endpoint or parameters given on the command line were invalid."""

EXIT_CONFIG_ERROR = 3
"""API keys or configuration could not be loaded."""

EXIT_REQUEST_FAILURE = 4
"""The HTTP request failed or the API returned an unexpected envelope."""

EXIT_EMPTY_RESULT = 5
"""A single result was requested but the API returned none."""
