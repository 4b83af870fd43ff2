"""Exception hierarchy for httpecho.

All exceptions inherit from :class:`EchoError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`httpecho.exit_codes`.
Callers distinguish the failure classes by type; the command line tool
maps them to process exit codes.

Subclass hierarchy::

    EchoError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- BadCacheFileError       (exit 3)
    +-- NoCacheEntryError       (exit 4)
    +-- ConfigError             (exit 1)
        +-- CacheNotPopulatedError

Errors raised by the wrapped network transport are never translated into
this hierarchy; they reach the caller untouched.
"""

from httpecho.exit_codes import (
    EXIT_BAD_CACHE_FILE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NO_CACHE_ENTRY,
)


class EchoError(Exception):
    """Base exception for all httpecho errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(EchoError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class BadCacheFileError(EchoError):
    """Raised when a cache file cannot be parsed.

    Covers a wrong file header, malformed request/response lines, missing
    header colons, unparsable ``Content-Length`` values and streams that
    end anywhere other than between two records.  A store that hit this
    error keeps failing with it until it is reset.
    """

    exit_code = EXIT_BAD_CACHE_FILE


class NoCacheEntryError(EchoError):
    """Raised on a cache miss while network calls are denied."""

    exit_code = EXIT_NO_CACHE_ENTRY


class ConfigError(EchoError):
    """Raised for configuration problems (missing directories, invalid settings files)."""

    exit_code = EXIT_GENERIC_FAILURE


class CacheNotPopulatedError(ConfigError):
    """Raised when a cache store is queried before it has been populated."""
