"""Exception hierarchy for etagcache.

All exceptions inherit from :class:`EtagCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`etagcache.exit_codes`.
The CLI entry point catches ``EtagCacheError`` and exits with the
appropriate code.

"Not found" conditions on the cache itself are never raised: a missing
content file is reported as :attr:`~etagcache.models.CacheStatus.NONE` and a
missing metadata file as a never-expiring entry.  Everything else surfaces
as one of the classes below.

Subclass hierarchy::

    EtagCacheError (exit 1)
    +-- InvalidUsageError   (exit 2)
    |   +-- InvalidKeyError (exit 2)
    +-- ConfigError         (exit 1)
    +-- CacheError          (exit 8)
    |   +-- NoContentError
    |   +-- CacheReadError
    |   +-- CacheWriteError
    |   +-- CacheRemoveError
    |   +-- ConversionError
    +-- AuthError           (exit 3)
    +-- NotFoundError       (exit 4)
    +-- ServerError         (exit 5)
    +-- ConnectionError_    (exit 6)
"""

from etagcache.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CACHE_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class EtagCacheError(Exception):
    """Base exception for all etagcache errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`etagcache.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(EtagCacheError):
    """Raised for invalid CLI arguments or malformed patterns."""

    exit_code = EXIT_INVALID_USAGE


class InvalidKeyError(InvalidUsageError):
    """Raised when a resource key cannot be used as a cache file name."""


class ConfigError(EtagCacheError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE


class CacheError(EtagCacheError):
    """Base class for failures of the on-disk cache."""

    exit_code = EXIT_CACHE_ERROR


class NoContentError(CacheError):
    """Raised when the provider reports "not modified" but nothing is cached."""

    def __init__(self, message: str = "No content available", exit_code: int | None = None):
        super().__init__(message, exit_code)


class CacheReadError(CacheError):
    """Raised when a content or metadata file exists but cannot be read."""


class CacheWriteError(CacheError):
    """Raised when a content or metadata file cannot be saved."""


class CacheRemoveError(CacheError):
    """Raised when a content file cannot be removed during maintenance."""


class ConversionError(CacheError):
    """Raised when stored metadata bytes cannot be decoded."""


class AuthError(EtagCacheError):
    """Raised when the provider answers HTTP 401 or 403."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(EtagCacheError):
    """Raised when the provider answers HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(EtagCacheError):
    """Raised when the provider answers with an unusable HTTP status."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(EtagCacheError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR
