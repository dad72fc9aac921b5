"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~etagcache.exceptions.EtagCacheError` subclass.
Shell wrappers can inspect the exit code to tell a cache failure from a
network failure without parsing stderr.

Example::

    $ etagcache fetch https://api.example.com/albums/1 --key album-1
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- the provider could not be reached
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments (bad key, bad pattern)."""

EXIT_AUTH_FAILURE = 3
"""The provider rejected the request credentials (HTTP 401/403)."""

EXIT_NOT_FOUND = 4
"""The provider does not know the requested resource (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The provider returned an HTTP 5xx (or otherwise unusable) response."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CACHE_ERROR = 8
"""The on-disk cache could not be read, written, or cleaned up."""
