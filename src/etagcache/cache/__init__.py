"""Disk-backed, expiry- and ETag-aware content caching.

This package provides :class:`CacheManager`, which stores raw resource bytes
next to a small binary expiry record and decides, per read, whether the
bytes are fresh, need revalidation against the provider, or are absent.

The pieces are split by concern:

* :mod:`etagcache.cache.paths` -- resource key to file path mapping.
* :mod:`etagcache.cache.codec` -- binary expiry record encoding.
* :mod:`etagcache.cache.policy` -- the freshness decision table.
* :mod:`etagcache.cache.manager` -- I/O, ``get_or_write``, and maintenance.
"""

from etagcache.cache.codec import decode_expiry, encode_expiry, is_expired
from etagcache.cache.manager import CacheManager
from etagcache.cache.paths import EXPIRY_FILE_EXT, CachePaths, validate_key
from etagcache.cache.policy import classify

__all__ = [
    "EXPIRY_FILE_EXT",
    "CacheManager",
    "CachePaths",
    "classify",
    "decode_expiry",
    "encode_expiry",
    "is_expired",
    "validate_key",
]
