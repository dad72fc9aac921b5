"""Binary encoding of :class:`~etagcache.models.CacheExpiry` records.

Layout of a ``<key>.expiry`` file::

    bytes [0, 8)   expiry instant, unsigned 64-bit big-endian seconds since epoch
    bytes [8, ..)  UTF-8 revalidation token, present only when non-empty

A never-expiring record has no encoding at all: the metadata file is simply
absent, and readers map "file not found" back to :meth:`CacheExpiry.never`.
"""

from __future__ import annotations

import struct
import time
from typing import Optional

from etagcache.exceptions import ConversionError
from etagcache.models import CacheExpiry

_TIMESTAMP = struct.Struct(">Q")


def encode_expiry(expiry: CacheExpiry) -> Optional[bytes]:
    """Serialise *expiry*, or return ``None`` when no file should be written."""
    if expiry.is_never:
        return None
    payload = _TIMESTAMP.pack(expiry.timestamp)
    if expiry.etag:
        payload += expiry.etag.encode("utf-8")
    return payload


def decode_expiry(data: bytes) -> CacheExpiry:
    """Deserialise the contents of a metadata file.

    Raises:
        ConversionError: If *data* is shorter than the timestamp field or the
            token is not valid UTF-8.
    """
    if len(data) < _TIMESTAMP.size:
        raise ConversionError(
            f"Expiry record is truncated: {len(data)} of {_TIMESTAMP.size} bytes"
        )
    (timestamp,) = _TIMESTAMP.unpack_from(data)
    try:
        etag = data[_TIMESTAMP.size:].decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ConversionError(f"Expiry token is not valid UTF-8: {exc}") from exc
    return CacheExpiry.at_instant(timestamp, etag or None)


def is_expired(expiry: CacheExpiry, now: Optional[float] = None) -> bool:
    """Return whether *expiry* is stale at *now*.

    An entry whose instant equals *now* is still fresh.
    """
    if expiry.is_never:
        return False
    current = time.time() if now is None else now
    return current > expiry.timestamp
