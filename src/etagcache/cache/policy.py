"""Freshness decisions for cached content.

:func:`classify` is the whole policy table::

    policy          missing   fresh               expired
    IGNORE_CACHED   NONE      NONE                NONE
    IGNORE_EXPIRY   NONE      FRESH               FRESH
    REVALIDATE      NONE      EXPIRED(etag)       EXPIRED(etag)
    DEFAULT         NONE      FRESH               EXPIRED(etag)
"""

from __future__ import annotations

from typing import Optional

from etagcache.cache.codec import is_expired
from etagcache.models import CacheExpiry, CacheFile, CachePolicy


def needs_expiry(policy: CachePolicy) -> bool:
    """Whether *policy* has to consult the metadata file at all."""
    return policy in (CachePolicy.DEFAULT, CachePolicy.REVALIDATE)


def classify(
    policy: CachePolicy,
    content: Optional[bytes],
    expiry: Optional[CacheExpiry] = None,
    now: Optional[float] = None,
) -> CacheFile:
    """Decide how cached *content* may be used under *policy*.

    Args:
        policy: The caller's requested policy.
        content: The cached bytes, or ``None`` when no content file exists.
        expiry: The stored expiry record. Only consulted for policies where
            :func:`needs_expiry` is true; ``None`` is read as never-expiring.
        now: Current time in seconds since the epoch (wall clock by default).

    Returns:
        The :class:`~etagcache.models.CacheFile` the read should report.
    """
    if policy == CachePolicy.IGNORE_CACHED or content is None:
        return CacheFile.none()
    if policy == CachePolicy.IGNORE_EXPIRY:
        return CacheFile.fresh(content)

    expiry = expiry or CacheExpiry.never()
    if policy == CachePolicy.REVALIDATE or is_expired(expiry, now):
        return CacheFile.expired(content, expiry.etag)
    return CacheFile.fresh(content)
