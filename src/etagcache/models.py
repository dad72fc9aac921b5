"""Canonical Pydantic models shared across all etagcache modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Cache models** -- exchanged between consumers and the cache:
    :class:`CachePolicy`, :class:`CacheExpiry`, :class:`CacheStatus`,
    :class:`CacheFile`, :class:`FetchStatus`, :class:`FetchResult`,
    :class:`CacheEntry`, and the pagination window :class:`Batch`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`RequestConfig`, :class:`OutputConfig`, and
    :class:`GlobalConfig`.

All models use Pydantic v2. Cache models are frozen so that a value handed to
a fetch callback or returned from a read cannot be mutated behind the
cache's back.
"""

from __future__ import annotations

import enum
import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


_MAX_TIMESTAMP = 2**64 - 1


# --- Cache policy ---


class CachePolicy(str, enum.Enum):
    """Strategy a caller selects per read to trade freshness for availability.

    ``DEFAULT`` respects the recorded expiry and revalidates only stale
    entries. ``IGNORE_EXPIRY`` uses whatever is cached (offline mode).
    ``REVALIDATE`` treats every cached entry as stale so the provider is
    always asked. ``IGNORE_CACHED`` bypasses the cache for reading but
    still stores the fetched result.
    """

    DEFAULT = "default"
    IGNORE_EXPIRY = "ignore_expiry"
    REVALIDATE = "revalidate"
    IGNORE_CACHED = "ignore_cached"


# --- Expiry ---


class CacheExpiry(BaseModel):
    """Freshness metadata stored next to a cached resource.

    A record with ``timestamp=None`` never expires and is stored as the
    absence of a metadata file. Otherwise ``timestamp`` is the expiry instant
    in whole seconds since the Unix epoch and ``etag`` is the optional
    revalidation token handed back to the provider on the next fetch.

    An empty ``etag`` is normalised to ``None``: the on-disk layout cannot
    tell the two apart.

    Example::

        CacheExpiry.expire_in_seconds(300, etag='"abc"')
        CacheExpiry.never()
    """

    model_config = ConfigDict(frozen=True)

    timestamp: Optional[int] = Field(
        default=None,
        ge=0,
        le=_MAX_TIMESTAMP,
        description="Expiry instant in seconds since the Unix epoch (None = never)",
    )
    etag: Optional[str] = Field(
        default=None, description="Revalidation token from the last fetch"
    )

    @field_validator("etag")
    @classmethod
    def _empty_etag_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @model_validator(mode="after")
    def _never_has_no_etag(self) -> CacheExpiry:
        if self.timestamp is None and self.etag is not None:
            raise ValueError("a never-expiring record cannot carry an etag")
        return self

    @classmethod
    def never(cls) -> CacheExpiry:
        """Return the record for an entry that never goes stale."""
        return cls()

    @classmethod
    def at_instant(cls, timestamp: int, etag: Optional[str] = None) -> CacheExpiry:
        """Return a record expiring at *timestamp* (seconds since the epoch)."""
        return cls(timestamp=timestamp, etag=etag)

    @classmethod
    def expire_in_seconds(
        cls,
        seconds: int,
        etag: Optional[str] = None,
        now: Optional[float] = None,
    ) -> CacheExpiry:
        """Return a record expiring *seconds* from *now* (defaults to the wall clock)."""
        current = time.time() if now is None else now
        return cls(timestamp=int(current) + seconds, etag=etag)

    @classmethod
    def expired(cls, now: Optional[float] = None) -> CacheExpiry:
        """Return a token-less record that is already stale at *now*."""
        current = time.time() if now is None else now
        return cls(timestamp=max(int(current) - 1, 0))

    @property
    def is_never(self) -> bool:
        """Whether this record never expires."""
        return self.timestamp is None


# --- Read results ---


class CacheStatus(str, enum.Enum):
    """Outcome of a cache read."""

    FRESH = "fresh"
    EXPIRED = "expired"
    NONE = "none"


class CacheFile(BaseModel):
    """Tri-state result of :meth:`~etagcache.cache.CacheManager.read_cache_file`.

    ``FRESH`` carries bytes usable immediately. ``EXPIRED`` carries bytes that
    must be revalidated plus the token to revalidate with. ``NONE`` carries
    nothing.
    """

    model_config = ConfigDict(frozen=True)

    status: CacheStatus
    content: Optional[bytes] = None
    etag: Optional[str] = None

    @model_validator(mode="after")
    def _content_matches_status(self) -> CacheFile:
        if self.status == CacheStatus.NONE and self.content is not None:
            raise ValueError("an empty read cannot carry content")
        if self.status != CacheStatus.NONE and self.content is None:
            raise ValueError(f"a {self.status.value} read must carry content")
        return self

    @classmethod
    def fresh(cls, content: bytes) -> CacheFile:
        return cls(status=CacheStatus.FRESH, content=content)

    @classmethod
    def expired(cls, content: bytes, etag: Optional[str] = None) -> CacheFile:
        return cls(status=CacheStatus.EXPIRED, content=content, etag=etag)

    @classmethod
    def none(cls) -> CacheFile:
        return cls(status=CacheStatus.NONE)


# --- Fetch results ---


class FetchStatus(str, enum.Enum):
    """What the provider reported for a (conditional) fetch."""

    NOT_MODIFIED = "not_modified"
    MODIFIED = "modified"


class FetchResult(BaseModel):
    """Value returned by the fetch callback given to ``get_or_write``.

    ``NOT_MODIFIED`` confirms the previously cached bytes and only refreshes
    their metadata. ``MODIFIED`` replaces both content and metadata.
    """

    model_config = ConfigDict(frozen=True)

    status: FetchStatus
    content: Optional[bytes] = None
    expiry: CacheExpiry = Field(default_factory=CacheExpiry.never)

    @model_validator(mode="after")
    def _modified_has_content(self) -> FetchResult:
        if self.status == FetchStatus.MODIFIED and self.content is None:
            raise ValueError("a modified fetch result must carry content")
        if self.status == FetchStatus.NOT_MODIFIED and self.content is not None:
            raise ValueError("a not-modified fetch result cannot carry content")
        return self

    @classmethod
    def not_modified(cls, expiry: CacheExpiry) -> FetchResult:
        return cls(status=FetchStatus.NOT_MODIFIED, expiry=expiry)

    @classmethod
    def modified(cls, content: bytes, expiry: CacheExpiry) -> FetchResult:
        return cls(status=FetchStatus.MODIFIED, content=content, expiry=expiry)


class CacheEntry(BaseModel):
    """Listing row for one cached resource, produced by ``CacheManager.entries``."""

    model_config = ConfigDict(frozen=True)

    key: str
    size: int = Field(ge=0, description="Content size in bytes")
    expiry: CacheExpiry = Field(default_factory=CacheExpiry.never)


# --- Pagination ---


class Batch(BaseModel):
    """A window of ``batch_size`` items starting at ``offset`` out of ``total``.

    See Also:
        :class:`~etagcache.pagination.ItemBatch`: pairs a window with its items.
    """

    model_config = ConfigDict(frozen=True)

    offset: int = Field(default=0, ge=0)
    batch_size: int = Field(ge=1)
    total: int = Field(default=0, ge=0)

    @classmethod
    def first_of_size(cls, batch_size: int) -> Batch:
        """Return the first window of *batch_size* items with an unknown total."""
        return cls(offset=0, batch_size=batch_size, total=0)

    def next(self) -> Optional[Batch]:
        """Return the following window, or ``None`` once past ``total``."""
        offset = self.offset + self.batch_size
        if offset >= self.total:
            return None
        return self.model_copy(update={"offset": offset})


# --- Configuration ---


class CacheConfig(BaseModel):
    """Cache location and freshness defaults stored in :class:`GlobalConfig`."""

    namespace: str = Field(
        default="default", description="Subdirectory of the cache base used as root"
    )
    directory: Optional[str] = Field(
        default=None, description="Cache base directory (defaults to the XDG cache dir)"
    )
    default_ttl_seconds: int = Field(
        default=300, ge=0, description="Lifetime of responses without Cache-Control"
    )
    default_policy: CachePolicy = Field(
        default=CachePolicy.DEFAULT, description="Policy used when none is given"
    )


class RequestConfig(BaseModel):
    """HTTP settings for the revalidation adapter."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(default=2, ge=0, description="Max retry attempts")
    user_agent: Optional[str] = Field(
        default=None, description="User-Agent header sent with every request"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/etagcache/config.json``.

    Loaded and saved by :func:`~etagcache.config.load_global_config` and
    :func:`~etagcache.config.save_global_config`. See
    :func:`~etagcache.config.resolve_config` for how environment variables
    and CLI flags override it.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
