"""Disk-backed, expiry- and ETag-aware content cache.

Each resource key owns up to two files in the cache root::

    <key>          raw content bytes
    <key>.expiry   binary expiry record (see :mod:`etagcache.cache.codec`)

The content file decides whether a resource is cached at all; a missing
metadata file means the entry never expires.  Every file is replaced
atomically (temp file + ``os.replace``) but the pair is not: a crash between
the two writes leaves new content with the previous metadata.

Blocking file operations run in worker threads via :func:`asyncio.to_thread`.
The content and metadata halves of a read or write run concurrently and are
joined before the caller sees a result.

See Also:
    :mod:`etagcache.cache.policy` -- the freshness table applied on reads.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import tempfile
import time
import weakref
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from etagcache.cache.codec import decode_expiry, encode_expiry
from etagcache.cache.paths import EXPIRY_FILE_EXT, CachePaths, validate_key
from etagcache.cache.policy import classify, needs_expiry
from etagcache.exceptions import (
    CacheReadError,
    CacheRemoveError,
    CacheWriteError,
    InvalidUsageError,
    NoContentError,
)
from etagcache.models import (
    CacheEntry,
    CacheExpiry,
    CacheFile,
    CachePolicy,
    CacheStatus,
    FetchResult,
    FetchStatus,
)

logger = logging.getLogger(__name__)

_DIR_MODE = 0o700

Fetch = Callable[[Optional[str]], Awaitable[FetchResult]]
Pattern = Union[str, re.Pattern]


class CacheManager:
    """Read, write, revalidate, and bulk-maintain cached resources.

    The manager holds nothing but its root directory and a registry of
    per-key locks, so it is cheap to share.  Copies made with
    :func:`copy.copy` share the lock registry; independent instances pointed
    at the same root do not coordinate with each other.

    Args:
        root: The cache root directory.  Created (with parents) using mode
            ``0o700`` if it does not exist.
        clock: Returns the current time in seconds since the epoch.  Used
            to decide whether entries have expired.

    Example::

        cache = CacheManager.for_dir("albums")

        async def fetch(etag):
            return FetchResult.modified(b"...", CacheExpiry.expire_in_seconds(60))

        data = await cache.get_or_write("album-42", CachePolicy.DEFAULT, fetch)
    """

    def __init__(
        self,
        root: str | Path,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._paths = CachePaths(Path(root))
        self._clock = clock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._paths.root.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)

    @classmethod
    def for_dir(cls, name: str, base: Optional[str | Path] = None) -> CacheManager:
        """Create a manager rooted at *name* under the platform cache directory.

        Args:
            name: Subdirectory name, e.g. ``"net"``.
            base: Cache base directory.  Defaults to
                :func:`~etagcache.config.get_cache_dir`.
        """
        from etagcache.config import get_cache_dir

        base_dir = Path(base) if base is not None else get_cache_dir()
        return cls(base_dir / name)

    @property
    def root(self) -> Path:
        """The cache root directory."""
        return self._paths.root

    @property
    def paths(self) -> CachePaths:
        """The path resolver bound to :attr:`root`."""
        return self._paths

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def read_cache_file(
        self,
        key: str,
        policy: CachePolicy = CachePolicy.DEFAULT,
    ) -> CacheFile:
        """Read the cached content for *key* and classify it under *policy*.

        ``IGNORE_CACHED`` returns :meth:`CacheFile.none` without touching the
        disk, and ``IGNORE_EXPIRY`` never reads the metadata file.  A missing
        content file always yields ``NONE``.

        Raises:
            CacheReadError: If a file exists but cannot be read.
            ConversionError: If the metadata file is corrupt.
            InvalidKeyError: If *key* is not a valid resource key.
        """
        content_path = self._paths.content_path(key)
        if policy == CachePolicy.IGNORE_CACHED:
            return CacheFile.none()

        if needs_expiry(policy):
            content, expiry = await asyncio.gather(
                self._read_content(content_path),
                self._read_expiry(self._paths.meta_path(key)),
                return_exceptions=True,
            )
        else:
            content, expiry = await self._read_content(content_path), None

        if isinstance(content, BaseException):
            raise content
        if content is None:
            logger.debug("Cache miss for %s", key)
            return CacheFile.none()
        if isinstance(expiry, BaseException):
            raise expiry
        return classify(policy, content, expiry, now=self._clock())

    async def read_expiry(self, key: str) -> CacheExpiry:
        """Return the stored expiry record for *key* (never-expiring if absent)."""
        return await self._read_expiry(self._paths.meta_path(key))

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def write_cache_file(
        self,
        key: str,
        content: bytes,
        expiry: CacheExpiry,
    ) -> None:
        """Replace the content and metadata of *key*.

        Both files are written concurrently.  If both fail, the content
        error is the one raised.  A never-expiring *expiry* removes any
        previous metadata file.

        Raises:
            CacheWriteError: If either file cannot be written.
        """
        content_path = self._paths.content_path(key)
        meta_path = self._paths.meta_path(key)
        results = await asyncio.gather(
            self._write_file(content_path, content),
            self._write_expiry(meta_path, expiry),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        logger.debug("Stored %d bytes for %s", len(content), key)

    async def set_expiry(self, key: str, expiry: CacheExpiry) -> None:
        """Replace only the metadata of *key*, leaving its content untouched."""
        await self._write_expiry(self._paths.meta_path(key), expiry)

    async def invalidate(self, key: str) -> bool:
        """Remove *key* from the cache.

        Returns:
            ``True`` if a content file was removed.

        Raises:
            CacheRemoveError: If the content file exists but cannot be removed.
        """
        removed = await self._remove_content(self._paths.content_path(key))
        await self._remove_quietly(self._paths.meta_path(key))
        return removed

    # ------------------------------------------------------------------ #
    # Orchestration
    # ------------------------------------------------------------------ #

    async def get_or_write(
        self,
        key: str,
        policy: CachePolicy,
        fetch: Fetch,
    ) -> bytes:
        """Return usable bytes for *key*, fetching and storing them when needed.

        ``fetch`` is called with the stored revalidation token when cached
        bytes are expired, with ``None`` when nothing is cached, and not at
        all when the cached bytes are fresh.  A ``NOT_MODIFIED`` answer only
        refreshes the metadata; a ``MODIFIED`` answer replaces both files.

        Concurrent calls for the same key on this manager run one at a time.
        Exceptions raised by ``fetch`` propagate unchanged.

        Raises:
            NoContentError: If nothing was cached and ``fetch`` reported
                ``NOT_MODIFIED``.  Nothing is written in that case.
            CacheError: If reading or writing the cache fails.
        """
        validate_key(key)
        async with self._lock_for(key):
            cached = await self.read_cache_file(key, policy)

            if cached.status == CacheStatus.FRESH:
                logger.debug("Cache hit for %s", key)
                return cached.content

            if cached.status == CacheStatus.EXPIRED:
                logger.debug("Revalidating %s (etag=%s)", key, cached.etag)
                result = await fetch(cached.etag)
                if result.status == FetchStatus.NOT_MODIFIED:
                    await self.set_expiry(key, result.expiry)
                    return cached.content
            else:
                result = await fetch(None)
                if result.status == FetchStatus.NOT_MODIFIED:
                    raise NoContentError()

            await self.write_cache_file(key, result.content, result.expiry)
            return result.content

    # ------------------------------------------------------------------ #
    # Pattern maintenance
    # ------------------------------------------------------------------ #

    async def clear_cache_pattern(self, pattern: Pattern) -> int:
        """Remove every entry whose key matches *pattern*.

        *pattern* is searched (not anchored) in each key.  Metadata files
        are removed best-effort; metadata left without content is removed
        too.  A failure removing a content file aborts the remaining batch
        without restoring what was already removed.

        Returns:
            The number of content files removed.

        Raises:
            CacheReadError: If the cache root cannot be listed.
            CacheRemoveError: If a content file cannot be removed.
            InvalidUsageError: If *pattern* is not a valid regular expression.
        """
        regex = _compile(pattern)
        names = await self._list_names()
        present = set(names)
        removed = 0

        for name in names:
            if CachePaths.is_content_name(name):
                if not regex.search(name):
                    continue
                logger.info("Removing %s...", name)
                if await self._remove_content(self.root / name):
                    removed += 1
                await self._remove_quietly(self.root / (name + EXPIRY_FILE_EXT))
                continue

            key = CachePaths.key_for_meta_name(name)
            if key is not None and key not in present and regex.search(key):
                logger.info("Removing orphaned %s...", name)
                await self._remove_quietly(self.root / name)

        return removed

    async def set_expired_pattern(self, pattern: Pattern) -> int:
        """Mark every entry whose key matches *pattern* as expired.

        Only entries that have a metadata file are touched; their record is
        replaced with an already-stale one without a token.  Content is left
        in place so the next ``DEFAULT`` read revalidates it.

        Returns:
            The number of metadata files rewritten.

        Raises:
            CacheReadError: If the cache root cannot be listed.
            CacheWriteError: If a metadata file cannot be rewritten.
            InvalidUsageError: If *pattern* is not a valid regular expression.
        """
        regex = _compile(pattern)
        expired = 0
        for name in await self._list_names():
            key = CachePaths.key_for_meta_name(name)
            if key is None or not regex.search(key):
                continue
            logger.debug("Expiring %s", key)
            await self._write_expiry(self.root / name, CacheExpiry.expired(self._clock()))
            expired += 1
        return expired

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    async def entries(self, pattern: Optional[Pattern] = None) -> list[CacheEntry]:
        """List cached entries, optionally only keys matching *pattern*.

        Raises:
            ConversionError: If a listed entry's metadata file is corrupt.
        """
        result: list[CacheEntry] = []
        for name, size in await self._content_sizes(pattern):
            expiry = await self._read_expiry(self.root / (name + EXPIRY_FILE_EXT))
            result.append(CacheEntry(key=name, size=size, expiry=expiry))
        return result

    async def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Only content files are inspected; metadata is never decoded.

        Returns:
            A ``dict`` with ``directory`` (str path), ``entries`` (number of
            content files), and ``size_bytes`` (their total size).
        """
        sizes = await self._content_sizes()
        return {
            "directory": str(self.root),
            "entries": len(sizes),
            "size_bytes": sum(size for _, size in sizes),
        }

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _list_names(self) -> list[str]:
        try:
            names = await asyncio.to_thread(os.listdir, self.root)
        except OSError as exc:
            raise CacheReadError(f"Cache directory could not be listed: {exc}") from exc
        return sorted(names)

    async def _content_sizes(self, pattern: Optional[Pattern] = None) -> list[tuple[str, int]]:
        regex = _compile(pattern) if pattern is not None else None
        sizes: list[tuple[str, int]] = []
        for name in await self._list_names():
            if not CachePaths.is_content_name(name):
                continue
            if regex is not None and not regex.search(name):
                continue
            size = await self._file_size(self.root / name)
            if size is not None:
                sizes.append((name, size))
        return sizes

    async def _read_content(self, path: Path) -> Optional[bytes]:
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheReadError(f"File could not be read from cache: {exc}") from exc

    async def _read_expiry(self, path: Path) -> CacheExpiry:
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return CacheExpiry.never()
        except OSError as exc:
            raise CacheReadError(f"File could not be read from cache: {exc}") from exc
        return decode_expiry(data)

    async def _write_file(self, path: Path, data: bytes) -> None:
        try:
            await asyncio.to_thread(_atomic_write_bytes, path, data)
        except OSError as exc:
            raise CacheWriteError(f"File could not be saved to cache: {exc}") from exc

    async def _write_expiry(self, path: Path, expiry: CacheExpiry) -> None:
        payload = encode_expiry(expiry)
        if payload is not None:
            await self._write_file(path, payload)
            return
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise CacheWriteError(f"File could not be saved to cache: {exc}") from exc

    async def _remove_content(self, path: Path) -> bool:
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise CacheRemoveError(f"File could not be removed from cache: {exc}") from exc
        return True

    async def _remove_quietly(self, path: Path) -> None:
        try:
            await asyncio.to_thread(path.unlink)
        except OSError as exc:
            logger.debug("Ignoring failure to remove %s: %s", path.name, exc)

    async def _file_size(self, path: Path) -> Optional[int]:
        try:
            stat = await asyncio.to_thread(path.stat)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheReadError(f"File could not be read from cache: {exc}") from exc
        return stat.st_size


def _compile(pattern: Pattern) -> re.Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise InvalidUsageError(f"Invalid pattern {pattern!r}: {exc}") from exc


def _atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write *data* to *path* atomically using temp file + rename.

    The temporary file is hidden (leading ``.``) and lives in the same
    directory as *path* so that ``os.replace`` is an atomic rename.  Its name
    does not embed the key, so any key that fits as a file name can be written.
    """
    tmp_path: Optional[str] = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=path.parent,
            prefix=".",
            suffix=".tmp",
            delete=False,
        ) as fd:
            tmp_path = fd.name
            fd.write(data)
        os.replace(tmp_path, path)
        tmp_path = None
    finally:
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
