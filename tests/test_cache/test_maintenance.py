"""Tests for pattern clearing, pattern expiry, and cache introspection."""

from __future__ import annotations

import re
from pathlib import Path

import pytest
import pytest_asyncio

from etagcache.cache import CacheManager
from etagcache.exceptions import CacheRemoveError, InvalidUsageError
from etagcache.models import CacheExpiry, CacheFile, CachePolicy, CacheStatus, FetchResult

from conftest import NOW


@pytest_asyncio.fixture
async def populated(cache: CacheManager) -> CacheManager:
    """Entries a1 and a2 with metadata, b1 with metadata, c1 never expiring."""
    await cache.write_cache_file("a1", b"one", CacheExpiry.at_instant(NOW + 60, '"a1"'))
    await cache.write_cache_file("a2", b"two", CacheExpiry.at_instant(NOW + 60, '"a2"'))
    await cache.write_cache_file("b1", b"three", CacheExpiry.at_instant(NOW + 60))
    await cache.write_cache_file("c1", b"four", CacheExpiry.never())
    return cache


def _names(root: Path) -> list[str]:
    return sorted(p.name for p in root.iterdir())


# ------------------------------------------------------------------ #
# clear_cache_pattern
# ------------------------------------------------------------------ #


class TestClearCachePattern:
    @pytest.mark.asyncio
    async def test_removes_matching_pairs(self, populated: CacheManager, cache_root: Path) -> None:
        removed = await populated.clear_cache_pattern("a.")
        assert removed == 2
        assert _names(cache_root) == ["b1", "b1.expiry", "c1"]

    @pytest.mark.asyncio
    async def test_pattern_is_not_anchored(self, populated: CacheManager, cache_root: Path) -> None:
        assert await populated.clear_cache_pattern("1") == 3
        assert _names(cache_root) == ["a2", "a2.expiry"]

    @pytest.mark.asyncio
    async def test_accepts_compiled_pattern(self, populated: CacheManager, cache_root: Path) -> None:
        assert await populated.clear_cache_pattern(re.compile("^b")) == 1
        assert "b1" not in _names(cache_root)

    @pytest.mark.asyncio
    async def test_match_everything(self, populated: CacheManager, cache_root: Path) -> None:
        assert await populated.clear_cache_pattern(".*") == 4
        assert _names(cache_root) == []

    @pytest.mark.asyncio
    async def test_no_match(self, populated: CacheManager, cache_root: Path) -> None:
        before = _names(cache_root)
        assert await populated.clear_cache_pattern("^zzz") == 0
        assert _names(cache_root) == before

    @pytest.mark.asyncio
    async def test_metadata_name_alone_does_not_match(
        self, populated: CacheManager, cache_root: Path
    ) -> None:
        # "expiry" only occurs in metadata file names, never in keys.
        assert await populated.clear_cache_pattern("expiry") == 0
        assert len(_names(cache_root)) == 7

    @pytest.mark.asyncio
    async def test_removes_orphaned_metadata(self, cache: CacheManager, cache_root: Path) -> None:
        (cache_root / "a9.expiry").write_bytes(b"\x00" * 8)
        (cache_root / "b9.expiry").write_bytes(b"\x00" * 8)
        assert await cache.clear_cache_pattern("^a") == 0
        assert _names(cache_root) == ["b9.expiry"]

    @pytest.mark.asyncio
    async def test_empty_cache(self, cache: CacheManager) -> None:
        assert await cache.clear_cache_pattern(".*") == 0

    @pytest.mark.asyncio
    async def test_invalid_pattern(self, populated: CacheManager, cache_root: Path) -> None:
        with pytest.raises(InvalidUsageError, match="Invalid pattern"):
            await populated.clear_cache_pattern("a(")
        assert len(_names(cache_root)) == 7

    @pytest.mark.asyncio
    async def test_removal_failure_raises(self, cache: CacheManager, cache_root: Path) -> None:
        (cache_root / "a1").mkdir()
        with pytest.raises(CacheRemoveError, match="could not be removed"):
            await cache.clear_cache_pattern("a1")

    @pytest.mark.asyncio
    async def test_cleared_entries_read_as_none(self, populated: CacheManager) -> None:
        await populated.clear_cache_pattern("^a")
        assert await populated.read_cache_file("a1") == CacheFile.none()
        assert (await populated.read_cache_file("b1")).status == CacheStatus.FRESH


# ------------------------------------------------------------------ #
# set_expired_pattern
# ------------------------------------------------------------------ #


class TestSetExpiredPattern:
    @pytest.mark.asyncio
    async def test_expires_matching_entries(self, populated: CacheManager) -> None:
        assert await populated.set_expired_pattern("^a") == 2

        a1 = await populated.read_cache_file("a1", CachePolicy.DEFAULT)
        assert a1 == CacheFile.expired(b"one")
        assert (await populated.read_cache_file("b1")).status == CacheStatus.FRESH

    @pytest.mark.asyncio
    async def test_drops_revalidation_token(self, populated: CacheManager) -> None:
        await populated.set_expired_pattern("a1")
        expiry = await populated.read_expiry("a1")
        assert expiry.etag is None
        assert expiry.timestamp == NOW - 1

    @pytest.mark.asyncio
    async def test_leaves_content_in_place(
        self, populated: CacheManager, cache_root: Path
    ) -> None:
        await populated.set_expired_pattern(".*")
        assert (cache_root / "a1").read_bytes() == b"one"
        assert (await populated.read_cache_file("a1", CachePolicy.IGNORE_EXPIRY)).content == b"one"

    @pytest.mark.asyncio
    async def test_never_expiring_entries_untouched(
        self, populated: CacheManager, cache_root: Path
    ) -> None:
        await populated.set_expired_pattern("c1")
        assert not (cache_root / "c1.expiry").exists()
        assert await populated.read_cache_file("c1") == CacheFile.fresh(b"four")

    @pytest.mark.asyncio
    async def test_invalid_pattern(self, populated: CacheManager) -> None:
        with pytest.raises(InvalidUsageError):
            await populated.set_expired_pattern("[")

    @pytest.mark.asyncio
    async def test_next_get_or_write_revalidates(
        self, populated: CacheManager, recording_fetch
    ) -> None:
        await populated.set_expired_pattern("a1")
        fetch = recording_fetch(FetchResult.not_modified(CacheExpiry.at_instant(NOW + 60)))
        assert await populated.get_or_write("a1", CachePolicy.DEFAULT, fetch) == b"one"
        assert fetch.calls == [None]


# ------------------------------------------------------------------ #
# Introspection
# ------------------------------------------------------------------ #


class TestIntrospection:
    @pytest.mark.asyncio
    async def test_entries(self, populated: CacheManager) -> None:
        entries = await populated.entries()
        assert [e.key for e in entries] == ["a1", "a2", "b1", "c1"]
        assert entries[0].size == 3
        assert entries[0].expiry == CacheExpiry.at_instant(NOW + 60, '"a1"')
        assert entries[3].expiry.is_never

    @pytest.mark.asyncio
    async def test_entries_filtered(self, populated: CacheManager) -> None:
        entries = await populated.entries("^b")
        assert [e.key for e in entries] == ["b1"]

    @pytest.mark.asyncio
    async def test_entries_skip_temp_and_orphans(
        self, cache: CacheManager, cache_root: Path
    ) -> None:
        (cache_root / ".a1.xyz.tmp").write_bytes(b"partial")
        (cache_root / "z9.expiry").write_bytes(b"\x00" * 8)
        assert await cache.entries() == []

    @pytest.mark.asyncio
    async def test_stats(self, populated: CacheManager, cache_root: Path) -> None:
        stats = await populated.stats()
        assert stats == {
            "directory": str(cache_root),
            "entries": 4,
            "size_bytes": len(b"one" + b"two" + b"three" + b"four"),
        }

    @pytest.mark.asyncio
    async def test_stats_empty(self, cache: CacheManager) -> None:
        assert (await cache.stats())["entries"] == 0

    @pytest.mark.asyncio
    async def test_stats_ignores_corrupt_metadata(
        self, populated: CacheManager, cache_root: Path
    ) -> None:
        (cache_root / "a1.expiry").write_bytes(b"\x01")
        stats = await populated.stats()
        assert stats["entries"] == 4
        assert stats["size_bytes"] == len(b"one" + b"two" + b"three" + b"four")
