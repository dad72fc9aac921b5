"""Tests for the freshness decision table."""

from __future__ import annotations

import pytest

from etagcache.cache.policy import classify, needs_expiry
from etagcache.models import CacheExpiry, CacheFile, CachePolicy, CacheStatus


NOW = 1_000.0
FRESH = CacheExpiry.at_instant(2_000, "tag")
STALE = CacheExpiry.at_instant(500, "tag")
CONTENT = b"payload"


@pytest.mark.parametrize(
    ("policy", "content", "expiry", "expected"),
    [
        (CachePolicy.IGNORE_CACHED, None, None, CacheFile.none()),
        (CachePolicy.IGNORE_CACHED, CONTENT, FRESH, CacheFile.none()),
        (CachePolicy.IGNORE_CACHED, CONTENT, STALE, CacheFile.none()),
        (CachePolicy.IGNORE_EXPIRY, None, None, CacheFile.none()),
        (CachePolicy.IGNORE_EXPIRY, CONTENT, FRESH, CacheFile.fresh(CONTENT)),
        (CachePolicy.IGNORE_EXPIRY, CONTENT, STALE, CacheFile.fresh(CONTENT)),
        (CachePolicy.REVALIDATE, None, None, CacheFile.none()),
        (CachePolicy.REVALIDATE, CONTENT, FRESH, CacheFile.expired(CONTENT, "tag")),
        (CachePolicy.REVALIDATE, CONTENT, STALE, CacheFile.expired(CONTENT, "tag")),
        (CachePolicy.DEFAULT, None, None, CacheFile.none()),
        (CachePolicy.DEFAULT, CONTENT, FRESH, CacheFile.fresh(CONTENT)),
        (CachePolicy.DEFAULT, CONTENT, STALE, CacheFile.expired(CONTENT, "tag")),
    ],
)
def test_policy_table(policy, content, expiry, expected) -> None:
    assert classify(policy, content, expiry, now=NOW) == expected


def test_default_treats_missing_expiry_as_never() -> None:
    assert classify(CachePolicy.DEFAULT, CONTENT, None, now=NOW).status == CacheStatus.FRESH


def test_revalidate_without_metadata_has_no_token() -> None:
    result = classify(CachePolicy.REVALIDATE, CONTENT, CacheExpiry.never(), now=NOW)
    assert result == CacheFile.expired(CONTENT, None)


def test_expiry_equal_to_now_is_fresh() -> None:
    result = classify(CachePolicy.DEFAULT, CONTENT, CacheExpiry.at_instant(1_000), now=1_000)
    assert result.status == CacheStatus.FRESH


def test_empty_content_is_still_cached() -> None:
    assert classify(CachePolicy.DEFAULT, b"", None, now=NOW) == CacheFile.fresh(b"")


@pytest.mark.parametrize(
    ("policy", "expected"),
    [
        (CachePolicy.DEFAULT, True),
        (CachePolicy.REVALIDATE, True),
        (CachePolicy.IGNORE_EXPIRY, False),
        (CachePolicy.IGNORE_CACHED, False),
    ],
)
def test_needs_expiry(policy: CachePolicy, expected: bool) -> None:
    assert needs_expiry(policy) is expected
