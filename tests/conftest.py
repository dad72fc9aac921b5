"""Shared test fixtures for etagcache.

Provides isolated config directories, cache managers rooted in temporary
directories, a controllable clock, and a recording fetch stub. These
fixtures are discovered by pytest and available to all test modules.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from etagcache.cache import CacheManager
from etagcache.models import FetchResult
from etagcache.output import reset_output


NOW = 1_700_000_000


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager keeps references to sys.stdout/sys.stderr; after CliRunner
    swaps those streams the references go stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_* at subdirectories of tmp_path and clear ETAGCACHE_* vars."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("etagcache.config._is_xdg_platform", lambda: True)

    for var in ["ETAGCACHE_CACHE_DIR", "ETAGCACHE_NAMESPACE"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


class FakeClock:
    """A settable stand-in for :func:`time.time`."""

    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingFetch:
    """Fetch callback stub that returns canned results and records its calls."""

    def __init__(self, *results: FetchResult) -> None:
        self._results = list(results)
        self.calls: list[Optional[str]] = []

    async def __call__(self, etag: Optional[str]) -> FetchResult:
        self.calls.append(etag)
        return self._results.pop(0)


@pytest.fixture
def clock() -> FakeClock:
    """A clock frozen at ``NOW`` (seconds since the epoch)."""
    return FakeClock(float(NOW))


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    return tmp_path / "cache-root"


@pytest.fixture
def cache(cache_root: Path, clock: FakeClock) -> CacheManager:
    """A CacheManager rooted in a fresh temporary directory using ``clock``."""
    return CacheManager(cache_root, clock=clock)


@pytest.fixture
def recording_fetch():
    """Factory for :class:`RecordingFetch` stubs."""
    return RecordingFetch
