"""Cache commands -- inspect, maintain, and fill the on-disk cache.

Registered directly on the root application:

* ``etagcache stats`` -- entry count, total size, and directory.
* ``etagcache list [PATTERN]`` -- one row per cached key.
* ``etagcache show KEY`` -- how a read under a policy would classify KEY.
* ``etagcache clear PATTERN`` -- remove matching entries.
* ``etagcache expire PATTERN`` -- force matching entries to revalidate.
* ``etagcache fetch URL --key KEY`` -- ``get_or_write`` through HTTP.

Patterns are Python regular expressions searched (not anchored) in each key;
anchor them explicitly, e.g. ``'^album-'``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Optional, TypeVar

import typer

from etagcache.cache import CacheManager
from etagcache.config import resolve_config
from etagcache.exceptions import EtagCacheError
from etagcache.models import CacheExpiry, CachePolicy, GlobalConfig
from etagcache.output import error, format_response, get_output, print_table, success

T = TypeVar("T")


def _open_cache(ctx: typer.Context) -> tuple[GlobalConfig, CacheManager]:
    """Resolve the cache root from CLI flags, env, and config, and open it."""
    obj = ctx.obj or {}
    config, root = _guard(
        lambda: resolve_config(obj.get("cache_dir"), obj.get("namespace"))
    )
    return config, CacheManager(root)


def _guard(call: Any) -> Any:
    """Run *call*, turning :class:`EtagCacheError` into a clean CLI exit."""
    try:
        return call()
    except EtagCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _run(coro: Awaitable[T]) -> T:
    return _guard(lambda: asyncio.run(coro))


def _format_expiry(expiry: CacheExpiry) -> str:
    if expiry.is_never:
        return "never"
    when = datetime.fromtimestamp(expiry.timestamp, tz=timezone.utc)
    return when.isoformat(timespec="seconds")


def stats_command(ctx: typer.Context) -> None:
    """Show the cache directory, entry count, and total size."""
    _, cache = _open_cache(ctx)
    format_response(_run(cache.stats()))


def list_command(
    ctx: typer.Context,
    pattern: Optional[str] = typer.Argument(
        None, help="Regular expression searched in each key."
    ),
) -> None:
    """List cached entries with their size, expiry, and ETag."""
    _, cache = _open_cache(ctx)
    entries = _run(cache.entries(pattern))
    rows = [
        [entry.key, str(entry.size), _format_expiry(entry.expiry), entry.expiry.etag or ""]
        for entry in entries
    ]
    print_table(["key", "size", "expires", "etag"], rows, title=str(cache.root))


def show_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Resource key."),
    policy: Optional[CachePolicy] = typer.Option(
        None, "--policy", "-p", help="Cache policy used for the read."
    ),
) -> None:
    """Show how KEY is classified by a read under POLICY.

    Example::

        etagcache show album-42
        etagcache show album-42 --policy revalidate --json
    """
    config, cache = _open_cache(ctx)
    policy = policy or config.cache.default_policy
    cached = _run(cache.read_cache_file(key, policy))
    format_response(
        {
            "key": key,
            "policy": policy.value,
            "status": cached.status.value,
            "size": len(cached.content) if cached.content is not None else 0,
            "etag": cached.etag or "",
        }
    )


def clear_command(
    ctx: typer.Context,
    pattern: str = typer.Argument(help="Regular expression searched in each key."),
) -> None:
    """Remove every entry whose key matches PATTERN."""
    _, cache = _open_cache(ctx)
    removed = _run(cache.clear_cache_pattern(pattern))
    success(f"Removed {removed} entries matching {pattern!r}.")


def expire_command(
    ctx: typer.Context,
    pattern: str = typer.Argument(help="Regular expression searched in each key."),
) -> None:
    """Mark every entry whose key matches PATTERN as expired."""
    _, cache = _open_cache(ctx)
    expired = _run(cache.set_expired_pattern(pattern))
    success(f"Expired {expired} entries matching {pattern!r}.")


def fetch_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL of the resource."),
    key: str = typer.Option(..., "--key", "-k", help="Resource key to cache under."),
    policy: Optional[CachePolicy] = typer.Option(
        None, "--policy", "-p", help="Cache policy for this fetch."
    ),
    output_file: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the bytes to this file instead of stdout."
    ),
) -> None:
    """Print the bytes of URL, revalidating the cached copy under KEY as needed.

    Example::

        etagcache fetch https://api.example.com/albums/42 --key album-42
        etagcache fetch https://api.example.com/albums/42 -k album-42 -p ignore_expiry
    """
    from etagcache.client import HttpFetcher

    config, cache = _open_cache(ctx)
    policy = policy or config.cache.default_policy

    async def _fetch() -> bytes:
        async with HttpFetcher.from_config(config) as fetcher:
            return await fetcher.cached_get(cache, key, url, policy)

    data = _run(_fetch())
    if output_file is not None:
        output_file.write_bytes(data)
        success(f"Wrote {len(data)} bytes to {output_file}")
    else:
        get_output().write_bytes(data)
