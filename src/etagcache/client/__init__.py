"""HTTP fetch callbacks for the cache orchestrator.

Exports :class:`HttpFetcher`, which performs ETag-conditional GET requests
with :mod:`httpx` and reports them as :class:`~etagcache.models.FetchResult`
values for :meth:`~etagcache.cache.CacheManager.get_or_write`.
"""

from etagcache.client.fetcher import HttpFetcher, expiry_from_headers, parse_cache_control

__all__ = ["HttpFetcher", "expiry_from_headers", "parse_cache_control"]
