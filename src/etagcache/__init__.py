"""etagcache -- a disk-backed, expiry- and ETag-aware content cache.

The cache sits between a data-fetching client and a remote provider. It
stores raw resource bytes next to a compact binary expiry record and, per
read, decides whether the bytes are fresh, must be revalidated with the
provider's ETag, or are missing. Consumers normally only call
:meth:`~etagcache.cache.CacheManager.get_or_write`.

Typical use::

    cache = CacheManager.for_dir("albums")
    data = await cache.get_or_write("album-42", CachePolicy.DEFAULT, fetch)

Modules:
    cache: Path resolution, expiry codec, policy table, and the manager.
    client: ETag-conditional HTTP fetch callbacks built on httpx.
    models: Pydantic models shared across the entire package.
    pagination: Paged item batches.
    config: XDG-aware configuration management.
    exceptions: Exception hierarchy with exit-code mapping.
    app: The ``etagcache`` maintenance CLI.
"""

__version__ = "0.1.0"
