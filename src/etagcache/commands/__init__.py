"""Built-in CLI commands registered by :mod:`etagcache.app`."""
