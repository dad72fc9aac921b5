"""Mapping of resource keys to their content and metadata files."""

from __future__ import annotations

from pathlib import Path

from etagcache.exceptions import InvalidKeyError

EXPIRY_FILE_EXT = ".expiry"

_FORBIDDEN_CHARS = ("/", "\\", "\0")


def validate_key(key: str) -> str:
    """Check that *key* can be used verbatim as a file name in the cache root.

    Keys must be non-empty, free of path separators and NUL, must not start
    with ``.`` (hidden names hold in-progress writes) and must not end with
    the metadata suffix.

    Returns:
        The key, unchanged.

    Raises:
        InvalidKeyError: If the key violates any of the rules above.
    """
    if not key:
        raise InvalidKeyError("Resource key must not be empty")
    for char in _FORBIDDEN_CHARS:
        if char in key:
            raise InvalidKeyError(f"Resource key {key!r} contains {char!r}")
    if key.startswith("."):
        raise InvalidKeyError(f"Resource key {key!r} must not start with '.'")
    if key.endswith(EXPIRY_FILE_EXT):
        raise InvalidKeyError(
            f"Resource key {key!r} must not end with {EXPIRY_FILE_EXT!r}"
        )
    return key


class CachePaths:
    """Resolve resource keys to paths under a cache root.

    Pure: no I/O is performed.

    Args:
        root: The cache root directory.
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def content_path(self, key: str) -> Path:
        """Path of the raw content file for *key*."""
        return self._root / validate_key(key)

    def meta_path(self, key: str) -> Path:
        """Path of the expiry metadata file for *key*."""
        return self.content_path(key).with_name(key + EXPIRY_FILE_EXT)

    @staticmethod
    def key_for_meta_name(name: str) -> str | None:
        """Return the key a metadata file name belongs to, or ``None``."""
        if name.endswith(EXPIRY_FILE_EXT) and len(name) > len(EXPIRY_FILE_EXT):
            return name[: -len(EXPIRY_FILE_EXT)]
        return None

    @staticmethod
    def is_content_name(name: str) -> bool:
        """Whether a directory entry name is a content file (not metadata or temp)."""
        return not name.startswith(".") and not name.endswith(EXPIRY_FILE_EXT)
