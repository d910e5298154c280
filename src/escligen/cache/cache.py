"""Disk-based cache for downloaded specification documents.

Uses :mod:`diskcache` to keep the raw text of a fetched ``schema.json``
on the filesystem with a time-to-live, so repeated generation runs against
the same branch do not download tens of megabytes every time.

Cache keys are SHA-256 hashes of the source URL. Local files and stdin are
never cached.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Optional

import diskcache


class SchemaCache:
    """Disk-backed cache of specification documents keyed by URL.

    Args:
        cache_dir: Root directory for the cache. A ``schemas/``
            subdirectory is created inside it.
        ttl_seconds: Lifetime of an entry. ``0`` disables caching.

    Example::

        cache = SchemaCache(get_cache_dir(), ttl_seconds=3600)
        text = cache.get(url)
        if text is None:
            text = download(url)
            cache.set(url, text)
    """

    def __init__(self, cache_dir: str | Path, ttl_seconds: int = 86400) -> None:
        self._ttl = ttl_seconds
        self._cache: Optional[diskcache.Cache] = None
        if ttl_seconds > 0:
            self._cache = diskcache.Cache(str(Path(cache_dir) / "schemas"))

    def get(self, url: str) -> Optional[str]:
        """Return the cached document text for *url*, or ``None`` on a miss."""
        if self._cache is None:
            return None
        return self._cache.get(self._make_key(url))

    def set(self, url: str, content: str) -> None:
        """Store *content* for *url* with the configured TTL."""
        if self._cache is None:
            return
        self._cache.set(self._make_key(url), content, expire=self._ttl)

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`."""
        if self._cache is not None:
            self._cache.close()

    def __enter__(self) -> "SchemaCache":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @staticmethod
    def _make_key(url: str) -> str:
        return hashlib.sha256(url.encode()).hexdigest()
