"""Client-side document cache used by ``fetch_cache``.

The cache maps store keys to raw JSON documents with a per-entry expiry.
Implement :class:`DocumentCache` to plug in a shared or server-assisted
cache; :class:`InMemoryDocumentCache` is the default, per-process backend.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class DocumentCache(Protocol):
    """Protocol for pluggable document caches."""

    def get(self, key: str, max_age: float | None = None) -> str | None:
        """Return the cached document for *key*, or ``None`` if absent or expired.

        When *max_age* is given, an entry cached more than *max_age* seconds
        ago is treated as absent even if its own TTL has not run out.
        """
        ...

    def set(self, key: str, document: str, ttl: float) -> None:
        """Cache *document* under *key* for at most *ttl* seconds."""
        ...

    def invalidate(self, key: str) -> None:
        """Drop any cached document for *key*."""
        ...


class InMemoryDocumentCache:
    """Per-process TTL cache with passive expiry.

    Entries expire after their own TTL, and a reader may ask for a tighter
    bound with ``max_age``. A lazy cleanup pass runs at most every
    ``cleanup_interval_seconds`` to evict expired entries that are never read
    again, and ``max_entries`` bounds memory by evicting the entries
    closest to expiry first.

    Args:
        max_entries: Upper bound on cached documents. Defaults to 10000.
        cleanup_interval_seconds: Minimum seconds between cleanup passes.
    """

    def __init__(self, max_entries: int = 10000, cleanup_interval_seconds: float = 60) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        # key -> (stored_at, expires_at, document), monotonic seconds
        self._entries: dict[str, tuple[float, float, str]] = {}
        self._max_entries = max_entries
        self._cleanup_interval = cleanup_interval_seconds
        self._last_cleanup: float = time.monotonic()

    def __len__(self) -> int:
        return len(self._entries)

    def _maybe_cleanup(self, now: float) -> None:
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        expired = [key for key, (_, exp, _) in self._entries.items() if exp <= now]
        for key in expired:
            del self._entries[key]

    def get(self, key: str, max_age: float | None = None) -> str | None:
        now = time.monotonic()
        self._maybe_cleanup(now)
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, expires_at, document = entry
        if expires_at <= now:
            self._entries.pop(key, None)
            return None
        if max_age is not None and now - stored_at > max_age:
            return None
        return document

    def set(self, key: str, document: str, ttl: float) -> None:
        now = time.monotonic()
        self._maybe_cleanup(now)
        self._entries[key] = (now, now + ttl, document)
        if len(self._entries) > self._max_entries:
            overflow = len(self._entries) - self._max_entries
            for victim in sorted(self._entries, key=lambda k: self._entries[k][1])[:overflow]:
                del self._entries[victim]

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
