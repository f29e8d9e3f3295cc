"""Repository protocol: store-agnostic document repository interface."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Protocol, TypeVar, runtime_checkable

from ninja_docstore.search import IndexDefinition, SearchQuery, SearchResult

M = TypeVar("M")


@runtime_checkable
class Repository(Protocol[M]):
    """Typed document repository with optimistic locking and index search.

    Records are addressed by their identifier field and guarded by their
    version field. Every I/O method is a single request/response exchange and
    accepts an optional ``timeout`` in seconds.
    """

    def new_entity(self, **fields: Any) -> M:
        """Build a new record with a fresh identifier and version ``0``."""
        ...

    async def fetch(self, id: str, *, timeout: float | None = None) -> M:
        """Read a record by identifier."""
        ...

    async def fetch_cache(self, id: str, ttl: float | timedelta, *, timeout: float | None = None) -> M:
        """Read a record, accepting a cached copy up to *ttl* old."""
        ...

    async def save(self, entity: M, *, timeout: float | None = None) -> int:
        """Write a record if its version is current. Returns the new version."""
        ...

    async def remove(self, id: str, *, timeout: float | None = None) -> None:
        """Delete a record unconditionally."""
        ...

    async def create_index(self, definition: IndexDefinition, *, timeout: float | None = None) -> None:
        """Create the search index over this repository's records."""
        ...

    async def drop_index(self, *, timeout: float | None = None) -> None:
        """Drop the search index."""
        ...

    async def search(self, query: SearchQuery | None = None, *, timeout: float | None = None) -> SearchResult[M]:
        """Search the index and decode matching records."""
        ...
