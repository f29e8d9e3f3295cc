"""RedisJSON + RediSearch adapter implementing the Repository protocol."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from datetime import timedelta
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ninja_docstore.cache import DocumentCache, InMemoryDocumentCache
from ninja_docstore.codec import DocumentCodec
from ninja_docstore.exceptions import (
    ConnectionFailedError,
    EntityNotFoundError,
    PersistenceError,
    QueryError,
    VersionMismatchError,
)
from ninja_docstore.keys import index_name, new_id, store_key
from ninja_docstore.schema import RecordSchema
from ninja_docstore.scripts import JSON_SAVE_SCRIPT
from ninja_docstore.search import WHOLE_DOCUMENT, IndexDefinition, SearchQuery, SearchResponse, SearchResult

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_TRANSPORT_ERRORS = (RedisConnectionError, RedisTimeoutError, asyncio.TimeoutError, OSError)


class JSONRepository(Generic[M]):
    """Document repository backed by RedisJSON.

    Each record of *model* is stored as a JSON document under
    ``{prefix}:{id}`` and indexed by RediSearch as ``jsonidx:{prefix}``.
    Saves are optimistic: a Lua script compares the stored version with the
    in-memory one and only writes when they match, so a stale copy can never
    overwrite a newer document.

    *model* must tag one ``str`` field with ``Key`` and one ``int`` field with
    ``Version`` (see :mod:`ninja_docstore.schema`); otherwise ``SchemaError``
    is raised here.

    Requires a ``redis.asyncio.Redis`` client connected to a server with the
    RedisJSON and RediSearch modules loaded.
    """

    def __init__(
        self,
        prefix: str,
        model: type[M],
        client: Redis,
        *,
        cache: DocumentCache | None = None,
    ) -> None:
        self._schema = RecordSchema.from_model(model)
        self._codec: DocumentCodec[M] = DocumentCodec(model)
        self._prefix = prefix
        self._index = index_name(prefix)
        self._client = client
        self._cache = cache if cache is not None else InMemoryDocumentCache()
        self._save_script = client.register_script(JSON_SAVE_SCRIPT)

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def index(self) -> str:
        return self._index

    @property
    def schema(self) -> RecordSchema:
        return self._schema

    def new_entity(self, **fields: Any) -> M:
        """Return a new record with a fresh ULID identifier and version ``0``.

        Payload fields take the model's defaults unless given as keyword
        arguments. Nothing is written to the store.
        """
        data = dict(fields)
        data[self._schema.key.document_name] = new_id()
        data[self._schema.version.document_name] = 0
        return self._codec.build(data)

    async def fetch(self, id: str, *, timeout: float | None = None) -> M:
        """Read the record stored under ``{prefix}:{id}``.

        Raises:
            EntityNotFoundError: If no document exists at that key.
            SerializationError: If the stored document does not match the model.
        """
        key = store_key(self._prefix, id)
        record = await self._call("fetch", self._client.execute_command("JSON.GET", key), timeout, id=id)
        if record is None:
            raise EntityNotFoundError(
                entity_name=self._schema.name,
                operation="fetch",
                detail=f"No document at key '{key}'.",
            )
        return self._codec.decode(record, operation="fetch")

    async def fetch_cache(self, id: str, ttl: float | timedelta, *, timeout: float | None = None) -> M:
        """Like :meth:`fetch`, but may serve a client-side cached copy up to *ttl* old."""
        seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
        if seconds <= 0:
            raise ValueError(f"ttl must be positive, got {ttl!r}")
        key = store_key(self._prefix, id)
        record = self._cache.get(key, max_age=seconds)
        if record is None:
            raw = await self._call("fetch_cache", self._client.execute_command("JSON.GET", key), timeout, id=id)
            if raw is None:
                raise EntityNotFoundError(
                    entity_name=self._schema.name,
                    operation="fetch_cache",
                    detail=f"No document at key '{key}'.",
                )
            record = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            self._cache.set(key, record, seconds)
        return self._codec.decode(record, operation="fetch_cache")

    async def save(self, entity: M, *, timeout: float | None = None) -> int:
        """Write *entity* if nobody has saved a newer version since it was read.

        On success the entity's version field is set to the new stored version,
        which is also returned.

        Raises:
            VersionMismatchError: If the stored version differs from the
                entity's. The entity and the stored document are unchanged.
        """
        schema = self._schema
        id = schema.get_key(entity)
        key = store_key(self._prefix, id)
        document = self._codec.encode(entity, operation="save")
        expected = str(schema.get_version(entity))
        reply = await self._call(
            "save",
            self._save_script(keys=[key], args=[schema.version.document_name, expected, document]),
            timeout,
            id=id,
        )
        self._cache.invalidate(key)
        if reply is None:
            logger.debug("Version conflict saving %s (id=%s, version=%s)", schema.name, id, expected)
            raise VersionMismatchError(
                entity_name=schema.name,
                operation="save",
                detail=f"Stored version of '{key}' is not {expected}; re-fetch and retry.",
            )
        version = int(reply)
        schema.set_version(entity, version)
        return version

    async def remove(self, id: str, *, timeout: float | None = None) -> None:
        """Delete the document under ``{prefix}:{id}``. Missing keys are not an error."""
        key = store_key(self._prefix, id)
        await self._call("remove", self._client.execute_command("DEL", key), timeout, id=id)
        self._cache.invalidate(key)

    async def create_index(self, definition: IndexDefinition, *, timeout: float | None = None) -> None:
        """Create the ``jsonidx:{prefix}`` index over every ``{prefix}:`` document."""
        args = definition.to_args(self._index, f"{self._prefix}:")
        await self._call("create_index", self._client.execute_command("FT.CREATE", *args), timeout)
        logger.info("Created index %s on %s:* (%d fields)", self._index, self._prefix, len(definition.fields))

    async def drop_index(self, *, timeout: float | None = None) -> None:
        """Drop the ``jsonidx:{prefix}`` index. Documents are kept."""
        await self._call("drop_index", self._client.execute_command("FT.DROPINDEX", self._index), timeout)
        logger.info("Dropped index %s", self._index)

    async def search(self, query: SearchQuery | None = None, *, timeout: float | None = None) -> SearchResult[M]:
        """Run *query* against the index and decode the matching records.

        Returns ``SearchResult(total, items)``. ``total`` is the number of
        matches in the store and may exceed ``len(items)``. Results without
        the whole document (``$``) in their returned fields are skipped, and
        ``items`` keeps the store's order.

        Raises:
            SerializationError: If any returned document fails to decode; no
                partial result is returned.
        """
        query = query or SearchQuery()
        raw = await self._call(
            "search", self._client.execute_command("FT.SEARCH", *query.to_args(self._index)), timeout
        )
        try:
            response = SearchResponse.parse(raw)
        except (ValueError, TypeError) as exc:
            raise QueryError(
                entity_name=self._schema.name,
                operation="search",
                detail="Unexpected search reply from the store.",
                cause=exc,
            ) from exc
        items = [
            self._codec.decode(hit.fields[WHOLE_DOCUMENT], operation="search")
            for hit in response.hits
            if WHOLE_DOCUMENT in hit.fields
        ]
        return SearchResult(response.total, items)

    async def _call(
        self,
        operation: str,
        awaitable: Awaitable[Any],
        timeout: float | None,
        *,
        id: str | None = None,
    ) -> Any:
        """Await a store command, translating driver errors into domain errors."""
        try:
            if timeout is None:
                return await awaitable
            return await asyncio.wait_for(awaitable, timeout)
        except _TRANSPORT_ERRORS as exc:
            logger.error(
                "Redis %s connection error for %s (id=%s): %s", operation, self._schema.name, id, type(exc).__name__
            )
            raise ConnectionFailedError(
                entity_name=self._schema.name,
                operation=operation,
                detail="Store unreachable or timed out; the operation may or may not have been applied.",
                cause=exc,
            ) from exc
        except ResponseError as exc:
            logger.error("Redis %s rejected for %s (id=%s): %s", operation, self._schema.name, id, exc)
            raise QueryError(
                entity_name=self._schema.name,
                operation=operation,
                detail=f"Store rejected the command: {exc}",
                cause=exc,
            ) from exc
        except RedisError as exc:
            logger.error("Redis %s failed for %s (id=%s): %s", operation, self._schema.name, id, type(exc).__name__)
            raise PersistenceError(
                entity_name=self._schema.name,
                operation=operation,
                detail="Store operation failed.",
                cause=exc,
            ) from exc
