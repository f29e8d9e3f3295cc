"""Ninja Docstore: typed JSON document repositories over Redis with optimistic locking."""

from ninja_docstore.adapters.redis_json import JSONRepository
from ninja_docstore.cache import DocumentCache, InMemoryDocumentCache
from ninja_docstore.codec import DocumentCodec
from ninja_docstore.connections import ConnectionManager, ConnectionProfile, InvalidConnectionURL
from ninja_docstore.exceptions import (
    ConnectionFailedError,
    EntityNotFoundError,
    PersistenceError,
    QueryError,
    SchemaError,
    SerializationError,
    VersionMismatchError,
)
from ninja_docstore.keys import index_name, new_id, store_key
from ninja_docstore.protocols import Repository
from ninja_docstore.schema import Key, RecordSchema, Version
from ninja_docstore.scripts import JSON_SAVE_SCRIPT
from ninja_docstore.search import (
    FieldKind,
    IndexDefinition,
    IndexField,
    SearchHit,
    SearchQuery,
    SearchResponse,
    SearchResult,
)

__all__ = [
    "JSON_SAVE_SCRIPT",
    "ConnectionFailedError",
    "ConnectionManager",
    "ConnectionProfile",
    "DocumentCache",
    "DocumentCodec",
    "EntityNotFoundError",
    "FieldKind",
    "IndexDefinition",
    "IndexField",
    "InMemoryDocumentCache",
    "InvalidConnectionURL",
    "JSONRepository",
    "Key",
    "PersistenceError",
    "QueryError",
    "RecordSchema",
    "Repository",
    "SchemaError",
    "SearchHit",
    "SearchQuery",
    "SearchResponse",
    "SearchResult",
    "SerializationError",
    "Version",
    "VersionMismatchError",
    "index_name",
    "new_id",
    "store_key",
]
