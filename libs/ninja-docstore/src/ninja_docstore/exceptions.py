"""Domain exceptions for the document repository layer.

All ``redis`` driver exceptions are caught and re-raised as one of these
domain exceptions so that upstream callers never see raw store errors.
"""

from __future__ import annotations


class SchemaError(TypeError):
    """Raised when a record type cannot be bound to a repository.

    The type must carry exactly one ``Key`` field of type ``str`` and exactly
    one ``Version`` field of type ``int``.
    """


class PersistenceError(Exception):
    """Base exception for all repository operation errors.

    Attributes:
        entity_name: The name of the record type involved.
        operation: The operation that failed (e.g. ``"save"``, ``"fetch"``).
        detail: A sanitised description of what went wrong.
    """

    def __init__(
        self,
        *,
        entity_name: str,
        operation: str,
        detail: str,
        cause: Exception | None = None,
    ) -> None:
        self.entity_name = entity_name
        self.operation = operation
        self.detail = detail
        msg = f"[{entity_name}] {operation} failed: {detail}"
        super().__init__(msg)
        if cause is not None:
            self.__cause__ = cause


class EntityNotFoundError(PersistenceError):
    """Raised when no document exists at the requested key."""


class VersionMismatchError(PersistenceError):
    """Raised when an optimistic save loses against a concurrent writer.

    The stored document was not modified. Re-fetch, re-apply the change and
    save again.
    """


class ConnectionFailedError(PersistenceError):
    """Raised when the store cannot be reached or the call timed out.

    The effect of the operation on the store is unknown.
    """


class SerializationError(PersistenceError):
    """Raised when a record cannot be encoded to, or decoded from, JSON."""


class QueryError(PersistenceError):
    """Raised when the store rejects a command (bad index schema, bad query)."""
