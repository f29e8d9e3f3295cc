"""Store key and index naming."""

from __future__ import annotations

from ulid import ULID

INDEX_PREFIX = "jsonidx:"


def store_key(prefix: str, id: str) -> str:
    """Return the key holding the document ``id`` under ``prefix``.

    >>> store_key("user", "01HZX")
    'user:01HZX'
    """
    return f"{prefix}:{id}"


def index_name(prefix: str) -> str:
    """Return the search index name covering every key under ``prefix``.

    >>> index_name("user")
    'jsonidx:user'
    """
    return INDEX_PREFIX + prefix


def new_id() -> str:
    """Generate a new lexicographically sortable identifier (ULID)."""
    return str(ULID())
