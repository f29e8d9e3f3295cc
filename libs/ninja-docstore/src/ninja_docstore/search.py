"""Index definitions, search queries and search reply parsing for RediSearch.

Index and query options are explicit pydantic models, validated before
anything is sent to the store, and rendered to ``FT.CREATE`` / ``FT.SEARCH``
arguments.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, NamedTuple, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator

M = TypeVar("M")

# Field name under which RediSearch returns the whole JSON document.
WHOLE_DOCUMENT = "$"

# RediSearch's default MAXSEARCHRESULTS.
MAX_QUERY_LIMIT = 10000
# LIMIT 0 0 asks for the match count only.
MIN_QUERY_LIMIT = 0


def validate_limit(limit: int) -> int:
    """Validate and clamp the *limit* parameter for search queries.

    Raises ``ValueError`` for negative values.  Values exceeding
    ``MAX_QUERY_LIMIT`` (10000) are silently capped.
    """
    if limit < MIN_QUERY_LIMIT:
        raise ValueError(
            f"limit must be >= {MIN_QUERY_LIMIT}, got {limit}"
        )
    return min(limit, MAX_QUERY_LIMIT)


def validate_offset(offset: int) -> int:
    """Validate the *offset* parameter for search queries.

    Raises ``ValueError`` for negative values.
    """
    if offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")
    return offset


class FieldKind(str, Enum):
    """RediSearch field types usable on JSON documents."""

    TEXT = "TEXT"
    TAG = "TAG"
    NUMERIC = "NUMERIC"
    GEO = "GEO"


class IndexField(BaseModel):
    """One indexed JSON path."""

    path: str = Field(description="JSON path of the indexed value, e.g. '$.name'.")
    alias: str | None = Field(default=None, description="Attribute name used in queries.")
    kind: FieldKind = FieldKind.TEXT
    sortable: bool = False
    separator: str | None = Field(default=None, description="TAG separator character.")
    weight: float | None = Field(default=None, gt=0, description="TEXT field weight.")

    model_config = {"extra": "forbid"}

    @field_validator("path")
    @classmethod
    def _check_path(cls, v: str) -> str:
        if not v.startswith("$"):
            raise ValueError(f"Index field path must be a JSON path starting with '$', got '{v}'")
        return v

    @model_validator(mode="after")
    def _check_kind_options(self) -> IndexField:
        if self.separator is not None:
            if self.kind is not FieldKind.TAG:
                raise ValueError("separator is only valid on TAG fields")
            if len(self.separator) != 1:
                raise ValueError(f"separator must be a single character, got '{self.separator}'")
        if self.weight is not None and self.kind is not FieldKind.TEXT:
            raise ValueError("weight is only valid on TEXT fields")
        return self

    def to_args(self) -> list[str]:
        args = [self.path]
        if self.alias:
            args += ["AS", self.alias]
        args.append(self.kind.value)
        if self.separator is not None:
            args += ["SEPARATOR", self.separator]
        if self.weight is not None:
            args += ["WEIGHT", str(self.weight)]
        if self.sortable:
            args.append("SORTABLE")
        return args


class IndexDefinition(BaseModel):
    """Schema of the inverted index created over a repository's documents."""

    fields: list[IndexField] = Field(min_length=1)
    language: str | None = None
    stopwords: list[str] | None = Field(default=None, description="Empty list disables stopwords.")

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def _check_unique_names(self) -> IndexDefinition:
        seen: set[str] = set()
        for f in self.fields:
            name = f.alias or f.path
            if name in seen:
                raise ValueError(f"Duplicate index attribute '{name}'")
            seen.add(name)
        return self

    def to_args(self, index: str, key_prefix: str) -> list[str]:
        """Render the full ``FT.CREATE`` argument list."""
        args = [index, "ON", "JSON", "PREFIX", "1", key_prefix]
        if self.language:
            args += ["LANGUAGE", self.language]
        if self.stopwords is not None:
            args += ["STOPWORDS", str(len(self.stopwords)), *self.stopwords]
        args.append("SCHEMA")
        for f in self.fields:
            args += f.to_args()
        return args


class SearchQuery(BaseModel):
    """A full-text search request against a repository index."""

    query: str = Field(default="*", min_length=1)
    return_fields: list[str] = Field(
        default_factory=list,
        description="Projection; include '$' to receive whole documents. Empty returns whole documents.",
    )
    sort_by: str | None = None
    sort_ascending: bool = True
    offset: int = 0
    limit: int = 10
    params: dict[str, str | int | float] = Field(default_factory=dict)
    dialect: int | None = Field(default=None, ge=1)
    verbatim: bool = False

    model_config = {"extra": "forbid"}

    @field_validator("limit")
    @classmethod
    def _check_limit(cls, v: int) -> int:
        return validate_limit(v)

    @field_validator("offset")
    @classmethod
    def _check_offset(cls, v: int) -> int:
        return validate_offset(v)

    def to_args(self, index: str) -> list[Any]:
        """Render the full ``FT.SEARCH`` argument list."""
        args: list[Any] = [index, self.query]
        if self.verbatim:
            args.append("VERBATIM")
        if self.return_fields:
            args += ["RETURN", len(self.return_fields), *self.return_fields]
        if self.sort_by:
            args += ["SORTBY", self.sort_by, "ASC" if self.sort_ascending else "DESC"]
        args += ["LIMIT", self.offset, self.limit]
        if self.params:
            args += ["PARAMS", len(self.params) * 2]
            for name, value in self.params.items():
                args += [name, value]
        if self.dialect is not None:
            args += ["DIALECT", self.dialect]
        return args


class SearchHit(NamedTuple):
    """One result entry: the document key and its returned fields."""

    key: str
    fields: dict[str, str]


class SearchResponse(NamedTuple):
    """Parsed ``FT.SEARCH`` reply."""

    total: int
    hits: list[SearchHit]

    @classmethod
    def parse(cls, raw: Any) -> SearchResponse:
        """Parse a raw reply in either the RESP2 array or the RESP3 map shape.

        RESP2: ``[total, key1, [field, value, ...], key2, [...], ...]``.
        """
        if isinstance(raw, dict):
            return cls._parse_map(raw)
        if not isinstance(raw, (list, tuple)) or not raw:
            raise ValueError(f"Unexpected search reply of type {type(raw).__name__}")
        total = int(raw[0])
        hits = []
        for i in range(1, len(raw) - 1, 2):
            fields = raw[i + 1]
            if isinstance(fields, (list, tuple)):
                hits.append(SearchHit(_text(raw[i]), _pairs(fields)))
        return cls(total, hits)

    @classmethod
    def _parse_map(cls, raw: dict) -> SearchResponse:
        raw = {_text(k): v for k, v in raw.items()}
        hits = []
        for result in raw.get("results", []):
            result = {_text(k): v for k, v in result.items()}
            attrs = result.get("extra_attributes") or {}
            hits.append(SearchHit(_text(result.get("id", "")), {_text(k): _text(v) for k, v in attrs.items()}))
        return cls(int(raw.get("total_results", 0)), hits)


class SearchResult(NamedTuple, Generic[M]):
    """Decoded search outcome; ``len(items) <= total``."""

    total: int
    items: list[M]


def _pairs(flat: list | tuple) -> dict[str, str]:
    it = iter(flat)
    return {_text(k): _text(v) for k, v in zip(it, it)}


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)
