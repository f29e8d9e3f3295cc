"""Record schema binding: locate the identifier and version fields of a model.

A record type is a pydantic model that marks one ``str`` field with
:data:`Key` and one ``int`` field with :data:`Version`::

    class User(BaseModel):
        id: Annotated[str, Key] = ""
        ver: Annotated[int, Version] = 0
        name: str = ""

The on-document name of each tagged field is its alias when one is set,
otherwise the attribute name. A tagged field must read and write the same
name, so split validation and serialization aliases are rejected. The
version's document name is the JSON path used by the optimistic save script.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from pydantic.fields import FieldInfo

from ninja_docstore.exceptions import SchemaError


@dataclass(frozen=True)
class FieldTag:
    """Marker placed in ``Annotated[...]`` metadata to designate a field role."""

    role: str

    def __repr__(self) -> str:
        return f"FieldTag({self.role!r})"


Key = FieldTag("key")
Version = FieldTag("ver")


@dataclass(frozen=True)
class SchemaField:
    """A tagged model field: its Python attribute and its document name."""

    attr: str
    document_name: str


@dataclass(frozen=True)
class RecordSchema:
    """Immutable description of a record type, built once per model."""

    model: type[BaseModel]
    key: SchemaField
    version: SchemaField

    @property
    def name(self) -> str:
        return self.model.__name__

    @classmethod
    def from_model(cls, model: type[BaseModel]) -> RecordSchema:
        """Bind *model*, raising :class:`SchemaError` if its tags are invalid."""
        return _describe(model)

    def get_key(self, entity: BaseModel) -> str:
        return getattr(entity, self.key.attr)

    def get_version(self, entity: BaseModel) -> int:
        return getattr(entity, self.version.attr)

    def set_version(self, entity: BaseModel, value: int) -> None:
        setattr(entity, self.version.attr, value)


@functools.lru_cache(maxsize=None)
def _describe(model: type[BaseModel]) -> RecordSchema:
    if not (isinstance(model, type) and issubclass(model, BaseModel)):
        raise SchemaError(f"Record type must be a pydantic BaseModel subclass, got {model!r}")
    if model.model_config.get("frozen"):
        raise SchemaError(f"{model.__name__} is frozen; the version field must be writable")

    found: dict[str, list[tuple[str, FieldInfo]]] = {Key.role: [], Version.role: []}
    for attr, info in model.model_fields.items():
        for meta in info.metadata:
            if isinstance(meta, FieldTag) and meta.role in found:
                found[meta.role].append((attr, info))

    key = _single(model, found[Key.role], "Key", str)
    version = _single(model, found[Version.role], "Version", int)
    if key.attr == version.attr:
        raise SchemaError(f"{model.__name__}.{key.attr} cannot be both the Key and the Version field")
    if model.model_fields[version.attr].frozen:
        raise SchemaError(f"{model.__name__}.{version.attr} is frozen; the version field must be writable")
    return RecordSchema(model=model, key=key, version=version)


def _single(
    model: type[BaseModel],
    tagged: list[tuple[str, FieldInfo]],
    tag_name: str,
    expected: type,
) -> SchemaField:
    """Return the one field carrying *tag_name*, checking its declared type."""
    if not tagged:
        raise SchemaError(f"{model.__name__} has no field tagged with {tag_name}")
    if len(tagged) > 1:
        names = ", ".join(attr for attr, _ in tagged)
        raise SchemaError(f"{model.__name__} has more than one field tagged with {tag_name}: {names}")
    attr, info = tagged[0]
    if not _is_kind(info.annotation, expected):
        raise SchemaError(
            f"{model.__name__}.{attr} is tagged with {tag_name} and must be declared as "
            f"{expected.__name__}, got {info.annotation!r}"
        )
    written = info.serialization_alias or info.alias or attr
    read = info.validation_alias if info.validation_alias is not None else (info.alias or attr)
    if read != written:
        # decode reads the name encode writes.
        raise SchemaError(
            f"{model.__name__}.{attr} is tagged with {tag_name} and must use one name for reading and "
            f"writing, got validation alias {read!r} and serialization alias {written!r}"
        )
    return SchemaField(attr=attr, document_name=written)


def _is_kind(annotation: Any, expected: type) -> bool:
    if not isinstance(annotation, type) or not issubclass(annotation, expected):
        return False
    # bool is an int subclass but cannot carry a version counter.
    return not (expected is int and issubclass(annotation, bool))
