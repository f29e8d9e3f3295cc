"""JSON codec between record instances and stored documents."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError

from ninja_docstore.exceptions import SerializationError

M = TypeVar("M", bound=BaseModel)


class DocumentCodec(Generic[M]):
    """Encodes *model* instances to JSON text and decodes documents into new instances.

    Documents are written with field aliases so that the identifier and
    version fields appear under their document names.
    """

    def __init__(self, model: type[M]) -> None:
        self._model = model

    @property
    def model(self) -> type[M]:
        return self._model

    def encode(self, entity: M, *, operation: str = "encode") -> str:
        """Serialize the whole entity, identifier and version included."""
        if not isinstance(entity, self._model):
            raise TypeError(f"Expected an instance of {self._model.__name__}, got {type(entity).__name__}")
        try:
            return entity.model_dump_json(by_alias=True)
        except (PydanticSerializationError, ValueError, TypeError) as exc:
            raise SerializationError(
                entity_name=self._model.__name__,
                operation=operation,
                detail="Entity could not be serialized to JSON.",
                cause=exc,
            ) from exc

    def decode(self, document: str | bytes, *, operation: str = "decode") -> M:
        """Build a fresh instance from a JSON document."""
        try:
            return self._model.model_validate_json(document)
        except ValidationError as exc:
            raise SerializationError(
                entity_name=self._model.__name__,
                operation=operation,
                detail=f"Stored document does not match the schema ({exc.error_count()} error(s)).",
                cause=exc,
            ) from exc

    def build(self, data: dict, *, operation: str = "new_entity") -> M:
        """Validate a field mapping into a new instance."""
        try:
            return self._model.model_validate(data)
        except ValidationError as exc:
            raise SerializationError(
                entity_name=self._model.__name__,
                operation=operation,
                detail=f"Invalid field values ({exc.error_count()} error(s)).",
                cause=exc,
            ) from exc
