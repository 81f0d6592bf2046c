"""Document payload models for the CRPT document create call.

Attribute names are snake_case; the JSON keys follow the service's wire
format, which mixes snake_case (``doc_id``) and camelCase (``importRequest``,
``participantInn``).  Serialise with :meth:`Document.to_json`, which always
writes the wire names.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from CrptApi.errors import SerializationError

__all__ = ["Description", "Product", "Document"]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class Description(_WireModel):
    """Document description block."""

    participant_inn: Optional[str] = Field(default=None, alias="participantInn")


class Product(_WireModel):
    """One product line of a document."""

    certificate_document: Optional[str] = None
    certificate_document_date: Optional[str] = None
    certificate_document_number: Optional[str] = None
    owner_inn: Optional[str] = None
    producer_inn: Optional[str] = None
    production_date: Optional[str] = None
    tnved_code: Optional[str] = None
    uit_code: Optional[str] = None
    uitu_code: Optional[str] = None


class Document(_WireModel):
    """Goods introduction document sent to the document create endpoint."""

    description: Optional[Description] = None
    doc_id: Optional[str] = None
    doc_status: Optional[str] = None
    doc_type: Optional[str] = None
    import_request: bool = Field(default=False, alias="importRequest")
    owner_inn: Optional[str] = None
    participant_inn: Optional[str] = None
    producer_inn: Optional[str] = None
    production_date: Optional[str] = None
    production_type: Optional[str] = None
    products: List[Product] = Field(default_factory=list)
    reg_date: Optional[str] = None
    reg_number: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Document":
        """Validate a wire-format (or attribute-named) mapping.

        Raises:
            SerializationError: If the mapping does not describe a document
        """
        try:
            return cls.model_validate(dict(data))
        except PydanticValidationError as exc:
            raise SerializationError(f"Invalid document payload: {exc}") from exc

    def to_json(self) -> str:
        """Serialise using the wire field names."""
        return self.model_dump_json(by_alias=True)
