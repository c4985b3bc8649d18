"""
Document records submitted to the CRPT "create document" endpoint.

Attributes are snake_case in Python and camelCase on the wire. Both spellings
are accepted on construction.
"""

from typing import Any, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Product(BaseModel):
    """A line item of a document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    certificate_document: Optional[str] = Field(None, alias="certificateDocument")
    certificate_document_date: Optional[str] = Field(None, alias="certificateDocumentDate")
    certificate_document_number: Optional[str] = Field(None, alias="certificateDocumentNumber")
    owner_inn: Optional[str] = Field(None, alias="ownerInn")
    producer_inn: Optional[str] = Field(None, alias="producerInn")
    production_date: Optional[str] = Field(None, alias="productionDate")
    tnved_code: Optional[str] = Field(None, alias="tnvedCode")
    uit_code: Optional[str] = Field(None, alias="uitCode")
    uitu_code: Optional[str] = Field(None, alias="uituCode")


class Document(BaseModel):
    """A goods introduction document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    participant_inn: Optional[str] = Field(None, alias="participantInn")
    doc_id: Optional[str] = Field(None, alias="docId")
    doc_status: Optional[str] = Field(None, alias="docStatus")
    doc_type: Optional[str] = Field(None, alias="docType")
    import_request: bool = Field(False, alias="importRequest")
    owner_inn: Optional[str] = Field(None, alias="ownerInn")
    participant_inn2: Optional[str] = Field(None, alias="participantInn2")
    producer_inn: Optional[str] = Field(None, alias="producerInn")
    production_date: Optional[str] = Field(None, alias="productionDate")
    production_type: Optional[str] = Field(None, alias="productionType")
    products: Tuple[Product, ...] = Field(default_factory=tuple, alias="products")
    reg_date: Optional[str] = Field(None, alias="regDate")
    reg_number: Optional[str] = Field(None, alias="regNumber")

    @field_validator("products", mode="before")
    @classmethod
    def _none_products_as_empty(cls, value: Any) -> Any:
        return () if value is None else value

    def to_json(self) -> str:
        """Encode using wire field names."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, payload: Union[str, bytes]) -> "Document":
        """Decode a wire-format document."""
        return cls.model_validate_json(payload)
