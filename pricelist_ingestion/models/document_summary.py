"""Pydantic models for LLM document summaries and their cache records."""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Base model serialized with camelCase keys (LLM and cache wire format)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class DocumentSummaryItem(_CamelModel):
    """One priced line extracted by the LLM."""

    description: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    currency: Optional[str] = None
    unit: Optional[str] = None
    tier: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    raw_row: Optional[str] = None

    @field_validator("price")
    @classmethod
    def validate_price_precision(cls, v: Decimal) -> Decimal:
        """Quantize price to 2 decimal places."""
        return v.quantize(Decimal("0.01"))


class DocumentSummaryMetadata(_CamelModel):
    """Provenance of a document summary."""

    source_file: str
    extracted_at: str
    model: str
    tokens_used: Optional[int] = None
    confidence: Optional[float] = None
    warnings: Optional[List[str]] = None


class DocumentSummary(_CamelModel):
    """Structured summary of a whole price list document."""

    facility_name: str = Field(..., min_length=1)
    currency: Optional[str] = None
    effective_date: Optional[str] = None
    items: List[DocumentSummaryItem] = Field(..., min_length=1)
    document_metadata: DocumentSummaryMetadata


class DocumentSummaryCacheRecord(_CamelModel):
    """Cached summary keyed by the SHA-256 of the source file bytes."""

    file_hash: str = Field(..., min_length=64, max_length=64)
    source_file: str
    model: str
    extracted_at: str
    summary: DocumentSummary
