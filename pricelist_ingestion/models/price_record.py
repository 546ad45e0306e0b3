"""Pydantic models for normalized price records."""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pricelist_ingestion.models.document_summary import DocumentSummaryMetadata


class PriceUnit(str, Enum):
    """Billing unit detected from description or price text."""
    PER_DAY = "per_day"
    PER_HOUR = "per_hour"
    PER_WEEK = "per_week"
    PER_MONTH = "per_month"


class PriceTier(str, Enum):
    """Sub-population pricing qualifier."""
    ADULT = "adult"
    PAEDIATRIC = "paediatric"
    EXECUTIVE = "executive"
    PRIVATE = "private"
    GENERAL = "general"
    FREE = "free"


class _RecordModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class BreakdownItem(_RecordModel):
    """One labelled line of a cost breakdown that sums to a TOTAL."""

    label: str
    amount: Decimal = Field(..., ge=0)


class PriceRecordMetadata(_RecordModel):
    """Extraction context kept alongside each record for audit."""

    source_file: Optional[str] = None
    area: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[PriceUnit] = None
    price_tier: Optional[PriceTier] = None
    raw_price_text: Optional[str] = None
    price_qualifier: Optional[str] = None
    row_number: Optional[int] = Field(default=None, ge=1)
    breakdown: Optional[List[BreakdownItem]] = None
    raw_row: Optional[str] = None
    document_metadata: Optional[DocumentSummaryMetadata] = None


class CuratedTagMetadata(_RecordModel):
    """Provenance of hydrated tags."""

    sources: List[str] = Field(default_factory=list)
    facility_tags: List[str] = Field(default_factory=list)
    rule_tags: List[str] = Field(default_factory=list)
    metadata_tags: List[str] = Field(default_factory=list)
    matched_rules: List[str] = Field(default_factory=list)


class TagMetadata(_RecordModel):
    """Container for tag provenance, keyed by producer."""

    curated: Optional[CuratedTagMetadata] = None


class PriceRecord(_RecordModel):
    """Normalized priced procedure extracted from a price list.

    Every record carries a resolved facility name; records without one are
    never constructed. Prices are non-negative and quantized to 2 decimal
    places. A price of 0 only comes from an explicit "free" marker.
    """

    id: str = Field(..., min_length=1, max_length=80)
    facility_name: str = Field(..., min_length=1)
    facility_id: Optional[str] = None
    procedure_code: str = Field(..., min_length=1)
    procedure_description: str = Field(..., min_length=1)
    procedure_category: Optional[str] = None
    procedure_details: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    currency: str = Field(..., min_length=3, max_length=3)
    effective_date: datetime
    last_updated: datetime
    source: str
    metadata: PriceRecordMetadata = Field(default_factory=PriceRecordMetadata)
    tags: List[str] = Field(default_factory=list)
    tag_metadata: Optional[TagMetadata] = None

    @field_validator("price")
    @classmethod
    def validate_price_precision(cls, v: Decimal) -> Decimal:
        """Ensure price has at most 2 decimal places by quantizing."""
        return v.quantize(Decimal("0.01"))

    @field_validator("facility_name")
    @classmethod
    def validate_facility_name(cls, v: str) -> str:
        """Reject whitespace-only facility names."""
        if not v.strip():
            raise ValueError("facility_name must not be blank")
        return v.strip()
