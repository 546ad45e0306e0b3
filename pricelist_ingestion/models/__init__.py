"""Pydantic validation models."""

from pricelist_ingestion.models.document_summary import (
    DocumentSummaryItem,
    DocumentSummaryMetadata,
    DocumentSummary,
    DocumentSummaryCacheRecord,
)
from pricelist_ingestion.models.price_record import (
    PriceUnit,
    PriceTier,
    BreakdownItem,
    PriceRecordMetadata,
    CuratedTagMetadata,
    TagMetadata,
    PriceRecord,
)
from pricelist_ingestion.models.parse_context import ParseContext
from pricelist_ingestion.models.ingestion_result import (
    IngestionFile,
    FileIngestionResult,
    IngestionResult,
)

__all__ = [
    "DocumentSummaryItem",
    "DocumentSummaryMetadata",
    "DocumentSummary",
    "DocumentSummaryCacheRecord",
    "PriceUnit",
    "PriceTier",
    "BreakdownItem",
    "PriceRecordMetadata",
    "CuratedTagMetadata",
    "TagMetadata",
    "PriceRecord",
    "ParseContext",
    "IngestionFile",
    "FileIngestionResult",
    "IngestionResult",
]
