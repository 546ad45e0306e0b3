"""Pydantic models for batch ingestion input and results."""
from typing import List, Optional

from pydantic import BaseModel, Field

from pricelist_ingestion.models.price_record import PriceRecord


class IngestionFile(BaseModel):
    """One file to ingest, with an optional operator facility override."""

    path: str = Field(..., min_length=1)
    facility_name: Optional[str] = None


class FileIngestionResult(BaseModel):
    """Outcome of ingesting a single file.

    Attributes:
        path: Path as given in the request
        source_file: File name used for provenance and facility mapping
        method: "llm" or "rows" when records were produced, else None
        record_count: Number of records emitted for the file
        error: Reason the file was skipped, if it was
    """
    path: str
    source_file: str
    method: Optional[str] = None
    record_count: int = Field(default=0, ge=0)
    error: Optional[str] = None


class IngestionResult(BaseModel):
    """Result of a batch ingestion run, in input order."""

    records: List[PriceRecord] = Field(default_factory=list)
    files: List[FileIngestionResult] = Field(default_factory=list)

    @property
    def errors(self) -> List[str]:
        return [f"{item.source_file}: {item.error}" for item in self.files if item.error]

    @property
    def files_failed(self) -> int:
        return sum(1 for item in self.files if item.error)
