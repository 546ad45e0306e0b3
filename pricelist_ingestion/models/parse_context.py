"""Immutable per-invocation parse context."""
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from pricelist_ingestion.config import parser_settings


class ParseContext(BaseModel):
    """Operator-supplied context for parsing one document.

    A context is frozen once built. ``explicit_facility_mapping`` maps a
    source file name to a facility name and wins over every inference step.
    """

    facility_name: Optional[str] = None
    source_file: Optional[str] = None
    currency: str = Field(
        default_factory=lambda: parser_settings.default_currency,
        min_length=3,
        max_length=3,
    )
    default_effective_date: Optional[datetime] = None
    explicit_facility_mapping: Dict[str, str] = Field(default_factory=dict)
    facility_inference_threshold: float = Field(
        default_factory=lambda: parser_settings.facility_inference_threshold,
        ge=0.0,
        le=1.0,
    )
    provider_id: str = Field(default_factory=lambda: parser_settings.provider_id)

    model_config = ConfigDict(frozen=True)

    def mapped_facility_name(self) -> Optional[str]:
        """Return the explicit mapping for this context's source file, if any."""
        if not self.source_file:
            return None
        return self.explicit_facility_mapping.get(self.source_file) or None
