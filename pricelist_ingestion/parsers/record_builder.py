"""Assembly of PriceRecord objects from parsed rows."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pricelist_ingestion.models.price_record import (
    BreakdownItem,
    PriceRecord,
    PriceRecordMetadata,
    PriceTier,
)
from pricelist_ingestion.parsers.price_variants import PriceVariant, extract_unit
from pricelist_ingestion.parsers.region_detector import HeaderMap
from pricelist_ingestion.services.procedure_codes import build_procedure_code

RECORD_ID_MAX_LENGTH = 80

_ID_SEPARATOR_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class PreparedDocument:
    """Rows plus everything resolved once per document before row parsing."""
    normalized_rows: List[List[str]]
    raw_rows: List[List[str]]
    header_index: int
    header_map: HeaderMap
    facility_name: str
    facility_id: Optional[str]
    effective_date: datetime
    currency: str
    provider_id: str
    source_file: Optional[str] = None
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def format_price(price: Decimal) -> str:
    """Shortest plain rendering of a price ("5000", "2500.5")."""
    if price == price.to_integral_value():
        return str(int(price))
    return format(price.normalize(), "f")


def build_record_id(
    facility_name: str,
    description: str,
    price: Decimal,
    tier: Optional[PriceTier],
    index: int,
) -> str:
    """Slug of facility/description/price/tier/row, at most 80 characters."""
    tier_value = tier.value if tier else "base"
    base = f"{facility_name}-{description}-{format_price(price)}-{tier_value}-{index}"
    return _ID_SEPARATOR_RE.sub("-", base.lower()).strip("-")[:RECORD_ID_MAX_LENGTH]


class RecordBuilder:
    """Builds records for one prepared document."""

    def __init__(self, document: PreparedDocument):
        self.document = document

    def build(
        self,
        description: str,
        variant: PriceVariant,
        row_index: int,
        area: Optional[str] = None,
        category: Optional[str] = None,
        breakdown: Optional[List[BreakdownItem]] = None,
    ) -> PriceRecord:
        doc = self.document
        items = breakdown if breakdown is not None else variant.breakdown
        metadata = PriceRecordMetadata(
            source_file=doc.source_file,
            area=area,
            category=category,
            unit=variant.unit or extract_unit(description),
            price_tier=variant.tier,
            raw_price_text=variant.raw_text,
            price_qualifier=variant.qualifier,
            row_number=row_index + 1,
            breakdown=items or None,
        )
        return PriceRecord(
            id=build_record_id(doc.facility_name, description, variant.price, variant.tier, row_index),
            facility_name=doc.facility_name,
            facility_id=doc.facility_id or None,
            procedure_code=build_procedure_code(description, row_index),
            procedure_description=description,
            procedure_category=category or area,
            price=variant.price,
            currency=doc.currency,
            effective_date=doc.effective_date,
            last_updated=doc.last_updated,
            source=doc.provider_id,
            metadata=metadata,
        )
