"""Validation of LLM summary responses and conversion to price records."""

import json
import math
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from pricelist_ingestion.models.document_summary import (
    DocumentSummary,
    DocumentSummaryItem,
    DocumentSummaryMetadata,
)
from pricelist_ingestion.models.parse_context import ParseContext
from pricelist_ingestion.models.price_record import PriceRecord, PriceRecordMetadata, PriceTier
from pricelist_ingestion.parsers.price_variants import normalize_tier, normalize_unit
from pricelist_ingestion.parsers.record_builder import build_record_id
from pricelist_ingestion.services.facility_resolver import build_facility_id, resolve_facility_name
from pricelist_ingestion.services.procedure_codes import build_procedure_code
from pricelist_ingestion.services.tag_hydration import apply_curated_tags

logger = structlog.get_logger(__name__)

_PRICE_NOISE_RE = re.compile(r"[,₦$]")
_CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")

CATEGORY_RULES = (
    ("Imaging", ("mri", "ct", "scan", "x-ray", "xray", "ultrasound", "radiology")),
    ("Laboratory", ("lab", "test", "blood", "urine", "specimen", "hematology", "haematology")),
    ("Pharmacy", ("drug", "medication", "pharmacy", "injection", "infusion")),
    ("Dental", ("dental", "tooth", "teeth", "oral")),
    ("Maternity", ("antenatal", "pregnancy", "delivery", "maternity", "obstetric")),
    ("Surgery", ("surgery", "surgical", "operation", "theatre")),
    ("Consultation", ("consultation", "clinic", "appointment", "review")),
    ("Emergency", ("emergency", "casualty", "trauma")),
    ("Administrative", ("registration", "card", "folder", "report", "certificate", "leave")),
)
DEFAULT_CATEGORY = "General"


def _keyword_in(keyword: str, text: str) -> bool:
    # Short keywords ("ct", "lab") must be whole words: "injection" is not a CT.
    if len(keyword) <= 3:
        return re.search(rf"\b{re.escape(keyword)}\b", text) is not None
    return keyword in text


def infer_category(description: str) -> Optional[str]:
    """Keyword-based category for items the model left uncategorised."""
    lower = (description or "").lower()
    if not lower:
        return None
    for category, keywords in CATEGORY_RULES:
        if any(_keyword_in(keyword, lower) for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def normalize_price(value: Any) -> Optional[Decimal]:
    """Finite non-negative Decimal from a number or "₦1,500.00"-style string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        price = Decimal(str(value))
    elif isinstance(value, str):
        try:
            price = Decimal(_PRICE_NOISE_RE.sub("", value).strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not price.is_finite() or price < 0:
        return None
    return price


def _clean_str(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _normalize_item(item: Any) -> Optional[DocumentSummaryItem]:
    if not isinstance(item, dict):
        return None
    description = _clean_str(item.get("description"))
    price = normalize_price(item.get("price"))
    if not description or price is None:
        return None
    return DocumentSummaryItem(
        description=description,
        price=price,
        currency=_clean_str(item.get("currency")),
        unit=_clean_str(item.get("unit")),
        tier=_clean_str(item.get("tier")),
        category=_clean_str(item.get("category")) or infer_category(description),
        notes=_clean_str(item.get("notes")),
        raw_row=item.get("rawRow") if isinstance(item.get("rawRow"), str) else None,
    )


def parse_document_summary_response(
    raw: str,
    source_file: str,
    threshold: Optional[float] = None,
) -> Optional[DocumentSummary]:
    """Validate a model response; None when it is unusable.

    The response is rejected when it is not a JSON object, has no facility
    name, has no items with a description and a finite non-negative price,
    or names a facility the resolver rejects.
    """
    log = logger.bind(source_file=source_file)
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        log.warning("summary_response_not_json")
        return None
    if not isinstance(parsed, dict):
        log.warning("summary_response_not_object")
        return None

    facility_name = parsed.get("facilityName") or parsed.get("facility_name")
    raw_items = parsed.get("items") if isinstance(parsed.get("items"), list) else []
    if not facility_name or not raw_items:
        log.warning("summary_response_incomplete", has_facility=bool(facility_name), item_count=len(raw_items))
        return None

    items: List[DocumentSummaryItem] = []
    for raw_item in raw_items:
        item = _normalize_item(raw_item)
        if item is None:
            log.debug("summary_item_dropped", item=raw_item)
            continue
        items.append(item)
    if not items:
        log.warning("summary_response_no_valid_items")
        return None

    resolved = resolve_facility_name(str(facility_name).strip(), source_file, threshold=threshold)
    if not resolved:
        log.warning("summary_facility_rejected", facility_name=facility_name)
        return None

    meta = parsed.get("documentMetadata") if isinstance(parsed.get("documentMetadata"), dict) else {}
    try:
        metadata = DocumentSummaryMetadata(
            source_file=meta.get("sourceFile") or source_file or "unknown",
            extracted_at=meta.get("extractedAt") or datetime.now(timezone.utc).isoformat(),
            model=meta.get("model") or "unknown",
            tokens_used=meta.get("tokensUsed"),
            confidence=meta.get("confidence"),
            warnings=meta.get("warnings"),
        )
        return DocumentSummary(
            facility_name=resolved,
            currency=_clean_str(parsed.get("currency")),
            effective_date=_clean_str(parsed.get("effectiveDate")),
            items=items,
            document_metadata=metadata,
        )
    except PydanticValidationError as e:
        log.warning("summary_response_invalid", error=str(e))
        return None


def parse_effective_date(value: Optional[str]) -> Optional[datetime]:
    """ISO date or datetime string; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _currency(value: Optional[str]) -> Optional[str]:
    if value and _CURRENCY_RE.match(value.strip()):
        return value.strip().upper()
    return None


def summary_to_price_records(summary: DocumentSummary, context: ParseContext) -> List[PriceRecord]:
    """Convert a summary into tagged records shaped like row-parsed ones."""
    candidate = context.mapped_facility_name() or summary.facility_name or context.facility_name
    facility_name = resolve_facility_name(
        candidate,
        context.source_file,
        threshold=context.facility_inference_threshold,
        explicit_mapping=context.explicit_facility_mapping,
    )
    if not facility_name:
        return []

    facility_id = build_facility_id(context.provider_id, facility_name) or None
    now = datetime.now(timezone.utc)
    effective_date = parse_effective_date(summary.effective_date) or context.default_effective_date or now
    default_currency = _currency(summary.currency) or context.currency
    source_file = summary.document_metadata.source_file or context.source_file

    records = []
    for index, item in enumerate(summary.items):
        tier = normalize_tier(item.tier)
        if item.price == 0 and tier is None:
            tier = PriceTier.FREE
        records.append(
            PriceRecord(
                id=build_record_id(facility_name, item.description, item.price, tier, index),
                facility_name=facility_name,
                facility_id=facility_id,
                procedure_code=build_procedure_code(item.description, index),
                procedure_description=item.description,
                procedure_category=item.category,
                procedure_details=item.notes,
                price=item.price,
                currency=_currency(item.currency) or default_currency,
                effective_date=effective_date,
                last_updated=now,
                source=context.provider_id,
                metadata=PriceRecordMetadata(
                    source_file=source_file,
                    category=item.category,
                    unit=normalize_unit(item.unit),
                    price_tier=tier,
                    raw_row=item.raw_row,
                    document_metadata=summary.document_metadata,
                ),
            )
        )

    logger.info(
        "summary_converted",
        source_file=source_file,
        facility_name=facility_name,
        record_count=len(records),
    )
    return apply_curated_tags(records)
