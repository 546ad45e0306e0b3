"""Tag hydration for price records.

Tags come from three sources, unioned:

- facility: curated tags of the alias table entry matching the facility
- rules: every ``TAG_RULES`` pattern matching description/code/category/area
- metadata: category, area, unit and tier values, plus "free" for price 0

Provenance is kept in ``tag_metadata.curated`` so re-running hydration on
already tagged records only ever adds tags.
"""

import re
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

import structlog

from pricelist_ingestion.data.tag_rules import TAG_RULES
from pricelist_ingestion.models.price_record import CuratedTagMetadata, PriceRecord, TagMetadata
from pricelist_ingestion.services.facility_resolver import match_facility_alias

logger = structlog.get_logger(__name__)

_NON_ALNUM_RUN_RE = re.compile(r"[^a-z0-9]+")


def normalize_tag(value: Optional[str]) -> str:
    """Lowercase, non-alphanumeric runs to "_", trimmed."""
    if not value:
        return ""
    return _NON_ALNUM_RUN_RE.sub("_", str(value).lower()).strip("_")


def _normalized(values: Iterable[Optional[str]]) -> List[str]:
    return [tag for tag in (normalize_tag(value) for value in values) if tag]


def _metadata_values(record: PriceRecord) -> List[Optional[str]]:
    metadata = record.metadata
    return [metadata.category, metadata.area, metadata.unit, metadata.price_tier]


def hydrate_tags(record: PriceRecord) -> Tuple[List[str], TagMetadata]:
    """Compute tags and provenance for one record (no merging)."""
    tags = set()
    sources = set()
    facility_tags = set()
    rule_tags = set()
    metadata_tags = set()
    matched_rules = set()

    facility = match_facility_alias(record.facility_name)
    if facility:
        facility_tags.update(_normalized(facility.tags))
        sources.update(facility.sources)

    metadata_tags.update(_normalized(_metadata_values(record)))

    text = " ".join(
        value
        for value in (
            record.procedure_description,
            record.procedure_code,
            record.metadata.category,
            record.metadata.area,
        )
        if value
    )
    for rule in TAG_RULES:
        if rule.pattern.search(text):
            matched_rules.add(rule.id)
            rule_tags.update(_normalized(rule.tags))

    if record.price == Decimal("0"):
        metadata_tags.add("free")

    tags.update(facility_tags, rule_tags, metadata_tags)

    curated = CuratedTagMetadata(
        sources=sorted(sources),
        facility_tags=sorted(facility_tags),
        rule_tags=sorted(rule_tags),
        metadata_tags=sorted(metadata_tags),
        matched_rules=sorted(matched_rules),
    )
    return sorted(tags), TagMetadata(curated=curated)


def merge_tags(existing: Optional[Iterable[str]], incoming: Iterable[str]) -> List[str]:
    merged = set(_normalized(existing or []))
    merged.update(_normalized(incoming))
    return sorted(merged)


def _merge_unique(existing: Iterable[str], incoming: Iterable[str]) -> List[str]:
    return sorted(set(existing) | set(incoming))


def merge_tag_metadata(existing: Optional[TagMetadata], incoming: TagMetadata) -> TagMetadata:
    """Union provenance lists; never drops an existing entry."""
    if existing is None or existing.curated is None:
        return incoming
    old, new = existing.curated, incoming.curated
    return TagMetadata(
        curated=CuratedTagMetadata(
            sources=_merge_unique(old.sources, new.sources),
            facility_tags=_merge_unique(old.facility_tags, new.facility_tags),
            rule_tags=_merge_unique(old.rule_tags, new.rule_tags),
            metadata_tags=_merge_unique(old.metadata_tags, new.metadata_tags),
            matched_rules=_merge_unique(old.matched_rules, new.matched_rules),
        )
    )


def attach_curated_tags(record: PriceRecord) -> PriceRecord:
    """Return a copy of ``record`` with hydrated tags merged in."""
    tags, tag_metadata = hydrate_tags(record)
    if not tags:
        return record
    return record.model_copy(
        update={
            "tags": merge_tags(record.tags, tags),
            "tag_metadata": merge_tag_metadata(record.tag_metadata, tag_metadata),
        }
    )


def apply_curated_tags(records: List[PriceRecord]) -> List[PriceRecord]:
    hydrated = [attach_curated_tags(record) for record in records]
    logger.debug("tags_hydrated", record_count=len(hydrated))
    return hydrated
