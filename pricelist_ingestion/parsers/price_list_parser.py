"""Row-based price list parsing.

Flow for one document:

1. Container rows -> flattened rows (header/description detection) and
   newline-preserving rows (price cells)
2. Header detection and column mapping
3. Facility name (explicit mapping > override > inferred from title rows >
   file name), resolved against the alias table; rejected facility -> no records
4. Layout dispatch: header-based (columnar/flat/headerless heuristics)
   or grouped parent/sub-item rows
5. Tag hydration
"""

import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path, PurePath
from typing import List, Optional, Union

import structlog

from pricelist_ingestion.config import parser_settings
from pricelist_ingestion.models.parse_context import ParseContext
from pricelist_ingestion.models.price_record import PriceRecord
from pricelist_ingestion.parsers.area_hierarchy import parse_area_hierarchy
from pricelist_ingestion.parsers.containers import (
    Rows,
    extract_raw_rows,
    normalize_cell,
    normalize_cell_preserve_newlines,
)
from pricelist_ingestion.parsers.continuation import merge_continuation_rows
from pricelist_ingestion.parsers.hierarchical import looks_grouped, parse_grouped_rows
from pricelist_ingestion.parsers.price_variants import expand_price_variants
from pricelist_ingestion.parsers.record_builder import PreparedDocument, RecordBuilder
from pricelist_ingestion.parsers.region_detector import (
    HeaderMap,
    build_header_map,
    find_description,
    find_header_row,
    find_price_text,
    is_blank_row,
)
from pricelist_ingestion.services.facility_resolver import (
    build_facility_id,
    filename_candidate,
    resolve_facility_name,
)
from pricelist_ingestion.services.tag_hydration import apply_curated_tags

logger = structlog.get_logger(__name__)

TITLE_SCAN_ROWS = 10
_YEAR_RE = re.compile(r"20\d{2}")
_FACILITY_MARKERS = ("hospital", "clinic", "medical center")
_LIST_TITLE_MARKERS = ("price list", "rate", "charges")
_KNOWN_ACRONYMS = ("lasuth",)


class DocumentLayout(str, Enum):
    COLUMNAR = "columnar"
    FLAT = "flat"
    HEADERLESS = "headerless"
    GROUPED = "grouped"


def build_context(file_path: Union[str, Path], context: Optional[ParseContext] = None) -> ParseContext:
    """Fill in the source file name from the path when the context lacks one."""
    source_file = PurePath(str(file_path)).name
    if context is None:
        return ParseContext(source_file=source_file)
    if context.source_file:
        return context
    return context.model_copy(update={"source_file": source_file})


def score_facility_candidate(value: str) -> float:
    """Heuristic confidence (0-1) that a title line names a facility."""
    lower = value.lower()
    score = 0.0
    if any(marker in lower for marker in _FACILITY_MARKERS):
        score += 0.6
    if "teaching" in lower or "university" in lower or "general" in lower:
        score += 0.2
    if any(marker in lower for marker in _LIST_TITLE_MARKERS):
        score -= 0.5
    if 10 < len(value) < 200:
        score += 0.1
    return min(max(score, 0.0), 1.0)


def infer_facility_name(
    title_rows: Rows,
    source_file: Optional[str] = None,
    minimum_confidence: float = 0.0,
) -> str:
    """Facility name from title rows, else from the file name ("" if neither)."""
    for row in title_rows:
        line = normalize_cell(" ".join(row))
        if not line:
            continue
        lower = line.lower()

        looks_like_facility = (
            any(marker in lower for marker in _FACILITY_MARKERS)
            and not any(marker in lower for marker in _LIST_TITLE_MARKERS)
            and 10 < len(line) < 200
        )
        if looks_like_facility or any(acronym in lower for acronym in _KNOWN_ACRONYMS):
            confidence = score_facility_candidate(line)
            if confidence >= minimum_confidence:
                logger.info("facility_name_inferred_from_content", candidate=line, confidence=confidence)
                return line
            logger.debug("facility_candidate_below_threshold", candidate=line, confidence=confidence)

    candidate = filename_candidate(source_file)
    if candidate:
        logger.info("facility_name_inferred_from_filename", candidate=candidate, source_file=source_file)
    return candidate


def infer_effective_date(title_rows: Rows, source_file: Optional[str] = None) -> datetime:
    """January 1st of the first 20xx year in the titles or file name, else now."""
    text = " ".join(" ".join(row) for row in title_rows)
    match = _YEAR_RE.search(text) or _YEAR_RE.search(source_file or "")
    if match:
        return datetime(int(match.group(0)), 1, 1, tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def detect_layout(header_index: int, header_map: HeaderMap, rows: Rows) -> DocumentLayout:
    if header_index >= 0:
        return DocumentLayout.COLUMNAR if header_map.area_index is not None else DocumentLayout.FLAT
    if looks_grouped(rows):
        return DocumentLayout.GROUPED
    return DocumentLayout.HEADERLESS


def prepare_document(rows: Rows, context: ParseContext) -> Optional[PreparedDocument]:
    """Resolve header, facility and dates; None when the facility is rejected."""
    normalized_rows = [[normalize_cell(cell) for cell in row] for row in rows]
    raw_rows = [[normalize_cell_preserve_newlines(cell) for cell in row] for row in rows]

    header_index = find_header_row(normalized_rows)
    header_map = build_header_map(normalized_rows[header_index]) if header_index >= 0 else HeaderMap()
    title_rows = normalized_rows[:header_index] if header_index > 0 else normalized_rows[:TITLE_SCAN_ROWS]

    candidate = context.mapped_facility_name() or context.facility_name
    if not candidate:
        candidate = infer_facility_name(
            title_rows,
            context.source_file,
            context.facility_inference_threshold,
        )

    facility_name = resolve_facility_name(
        candidate,
        context.source_file,
        threshold=context.facility_inference_threshold,
        explicit_mapping=context.explicit_facility_mapping,
    )
    if not facility_name:
        logger.warning(
            "price_list_skipped_facility_rejected",
            source_file=context.source_file,
            candidate=candidate,
        )
        return None

    effective_date = context.default_effective_date or infer_effective_date(title_rows, context.source_file)

    return PreparedDocument(
        normalized_rows=normalized_rows,
        raw_rows=raw_rows,
        header_index=header_index,
        header_map=header_map,
        facility_name=facility_name,
        facility_id=build_facility_id(context.provider_id, facility_name) or None,
        effective_date=effective_date,
        currency=context.currency,
        provider_id=context.provider_id,
        source_file=context.source_file,
    )


def parse_header_based_rows(document: PreparedDocument, builder: RecordBuilder) -> List[PriceRecord]:
    """Parse rows by header columns, or per-row heuristics without a header."""
    header_map = document.header_map
    merged_rows = merge_continuation_rows(document.normalized_rows, document.header_index, header_map)
    merged_raw_rows = merge_continuation_rows(document.raw_rows, document.header_index, header_map)

    records: List[PriceRecord] = []
    area: Optional[str] = None
    category: Optional[str] = None
    log = logger.bind(source_file=document.source_file)

    for index in range(document.header_index + 1, len(merged_rows)):
        row = merged_rows[index]
        if is_blank_row(row):
            continue

        if header_map.area_index is not None and header_map.area_index < len(row):
            area_cell = row[header_map.area_index]
            if area_cell:
                hierarchy = parse_area_hierarchy(area_cell)
                area = hierarchy.parent_area
                if hierarchy.sub_category:
                    category = hierarchy.sub_category

        description = normalize_cell(find_description(row, header_map))
        raw_row = merged_raw_rows[index] if index < len(merged_raw_rows) else row
        price_text = find_price_text(raw_row, header_map)

        if description and description.endswith(":") and not price_text:
            category = description[:-1].strip()
            continue

        if not description or not price_text:
            log.debug("row_dropped_missing_fields", row_number=index + 1)
            continue

        if header_map.price_index is None and normalize_cell(price_text) == description:
            log.debug("row_dropped_no_price_column", row_number=index + 1)
            continue

        variants = expand_price_variants(price_text, description)
        if not variants:
            log.debug("row_dropped_unparseable_price", row_number=index + 1, price_text=price_text)
            continue

        for variant in variants:
            records.append(builder.build(description, variant, index, area, category))

    return records


def rows_to_price_records(rows: Rows, context: ParseContext) -> List[PriceRecord]:
    """Turn container rows into tagged price records for one document."""
    document = prepare_document(rows, context)
    if document is None:
        return []

    builder = RecordBuilder(document)
    layout = detect_layout(document.header_index, document.header_map, document.normalized_rows)
    if layout is DocumentLayout.GROUPED:
        records = parse_grouped_rows(document.normalized_rows, builder)
    else:
        records = parse_header_based_rows(document, builder)

    logger.info(
        "price_list_parsed",
        source_file=document.source_file,
        facility_name=document.facility_name,
        layout=layout.value,
        row_count=len(rows),
        record_count=len(records),
    )
    return apply_curated_tags(records)


def parse_price_list(
    file_path: Union[str, Path],
    context: Optional[ParseContext] = None,
    max_bytes: Optional[int] = None,
) -> List[PriceRecord]:
    """Parse a price list file into tagged records.

    Raises:
        UnsupportedFileError: Unknown file extension
        FileTooLargeError: File exceeds the byte ceiling
        ParserError: File missing or unreadable
    """
    parse_context = build_context(file_path, context)
    rows = extract_raw_rows(file_path, max_bytes or parser_settings.max_file_size_bytes)
    return rows_to_price_records(rows, parse_context)
