"""Grouped (hierarchical) parser for headerless price lists.

Some facility exports have no header row and nest sub-items below a
serial-numbered parent::

    16,MYMECTOMY, HYSTERECTOMY, TAH,,
    ,SURGICAL PACK," 130,000.00 ",
    ,OPERATION FEE," 85,000.00 ",
    ,ANAESTHESIA," 150,000.00 "," 365,000.00"

Column B holds descriptions, columns C/D hold amounts. A group that is a
cost breakdown (explicit or implicit TOTAL row, running total in column D,
or surgical components) collapses into ONE record carrying the breakdown;
otherwise the parent becomes the category of its individually priced
sub-items.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

import structlog

from pricelist_ingestion.models.price_record import BreakdownItem, PriceRecord, PriceTier
from pricelist_ingestion.parsers.price_variants import (
    PriceVariant,
    detect_tier,
    expand_price_variants,
    extract_numbers,
)
from pricelist_ingestion.parsers.record_builder import RecordBuilder
from pricelist_ingestion.parsers.region_detector import contains_letters, contains_number, is_blank_row

logger = structlog.get_logger(__name__)

SECTION_PATTERNS = (
    re.compile(r"NEW PRICE LIST FOR\s+(.+?)(?:\s+SECTION)?$", re.IGNORECASE),
    re.compile(r"^(PAEDIATRICS)\s+WARD", re.IGNORECASE),
    re.compile(r"^(PHYSIOTHERAPHY?)\s+DEPT", re.IGNORECASE),
    re.compile(r"^(SCAN)\s*:", re.IGNORECASE),
)

SKIP_PATTERNS = (
    re.compile(r"^\s*YEAR\s+20\d{2}", re.IGNORECASE),
    re.compile(r"SIGN\s*BY", re.IGNORECASE),
    re.compile(r"NOTE\s*:", re.IGNORECASE),
    re.compile(r"ADJUSTED\s+PRICE", re.IGNORECASE),
    re.compile(r"MANAGEMENT\s*:", re.IGNORECASE),
    re.compile(r"MEDICAL\s+DIRECTOR", re.IGNORECASE),
)
_PRICE_LIST_RE = re.compile(r"PRICE\s+LIST", re.IGNORECASE)
_HOSPITAL_RE = re.compile(r"HOSPITAL", re.IGNORECASE)

SURGICAL_COMPONENTS = frozenset({"surgical pack", "operation fee", "theatre pack", "anaesthesia"})

_SERIAL_RE = re.compile(r"^\d+[a-z]?$", re.IGNORECASE)
_LETTERED_RE = re.compile(r"^[a-z]$", re.IGNORECASE)
_TIER_LABEL_RE = re.compile(r"\d+\s*-?\s*\d*\s*yrs|simple|complex|out\s*patient|in\s*patient|small|big", re.IGNORECASE)
_AGE_RANGE_RE = re.compile(r"(\d+)\s*(?:-\s*(\d+))?\s*yrs?", re.IGNORECASE)
_SECTION_SUFFIX_RE = re.compile(r"\s+SECTION$", re.IGNORECASE)

# Labels in an amount column that are not amounts.
_NON_PRICE_LABELS = (
    re.compile(r"\d+\s*-?\s*\d*\s*yrs", re.IGNORECASE),
    re.compile(r"^(simple|complex|small|big|free)\s*$", re.IGNORECASE),
    re.compile(r"^\(?(out|in)\s*patient\)?", re.IGNORECASE),
    re.compile(r"^(each|per\s+(day|hour|session|visit|week))", re.IGNORECASE),
)

TOTAL = "TOTAL"
IMPLICIT_TOTAL = "__TOTAL__"
ADULT_AGE = 18
ZERO = Decimal("0")


@dataclass
class GroupItem:
    description: str
    price_c: Decimal
    price_d: Decimal

    @property
    def is_total(self) -> bool:
        return self.description.upper() == TOTAL or self.description == IMPLICIT_TOTAL


def _col(row: Sequence[str], index: int) -> str:
    if index >= len(row) or not row[index]:
        return ""
    return row[index].strip()


def is_serial_number(value: str) -> bool:
    return bool(_SERIAL_RE.match((value or "").strip()))


def section_name(row: Sequence[str]) -> Optional[str]:
    """Area name when column B is a section banner."""
    text = _col(row, 1).upper()
    if not text:
        return None
    for pattern in SECTION_PATTERNS:
        match = pattern.search(text)
        if match:
            return _SECTION_SUFFIX_RE.sub("", match.group(1).strip()).strip()
    return None


def is_skip_row(row: Sequence[str]) -> bool:
    """Year banners, signatures, notes and list titles."""
    joined = " ".join(cell or "" for cell in row).strip()
    if not joined:
        return True
    if any(pattern.search(joined) for pattern in SKIP_PATTERNS):
        return True
    return bool(_PRICE_LIST_RE.search(joined) and _HOSPITAL_RE.search(joined))


def extract_cell_price(cell: str) -> Decimal:
    """Last amount in an amount cell; 0 for tier/unit labels and blanks."""
    text = (cell or "").strip()
    if not text:
        return ZERO
    if any(pattern.search(text) for pattern in _NON_PRICE_LABELS):
        return ZERO
    numbers = extract_numbers(re.sub(r"[#\s]", "", text))
    return numbers[-1] if numbers else ZERO


def tier_from_label(label: str) -> Tuple[Optional[PriceTier], Optional[str]]:
    """Map a tier column label ("0-12YRS", "18YRS ABOVE", "COMPLEX").

    Returns the tier (if the label names a population) and the label itself
    as a qualifier.
    """
    if not label:
        return None, None
    tier = detect_tier(label)
    if tier:
        return tier, label
    match = _AGE_RANGE_RE.search(label)
    if match:
        lower = label.lower()
        upper_age = int(match.group(2) or match.group(1))
        if "above" in lower or "over" in lower or "+" in lower or upper_age >= ADULT_AGE:
            return PriceTier.ADULT, label
        return PriceTier.PAEDIATRIC, label
    return None, label.lower()


def looks_grouped(rows: List[List[str]]) -> bool:
    """True when most rows keep the description in column B."""
    non_blank = [row for row in rows if not is_blank_row(row)]
    if not non_blank:
        return False
    serial_rows = 0
    column_b_rows = 0
    for row in non_blank:
        col_a, col_b = _col(row, 0), _col(row, 1)
        if not contains_letters(col_b):
            continue
        if is_serial_number(col_a):
            serial_rows += 1
            column_b_rows += 1
        elif not col_a or _LETTERED_RE.match(col_a):
            column_b_rows += 1
    return serial_rows >= 2 and column_b_rows * 2 >= len(non_blank)


class GroupedRowParser:
    """Walks headerless rows, tracking the current area and category."""

    def __init__(self, rows: List[List[str]], builder: RecordBuilder):
        self.rows = rows
        self.builder = builder
        self.records: List[PriceRecord] = []
        self.area: Optional[str] = None
        self.category: Optional[str] = None

    def parse(self) -> List[PriceRecord]:
        index = 0
        while index < len(self.rows):
            index = self._parse_row(index)
        return self.records

    # -- emission -----------------------------------------------------------

    def _emit(
        self,
        description: str,
        price: Decimal,
        row_index: int,
        tier_label: Optional[str] = None,
        breakdown: Optional[List[BreakdownItem]] = None,
    ) -> None:
        if price <= 0:
            return
        tier, qualifier = tier_from_label(tier_label) if tier_label else (None, None)
        variant = PriceVariant(price=price, raw_text=str(price), tier=tier, qualifier=qualifier)
        self.records.append(
            self.builder.build(description, variant, row_index, self.area, self.category, breakdown)
        )

    def _emit_variants(self, description: str, price_text: str, fallback: Decimal, row_index: int) -> None:
        variants = expand_price_variants(price_text, description)
        if not variants:
            self._emit(description, fallback, row_index)
            return
        for variant in variants:
            self.records.append(
                self.builder.build(description, variant, row_index, self.area, self.category)
            )

    # -- groups -------------------------------------------------------------

    def _collect_group(self, start: int, keep_short_numeric: bool) -> Tuple[List[GroupItem], int]:
        """Collect sub-item rows until the next serial number or section."""
        items: List[GroupItem] = []
        j = start
        while j < len(self.rows):
            row = self.rows[j]
            if is_blank_row(row):
                j += 1
                continue
            col_a, col_b = _col(row, 0), _col(row, 1)
            if col_a and is_serial_number(col_a):
                break
            if section_name(row):
                break
            if is_skip_row(row):
                j += 1
                continue
            price_c = extract_cell_price(_col(row, 2))
            price_d = extract_cell_price(_col(row, 3))
            if len(col_b) <= 1 and (price_c > 0 or price_d > 0):
                items.append(GroupItem(IMPLICIT_TOTAL, price_c, price_d))
            elif col_b and (
                len(col_b) > 1
                or (keep_short_numeric and (contains_number(_col(row, 2)) or contains_number(_col(row, 3))))
            ):
                if price_c > 0 or price_d > 0 or col_b.upper() == TOTAL:
                    description = TOTAL if col_b.upper() == TOTAL else col_b
                    items.append(GroupItem(description, price_c, price_d))
            j += 1
        return items, j

    @staticmethod
    def _split_total(items: List[GroupItem]) -> Tuple[Optional[GroupItem], List[GroupItem]]:
        explicit = next((item for item in items if item.description.upper() == TOTAL), None)
        implicit = next((item for item in items if item.description == IMPLICIT_TOTAL), None)
        return explicit or implicit, [item for item in items if not item.is_total]

    @staticmethod
    def _breakdown(items: List[GroupItem]) -> List[BreakdownItem]:
        return [BreakdownItem(label=item.description, amount=item.price_c) for item in items]

    def _parse_tier_group(self, index: int, row: Sequence[str]) -> int:
        """Parent whose C/D cells are tier labels ("0-12YRS", "18YRS ABOVE")."""
        description = _col(row, 1).rstrip(":").strip()
        label_c, label_d = _col(row, 2), _col(row, 3)
        items, end = self._collect_group(index + 1, keep_short_numeric=False)
        total, parts = self._split_total(items)

        if total:
            breakdown = self._breakdown(parts)
            self._emit(description, total.price_c, index, label_c, breakdown)
            if total.price_d != total.price_c:
                self._emit(description, total.price_d, index, label_d, breakdown)
        else:
            for item in parts:
                full_description = f"{description} - {item.description}"
                self._emit(full_description, item.price_c, index, label_c)
                self._emit(full_description, item.price_d, index, label_d)
        return end

    def _parse_numbered_group(self, index: int, description: str) -> int:
        """Serial-numbered parent with no price of its own."""
        items, end = self._collect_group(index + 1, keep_short_numeric=True)
        if not items:
            return end

        total, parts = self._split_total(items)
        is_surgical = any(item.description.lower().strip() in SURGICAL_COMPONENTS for item in parts)
        last = parts[-1] if parts else None
        has_running_total = bool(last and last.price_d > 0 and last.price_d > last.price_c)

        if not (is_surgical or has_running_total or total):
            self.category = description
            for item in parts:
                self._emit(item.description, item.price_c or item.price_d, index)
            return end

        breakdown = self._breakdown(parts)
        if total:
            if total.price_c > 0 and total.price_d > 0 and total.price_c != total.price_d:
                self._emit(description, total.price_c, index, "simple", breakdown)
                self._emit(description, total.price_d, index, "complex", breakdown)
                return end
            total_price = total.price_d or total.price_c
        elif has_running_total:
            total_price = last.price_d
        else:
            total_price = sum((item.price_c for item in parts), ZERO)

        self._emit(description, total_price, index, breakdown=breakdown)
        return end

    # -- rows ---------------------------------------------------------------

    def _parse_row(self, index: int) -> int:
        row = self.rows[index]
        if is_blank_row(row) or is_skip_row(row):
            return index + 1

        section = section_name(row)
        if section:
            self.area = section
            return index + 1

        col_a, col_b, col_c, col_d = (_col(row, i) for i in range(4))
        is_tier_header = bool(col_c and contains_letters(col_c) and _TIER_LABEL_RE.search(col_c))

        if is_tier_header and is_serial_number(col_a):
            return self._parse_tier_group(index, row)

        if is_serial_number(col_a) and len(col_b) > 1 and contains_letters(col_b):
            description = col_b.rstrip(":").strip()
            price_d = extract_cell_price(col_d)
            price_c = extract_cell_price(col_c)
            if price_c > 0 or price_d > 0:
                self._emit_variants(description, col_d or col_c, price_d or price_c, index)
                return index + 1
            return self._parse_numbered_group(index, description)

        if not col_a and col_b.endswith(":") and not extract_cell_price(col_c) and not extract_cell_price(col_d):
            name = col_b.rstrip(":").strip()
            if len(name) > 2 and contains_letters(name):
                self.category = name
            return index + 1

        if not col_a and len(col_b) > 1 and contains_letters(col_b):
            price = extract_cell_price(col_c) or extract_cell_price(col_d)
            if price > 0:
                self._emit_variants(col_b, col_c or col_d, price, index)
                return index + 1
            if len(col_b) > 2:
                self.category = col_b
            return index + 1

        if _LETTERED_RE.match(col_a) and len(col_b) > 1 and contains_letters(col_b):
            self._emit(col_b, extract_cell_price(col_c) or extract_cell_price(col_d), index)

        return index + 1


def parse_grouped_rows(rows: List[List[str]], builder: RecordBuilder) -> List[PriceRecord]:
    records = GroupedRowParser(rows, builder).parse()
    logger.debug("grouped_rows_parsed", row_count=len(rows), record_count=len(records))
    return records
