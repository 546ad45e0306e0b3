"""Header row detection and per-row description/price heuristics.

Price lists rarely share a layout. This module locates the header row (if
any), maps description/price/area columns, and provides the fallbacks used
when no header exists:

- description = first cell that is neither a row index nor price-like
- price text = first numeric or "free" cell, skipping index cells when the
  row also carries descriptive text
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

import structlog

logger = structlog.get_logger(__name__)

DESCRIPTION_KEYWORDS = ("description", "procedures", "procedure", "service", "revenue")
PRICE_KEYWORDS = ("price", "amount", "rate", "fee")
AREA_KEYWORDS = ("area", "category", "section", "department")
HEADER_KEYWORDS = DESCRIPTION_KEYWORDS + PRICE_KEYWORDS + ("area", "category")

MIN_HEADER_CELLS = 2

_LETTERS_RE = re.compile(r"[A-Za-z]")
_DIGIT_RE = re.compile(r"\d")
_INDEX_RE = re.compile(r"^\d+$")


@dataclass(frozen=True)
class HeaderMap:
    """Zero-based column indices found in the header row."""
    description_index: Optional[int] = None
    price_index: Optional[int] = None
    area_index: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.description_index is None
            and self.price_index is None
            and self.area_index is None
        )

    @property
    def supports_merging(self) -> bool:
        """Continuation merging needs both a description and a price column."""
        return self.description_index is not None and self.price_index is not None


def contains_letters(value: str) -> bool:
    return bool(_LETTERS_RE.search(value or ""))


def contains_number(value: str) -> bool:
    return bool(_DIGIT_RE.search(value or ""))


def contains_free(value: str) -> bool:
    return "free" in (value or "").lower()


def is_likely_index(value: str) -> bool:
    """A bare integer cell is a row index (S/N)."""
    return bool(_INDEX_RE.match((value or "").strip()))


def is_price_like(value: str) -> bool:
    """"free", or digits without any letters."""
    if contains_free(value):
        return True
    return contains_number(value) and not contains_letters(value)


def is_blank_row(row: Optional[Sequence[str]]) -> bool:
    return not row or all(not cell for cell in row)


def _matches_any(cell: str, keywords: Sequence[str]) -> bool:
    return any(keyword in cell for keyword in keywords)


def find_header_row(rows: List[List[str]]) -> int:
    """Return the index of the first header row, or -1 when there is none.

    A header row has at least one description-like cell, at least one
    price-like cell, and at least two header-ish cells overall.
    """
    for index, row in enumerate(rows):
        lower_cells = [cell.lower() for cell in row]
        has_description = any(_matches_any(cell, DESCRIPTION_KEYWORDS) for cell in lower_cells)
        has_price = any(_matches_any(cell, PRICE_KEYWORDS) for cell in lower_cells)
        if not has_description or not has_price:
            continue
        header_cells = sum(1 for cell in lower_cells if _matches_any(cell, HEADER_KEYWORDS))
        if header_cells >= MIN_HEADER_CELLS:
            logger.debug("header_row_found", header_index=index, header=row)
            return index
    return -1


def _first_index(cells: List[str], keywords: Sequence[str]) -> Optional[int]:
    for index, cell in enumerate(cells):
        if _matches_any(cell, keywords):
            return index
    return None


def build_header_map(header_row: Sequence[str]) -> HeaderMap:
    """Map the description, price and area columns of a header row."""
    lower_cells = [(cell or "").lower() for cell in header_row]
    return HeaderMap(
        description_index=_first_index(lower_cells, DESCRIPTION_KEYWORDS),
        price_index=_first_index(lower_cells, PRICE_KEYWORDS),
        area_index=_first_index(lower_cells, AREA_KEYWORDS),
    )


def _cell_at(row: Sequence[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index] or ""


def find_description(row: Sequence[str], header_map: HeaderMap) -> str:
    """Description column if mapped, else the first non-index, non-price cell."""
    if header_map.description_index is not None:
        return _cell_at(row, header_map.description_index)
    for cell in row:
        if not cell or is_likely_index(cell) or is_price_like(cell):
            continue
        return cell
    return ""


def find_price_text(row: Sequence[str], header_map: HeaderMap) -> str:
    """Price column if it holds a number or "free", else the first such cell."""
    mapped = _cell_at(row, header_map.price_index)
    if mapped and (contains_number(mapped) or contains_free(mapped)):
        return mapped

    has_descriptive_text = any(cell and contains_letters(cell) for cell in row)
    for cell in row:
        if not cell:
            continue
        if is_likely_index(cell) and has_descriptive_text:
            continue
        if contains_number(cell) or contains_free(cell):
            return cell
    return ""
