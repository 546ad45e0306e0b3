"""Folding of continuation rows into the logical record they belong to.

Exports often split one cell over several physical rows: a second line of
description, or the "Free for Paed." half of a tiered price. Such rows carry
no index, no description text and no price of their own, so they are
appended (newline-joined) to the record above.
"""

from typing import List, Sequence

from pricelist_ingestion.parsers.region_detector import (
    HeaderMap,
    contains_free,
    contains_letters,
    contains_number,
    is_blank_row,
    is_likely_index,
    is_price_like,
)


def is_new_record_row(row: Sequence[str], header_map: HeaderMap) -> bool:
    """True when the row starts a logical record of its own."""
    if row and row[0] and is_likely_index(row[0]):
        return True

    index = header_map.description_index
    if index is not None and index < len(row):
        if row[index] and contains_letters(row[index]):
            return True

    index = header_map.price_index
    if index is not None and index < len(row):
        cell = row[index]
        if cell and (contains_number(cell) or contains_free(cell)):
            return True

    return False


def _append_cell(existing: str, addition: str) -> str:
    if not existing:
        return addition
    return f"{existing}\n{addition}"


def merge_row_into(base_row: List[str], continuation_row: Sequence[str], header_map: HeaderMap) -> List[str]:
    """Append a continuation row's fragments to ``base_row`` (returns a copy)."""
    description_index = header_map.description_index or 0
    price_index = header_map.price_index or 0
    width = max(len(base_row), description_index + 1, price_index + 1)
    merged = list(base_row) + [""] * (width - len(base_row))

    description_parts = []
    price_parts = []
    for cell in continuation_row:
        if not cell:
            continue
        if is_price_like(cell):
            price_parts.append(cell)
        else:
            description_parts.append(cell)

    if description_parts:
        merged[description_index] = _append_cell(merged[description_index], " ".join(description_parts))
    if price_parts:
        merged[price_index] = _append_cell(merged[price_index], " ".join(price_parts))
    return merged


def merge_continuation_rows(
    rows: List[List[str]],
    header_index: int,
    header_map: HeaderMap,
) -> List[List[str]]:
    """Merge continuation rows after the header.

    Rows up to and including the header are kept as they are. A blank row
    closes the current record and is dropped. Without a header, or without
    both description and price columns, the rows are returned untouched.
    """
    if header_index < 0 or not header_map.supports_merging:
        return rows

    merged = [list(row) for row in rows[:header_index + 1]]
    current = None

    for row in rows[header_index + 1:]:
        if is_blank_row(row):
            if current is not None:
                merged.append(current)
                current = None
            continue

        if current is None:
            current = list(row)
            continue

        if is_new_record_row(row, header_map):
            merged.append(current)
            current = list(row)
            continue

        current = merge_row_into(current, row, header_map)

    if current is not None:
        merged.append(current)

    return merged
