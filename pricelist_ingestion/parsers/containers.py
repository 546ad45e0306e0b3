"""Container extraction: turn a price list file into rows of cell strings.

Three container formats are supported, dispatched by file extension:

- delimited text (.csv, .txt): custom field splitter that keeps thousands
  separators inside numbers and supports multi-line quoted fields
- word-processor tables (.docx): body title paragraphs plus every table row
- spreadsheets (.xlsx, .xlsm): first worksheet only, raw cell values

Every mode returns the same type: an ordered list of rows, each a list of
cell strings. Callers choose between whitespace-collapsed cells
(``normalize_cell``) and newline-preserving cells
(``normalize_cell_preserve_newlines``).
"""
import math
import re
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Union

import pandas as pd
import structlog
from docx import Document
from docx.oxml.ns import qn

from pricelist_ingestion.errors.exceptions import (
    FileTooLargeError,
    ParserError,
    UnsupportedFileError,
)
from pricelist_ingestion.utils.tree_walk import collect_elements

logger = structlog.get_logger(__name__)

Rows = List[List[str]]

_WHITESPACE_RE = re.compile(r"\s+")
_INLINE_WHITESPACE_RE = re.compile(r"[^\S\n]+")
_NEWLINE_INDENT_RE = re.compile(r"[^\S\n]*\n\s*")


class ContainerType(str, Enum):
    """Closed set of supported container formats."""
    DELIMITED = "csv"
    DOCX = "docx"
    SPREADSHEET = "xlsx"


EXTENSION_MAP = {
    ".csv": ContainerType.DELIMITED,
    ".txt": ContainerType.DELIMITED,
    ".docx": ContainerType.DOCX,
    ".xlsx": ContainerType.SPREADSHEET,
    ".xlsm": ContainerType.SPREADSHEET,
}


def detect_container_type(file_path: Union[str, Path]) -> ContainerType:
    """Map a file extension to its container type.

    Raises:
        UnsupportedFileError: If the extension is not recognised
    """
    extension = Path(file_path).suffix.lower()
    container = EXTENSION_MAP.get(extension)
    if container is None:
        supported = ", ".join(sorted(EXTENSION_MAP))
        raise UnsupportedFileError(
            f"Unsupported file type '{extension or '(none)'}' for {file_path}. "
            f"Supported: {supported}"
        )
    return container


def ensure_within_size(file_path: Union[str, Path], max_bytes: int) -> int:
    """Return the file size, rejecting missing or oversized files.

    Raises:
        ParserError: If the file does not exist
        FileTooLargeError: If the file is larger than ``max_bytes``
    """
    path = Path(file_path)
    if not path.is_file():
        raise ParserError(f"File not found: {file_path}")
    size = path.stat().st_size
    if size > max_bytes:
        raise FileTooLargeError(str(file_path), size, max_bytes)
    return size


def extract_raw_rows(
    file_path: Union[str, Path],
    max_bytes: int,
    max_rows: Optional[int] = None,
) -> Rows:
    """Read a file into rows of raw (untrimmed) cell strings.

    Args:
        file_path: Path to the source document
        max_bytes: Byte ceiling; larger files are rejected before reading
        max_rows: Optional cap on the number of rows returned

    Raises:
        UnsupportedFileError: Unknown extension
        FileTooLargeError: File exceeds ``max_bytes``
        ParserError: File missing or unreadable
    """
    container = detect_container_type(file_path)
    ensure_within_size(file_path, max_bytes)
    log = logger.bind(file_path=str(file_path), container=container.value)

    try:
        if container is ContainerType.DELIMITED:
            rows = split_delimited(_read_text(Path(file_path), log))
        elif container is ContainerType.DOCX:
            rows = _extract_docx_rows(Path(file_path))
        elif container is ContainerType.SPREADSHEET:
            rows = _extract_spreadsheet_rows(Path(file_path))
        else:
            raise UnsupportedFileError(f"No extractor for container {container}")
    except ParserError:
        raise
    except Exception as e:
        raise ParserError(f"Failed to read {file_path}: {e}") from e

    if max_rows is not None:
        rows = rows[:max_rows]

    log.debug("container_rows_extracted", row_count=len(rows))
    return rows


def extract_rows(
    file_path: Union[str, Path],
    max_bytes: int,
    max_rows: Optional[int] = None,
) -> Rows:
    """Read a file into rows of trimmed, whitespace-normalized cell strings."""
    return [
        [normalize_cell(cell) for cell in row]
        for row in extract_raw_rows(file_path, max_bytes, max_rows)
    ]


def normalize_cell(value: Any) -> str:
    """Collapse all whitespace (including newlines) to single spaces."""
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip()


def normalize_cell_preserve_newlines(value: Any) -> str:
    """Collapse inline whitespace but keep line breaks."""
    if value is None:
        return ""
    text = str(value).replace("\r\n", "\n").replace("\r", "\n")
    text = _INLINE_WHITESPACE_RE.sub(" ", text)
    text = _NEWLINE_INDENT_RE.sub("\n", text)
    return text.strip()


# =============================================================================
# Delimited text
# =============================================================================


def _read_text(path: Path, log: Any) -> str:
    data = path.read_bytes()
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        log.warning("utf8_decode_failed_trying_latin1", error=str(e))
        return data.decode("latin-1")


def _is_thousands_separator(content: str, index: int) -> bool:
    """A comma between a digit and exactly three digits belongs to a number."""
    if index == 0:
        return False
    following = content[index + 1:index + 4]
    return (
        content[index - 1].isdigit()
        and len(following) == 3
        and following.isdigit()
    )


def split_delimited(content: str, delimiter: str = ",") -> Rows:
    """Split delimited text into rows of fields.

    Quoted fields may span physical lines and escape quotes by doubling
    them. Outside quotes, a delimiter that sits inside a number written
    with thousands separators ("130,000") does not end the field.
    Blank lines are kept as single-empty-cell rows so callers can treat
    them as record boundaries.
    """
    rows: Rows = []
    row: List[str] = []
    cell: List[str] = []
    in_quotes = False
    row_started = False
    i = 0
    length = len(content)

    while i < length:
        char = content[i]

        if in_quotes:
            if char == '"':
                if i + 1 < length and content[i + 1] == '"':
                    cell.append('"')
                    i += 2
                    continue
                in_quotes = False
                i += 1
                continue
            cell.append(char)
            i += 1
            continue

        if char == '"':
            in_quotes = True
            row_started = True
            i += 1
            continue

        if char == delimiter:
            if delimiter == "," and _is_thousands_separator(content, i):
                cell.append(char)
                i += 1
                continue
            row.append("".join(cell))
            cell = []
            row_started = True
            i += 1
            continue

        if char in ("\r", "\n"):
            row.append("".join(cell))
            rows.append(row)
            row, cell = [], []
            row_started = False
            if char == "\r" and i + 1 < length and content[i + 1] == "\n":
                i += 1
            i += 1
            continue

        cell.append(char)
        row_started = True
        i += 1

    if row_started or cell or row:
        row.append("".join(cell))
        rows.append(row)

    return rows


# =============================================================================
# Word-processor tables
# =============================================================================

_TABLE = qn("w:tbl")
_ROW = qn("w:tr")
_CELL = qn("w:tc")
_PARAGRAPH = qn("w:p")
_TEXT = qn("w:t")


def _join_text_runs(element) -> str:
    return "".join(node.text or "" for node in collect_elements(element, _TEXT))


def _cell_text(cell) -> str:
    paragraphs = collect_elements(cell, _PARAGRAPH)
    if not paragraphs:
        return _join_text_runs(cell)
    return "\n".join(_join_text_runs(paragraph) for paragraph in paragraphs)


def extract_table_rows(body) -> Rows:
    """Collect table → row → cell → text rows below an XML body element."""
    rows: Rows = []
    for table in collect_elements(body, _TABLE):
        for table_row in collect_elements(table, _ROW):
            values = [_cell_text(cell) for cell in collect_elements(table_row, _CELL)]
            if any(value.strip() for value in values):
                rows.append(values)
    return rows


def _extract_docx_rows(path: Path) -> Rows:
    document = Document(str(path))
    title_rows = [
        [paragraph.text]
        for paragraph in document.paragraphs
        if paragraph.text and paragraph.text.strip()
    ]
    return title_rows + extract_table_rows(document.element.body)


# =============================================================================
# Spreadsheets
# =============================================================================


def _spreadsheet_cell_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if pd.isna(value):
        return ""
    return str(value)


def _extract_spreadsheet_rows(path: Path) -> Rows:
    df = pd.read_excel(
        path,
        sheet_name=0,
        header=None,
        dtype=object,
        engine="openpyxl",
    )
    rows: Rows = []
    for values in df.itertuples(index=False, name=None):
        rows.append([_spreadsheet_cell_to_str(value) for value in values])
    return rows
