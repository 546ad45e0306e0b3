"""Bounded text preview of a document for LLM prompts."""

from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Optional, Tuple, Union

import structlog

from pricelist_ingestion.errors.exceptions import FileTooLargeError, UnsupportedFileError
from pricelist_ingestion.parsers.containers import Rows, detect_container_type, extract_raw_rows

logger = structlog.get_logger(__name__)

TRUNCATION_MARKER = "[TRUNCATED]"
CELL_SEPARATOR = " | "


@dataclass
class DocumentPreview:
    source_file: str
    file_type: str
    row_count: int
    preview: str
    truncated: bool


def format_preview(rows: Rows, max_chars: int) -> Tuple[str, bool]:
    """Join rows as " | "-separated lines, truncating at ``max_chars``."""
    lines = [CELL_SEPARATOR.join((cell or "").strip() for cell in row) for row in rows]
    preview = "\n".join(lines)
    if len(preview) > max_chars:
        return f"{preview[:max_chars]}\n{TRUNCATION_MARKER}", True
    return preview, False


def extract_document_preview(
    file_path: Union[str, Path],
    max_rows: int,
    max_chars: int,
    max_bytes: int,
) -> Optional[DocumentPreview]:
    """Preview of the first ``max_rows`` rows, or None for unusable files.

    Raises:
        ParserError: The file exists but could not be read
    """
    try:
        container = detect_container_type(file_path)
        rows = extract_raw_rows(file_path, max_bytes, max_rows=max_rows)
    except (UnsupportedFileError, FileTooLargeError) as e:
        logger.info("document_preview_skipped", file_path=str(file_path), reason=str(e))
        return None

    preview, truncated = format_preview(rows, max_chars)
    return DocumentPreview(
        source_file=PurePath(str(file_path)).name,
        file_type=container.value,
        row_count=len(rows),
        preview=preview,
        truncated=truncated,
    )
