"""Command line entry point: ingest price list files and emit records as JSON.

Usage:
    pricelist-ingest lasuth_2024.csv randle.docx --currency NGN \\
        --facility-map '{"randle.docx": "Randle General Hospital"}' --output records.json
"""
import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from pricelist_ingestion.config import (
    CacheBackendType,
    cache_settings,
    configure_logging,
    llm_settings,
    parser_settings,
    settings,
)
from pricelist_ingestion.models.document_summary import DocumentSummaryCacheRecord
from pricelist_ingestion.models.ingestion_result import IngestionFile, IngestionResult
from pricelist_ingestion.models.parse_context import ParseContext
from pricelist_ingestion.services.ingestion_service import PriceListIngestionService
from pricelist_ingestion.services.llm.summarizer import DocumentSummarizer
from pricelist_ingestion.stores.base import DocumentStore
from pricelist_ingestion.stores.memory_store import InMemoryDocumentStore
from pricelist_ingestion.stores.redis_store import RedisDocumentStore

logger = structlog.get_logger(__name__)


def load_facility_map(value: Optional[str]) -> Dict[str, str]:
    """Parse ``--facility-map`` given inline as JSON or as a path to a JSON file."""
    if not value or not value.strip():
        return {}
    text = value.strip()
    if not text.startswith("{"):
        path = Path(text)
        if not path.is_file():
            raise argparse.ArgumentTypeError(f"--facility-map file not found: {value}")
        text = path.read_text(encoding="utf-8")
    try:
        mapping = json.loads(text)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"--facility-map is not valid JSON: {e}") from e
    if not isinstance(mapping, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in mapping.items()
    ):
        raise argparse.ArgumentTypeError("--facility-map must be a JSON object of file name -> facility name")
    return mapping


def _parse_date(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date: {value}") from e
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pricelist-ingest",
        description="Extract normalized, tagged price records from healthcare price lists",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "files",
        nargs="+",
        help="Price list files (.csv, .txt, .docx, .xlsx, .xlsm)",
    )
    parser.add_argument(
        "--currency",
        default=parser_settings.default_currency,
        help="ISO 4217 currency code (default: %(default)s)",
    )
    parser.add_argument(
        "--facility-map",
        help="JSON object (inline or file path) mapping file names to facility names",
    )
    parser.add_argument(
        "--facility",
        help="Facility name override applied to every file",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=parser_settings.facility_inference_threshold,
        help="Minimum confidence for inferred facility names, 0-1 (default: %(default)s)",
    )
    parser.add_argument(
        "--effective-date",
        type=_parse_date,
        help="Effective date (ISO 8601) applied to every record",
    )
    parser.add_argument(
        "--use-llm",
        action="store_true",
        help="Try LLM summarization before row-based parsing",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=settings.max_workers,
        help="Files processed concurrently (default: %(default)s)",
    )
    parser.add_argument(
        "--output",
        "-o",
        help="Write records to this file instead of stdout",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Log level (default: %(default)s)",
    )
    return parser


def build_store() -> DocumentStore[DocumentSummaryCacheRecord]:
    if cache_settings.backend == CacheBackendType.REDIS:
        return RedisDocumentStore.from_url(
            cache_settings.redis_url,
            DocumentSummaryCacheRecord,
            ttl_seconds=cache_settings.ttl_seconds,
        )
    return InMemoryDocumentStore()


def render_result(result: IngestionResult) -> str:
    payload = [record.model_dump(mode="json", by_alias=True, exclude_none=True) for record in result.records]
    return json.dumps(payload, indent=2, ensure_ascii=False)


async def run(args: argparse.Namespace) -> IngestionResult:
    context = ParseContext(
        currency=args.currency.upper(),
        explicit_facility_mapping=load_facility_map(args.facility_map),
        facility_inference_threshold=args.threshold,
        default_effective_date=args.effective_date,
    )

    summarizer = None
    store = None
    if args.use_llm:
        store = build_store()
        summarizer = DocumentSummarizer(
            settings=llm_settings.model_copy(update={"enabled": True}),
            store=store,
        )

    service = PriceListIngestionService(
        context=context,
        summarizer=summarizer,
        max_workers=args.max_workers,
    )
    files: List[IngestionFile] = [IngestionFile(path=path, facility_name=args.facility) for path in args.files]
    try:
        return await service.ingest_files(files)
    finally:
        if summarizer is not None:
            await summarizer.close()
        if store is not None:
            await store.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        result = asyncio.run(run(args))
    except (argparse.ArgumentTypeError, PydanticValidationError) as e:
        parser.error(str(e))

    output = render_result(result)
    if args.output:
        Path(args.output).write_text(output + "\n", encoding="utf-8")
        logger.info("records_written", output=args.output, record_count=len(result.records))
    else:
        sys.stdout.write(output + "\n")

    for error in result.errors:
        logger.warning("file_error", error=error)
    return 1 if result.files and result.files_failed == len(result.files) else 0


if __name__ == "__main__":
    sys.exit(main())
