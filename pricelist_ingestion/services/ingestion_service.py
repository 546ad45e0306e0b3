"""
Price List Ingestion Service

Batch orchestration over many price list files:

1. Per file: build a ParseContext (source file name + operator override)
2. LLM summary first when enabled; a negative result falls back to rows
3. Row-based parsing in a worker thread
4. Records concatenated in input order

Files run concurrently under a semaphore of ``max_workers``. A failure in one
file is logged and recorded in the result; it never aborts the batch and
never contributes a partial record list.
"""

import asyncio
from pathlib import Path, PurePath
from typing import List, Optional, Sequence, Tuple, Union

import structlog

from pricelist_ingestion.config import parser_settings, settings
from pricelist_ingestion.errors.exceptions import DataIngestionError
from pricelist_ingestion.models.ingestion_result import FileIngestionResult, IngestionFile, IngestionResult
from pricelist_ingestion.models.parse_context import ParseContext
from pricelist_ingestion.models.price_record import PriceRecord
from pricelist_ingestion.parsers.containers import detect_container_type, ensure_within_size
from pricelist_ingestion.parsers.price_list_parser import parse_price_list
from pricelist_ingestion.services.llm.summarizer import DocumentSummarizer
from pricelist_ingestion.services.llm.summary_parser import summary_to_price_records

logger = structlog.get_logger(__name__)

METHOD_LLM = "llm"
METHOD_ROWS = "rows"

FileInput = Union[str, Path, IngestionFile]


def _as_ingestion_file(item: FileInput) -> IngestionFile:
    if isinstance(item, IngestionFile):
        return item
    return IngestionFile(path=str(item))


class PriceListIngestionService:
    """Ingests a batch of price list files into tagged price records.

    Args:
        context: Template context (currency, facility mapping, threshold,
            effective date) applied to every file
        summarizer: LLM summarizer; None disables the LLM path
        max_workers: Files processed concurrently
        max_bytes: Byte ceiling for row-based parsing
    """

    def __init__(
        self,
        context: Optional[ParseContext] = None,
        summarizer: Optional[DocumentSummarizer] = None,
        max_workers: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ):
        self.context = context or ParseContext()
        self.summarizer = summarizer
        self.max_workers = max_workers or settings.max_workers
        self.max_bytes = max_bytes or parser_settings.max_file_size_bytes
        self._log = logger.bind(component="PriceListIngestionService")

    def build_file_context(self, item: IngestionFile) -> ParseContext:
        update = {"source_file": PurePath(item.path).name}
        if item.facility_name:
            update["facility_name"] = item.facility_name
        return self.context.model_copy(update=update)

    async def _summarize(self, item: IngestionFile, context: ParseContext) -> Optional[List[PriceRecord]]:
        if self.summarizer is None or not self.summarizer.is_available():
            return None
        summary = await self.summarizer.summarize(item.path, context)
        if summary is None:
            return None
        records = summary_to_price_records(summary, context)
        return records or None

    async def ingest_file(self, item: FileInput) -> Tuple[List[PriceRecord], FileIngestionResult]:
        """Ingest one file; errors are captured in the returned result."""
        item = _as_ingestion_file(item)
        context = self.build_file_context(item)
        result = FileIngestionResult(path=item.path, source_file=context.source_file or item.path)
        log = self._log.bind(source_file=result.source_file)

        try:
            detect_container_type(item.path)
            ensure_within_size(item.path, self.max_bytes)

            records = await self._summarize(item, context)
            method = METHOD_LLM
            if records is None:
                records = await asyncio.to_thread(parse_price_list, item.path, context, self.max_bytes)
                method = METHOD_ROWS
        except DataIngestionError as e:
            log.warning("file_skipped", error_type=type(e).__name__, error=e.message)
            result.error = e.message
            return [], result
        except Exception as e:
            log.exception("file_failed", error_type=type(e).__name__, error=str(e))
            result.error = f"unexpected error: {e}"
            return [], result

        result.method = method if records else None
        result.record_count = len(records)
        log.info("file_ingested", method=result.method, record_count=len(records))
        return records, result

    async def ingest_files(self, files: Sequence[FileInput]) -> IngestionResult:
        """Ingest files concurrently and concatenate results in input order."""
        semaphore = asyncio.Semaphore(self.max_workers)

        async def run(item: FileInput) -> Tuple[List[PriceRecord], FileIngestionResult]:
            async with semaphore:
                return await self.ingest_file(item)

        outcomes = await asyncio.gather(*(run(item) for item in files))

        batch = IngestionResult()
        for records, file_result in outcomes:
            batch.records.extend(records)
            batch.files.append(file_result)

        self._log.info(
            "ingestion_completed",
            file_count=len(batch.files),
            files_failed=batch.files_failed,
            record_count=len(batch.records),
        )
        return batch
