"""
Document Summarizer

LLM-assisted extraction of a whole price list document:

1. Size check against the LLM byte ceiling
2. SHA-256 of the file bytes -> cache key; a cache hit returns immediately
3. Bounded preview -> structured-extraction prompt -> one LLM call
4. Response validation (facility, items, prices) via summary_parser
5. Cache write, then return

Every "could not extract" outcome returns None so callers can fall back to
row-based parsing. Only cache store failures propagate (CacheStoreError).
"""

import asyncio
import hashlib
from datetime import datetime, timezone
from pathlib import Path, PurePath
from typing import Optional, Union

import structlog

from pricelist_ingestion.config import CacheSettings, LLMBackendType, LLMSettings, cache_settings, llm_settings
from pricelist_ingestion.errors.exceptions import LLMError, ParserError
from pricelist_ingestion.models.document_summary import DocumentSummary, DocumentSummaryCacheRecord
from pricelist_ingestion.models.parse_context import ParseContext
from pricelist_ingestion.parsers.containers import ensure_within_size
from pricelist_ingestion.services.llm.client import LLMClient, LLMConfig, create_llm_client
from pricelist_ingestion.services.llm.document_preview import extract_document_preview
from pricelist_ingestion.services.llm.prompts import build_document_summary_prompt
from pricelist_ingestion.services.llm.summary_parser import parse_document_summary_response
from pricelist_ingestion.stores.base import DocumentStore
from pricelist_ingestion.stores.memory_store import InMemoryDocumentStore

logger = structlog.get_logger(__name__)

HASH_CHUNK_SIZE = 1024 * 1024


def compute_file_hash(file_path: Union[str, Path]) -> str:
    """Hex SHA-256 of the file contents."""
    digest = hashlib.sha256()
    with open(file_path, "rb") as handle:
        for chunk in iter(lambda: handle.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class DocumentSummarizer:
    """Content-addressed, cached LLM summarization of price list files."""

    def __init__(
        self,
        settings: Optional[LLMSettings] = None,
        store: Optional[DocumentStore[DocumentSummaryCacheRecord]] = None,
        client: Optional[LLMClient] = None,
        cache: Optional[CacheSettings] = None,
    ):
        self.settings = settings or llm_settings
        self.cache = cache or cache_settings
        self.store = store if store is not None else InMemoryDocumentStore()
        self.config = LLMConfig.from_settings(self.settings)
        self._client = client
        self._log = logger.bind(component="DocumentSummarizer", model=self.settings.model)

    @property
    def client(self) -> LLMClient:
        if self._client is None:
            self._client = create_llm_client(self.config)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()

    def is_available(self) -> bool:
        """Enabled, and configured with credentials where the backend needs them."""
        if not self.settings.enabled:
            return False
        if self.settings.backend == LLMBackendType.OPENAI and not self.settings.api_key:
            return False
        return True

    def cache_key(self, file_hash: str) -> str:
        return f"{self.cache.key_prefix}{file_hash}"

    async def summarize(
        self,
        file_path: Union[str, Path],
        context: ParseContext,
    ) -> Optional[DocumentSummary]:
        """Summarize one file, or None when no usable summary is available.

        Raises:
            CacheStoreError: The cache store failed
        """
        source_file = context.source_file or PurePath(str(file_path)).name
        log = self._log.bind(source_file=source_file)

        if not self.is_available():
            log.debug("llm_summary_unavailable", enabled=self.settings.enabled)
            return None

        try:
            ensure_within_size(file_path, self.settings.max_bytes)
            file_hash = await asyncio.to_thread(compute_file_hash, file_path)
        except (ParserError, OSError) as e:
            log.info("llm_summary_skipped", reason=str(e))
            return None

        key = self.cache_key(file_hash)
        log = log.bind(cache_key=key)

        if await self.store.exists(key):
            cached = await self.store.get(key)
            if cached is not None:
                log.info("llm_summary_cache_hit")
                return cached.summary

        try:
            preview = await asyncio.to_thread(
                extract_document_preview,
                file_path,
                self.settings.max_rows,
                self.settings.max_chars,
                self.settings.max_bytes,
            )
        except ParserError as e:
            log.warning("llm_preview_failed", error=str(e))
            return None
        if preview is None or not preview.preview.strip():
            log.info("llm_preview_empty")
            return None

        prompt = build_document_summary_prompt(preview, context, model=self.config.model)

        try:
            response = await self.client.summarize(prompt, self.config)
        except LLMError as e:
            log.warning("llm_summary_failed", error=e.message)
            return None
        except Exception as e:
            log.error("llm_summary_client_error", error=str(e), error_type=type(e).__name__)
            return None

        summary = parse_document_summary_response(
            response.content,
            source_file,
            threshold=context.facility_inference_threshold,
        )
        if summary is None:
            log.warning("llm_summary_rejected")
            return None

        extracted_at = datetime.now(timezone.utc).isoformat()
        metadata = summary.document_metadata.model_copy(
            update={
                "source_file": source_file,
                "extracted_at": extracted_at,
                "model": response.model or self.config.model,
                "tokens_used": response.tokens_used,
            }
        )
        summary = summary.model_copy(update={"document_metadata": metadata})

        record = DocumentSummaryCacheRecord(
            file_hash=file_hash,
            source_file=source_file,
            model=metadata.model,
            extracted_at=extracted_at,
            summary=summary,
        )
        await self.store.put(
            key,
            record,
            tags={"fileHash": file_hash, "sourceFile": source_file, "model": metadata.model},
        )

        log.info(
            "llm_summary_created",
            item_count=len(summary.items),
            facility_name=summary.facility_name,
            tokens_used=response.tokens_used,
            truncated=preview.truncated,
        )
        return summary
