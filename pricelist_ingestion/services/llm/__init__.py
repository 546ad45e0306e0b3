"""LLM-assisted document summarization.

Supports:
- OpenAI-compatible chat completions API
- Ollama (local deployment)
- Mock client for tests

Usage:
    from pricelist_ingestion.services.llm import DocumentSummarizer

    summarizer = DocumentSummarizer()
    summary = await summarizer.summarize(path, context)
"""

from .client import LLMClient, LLMConfig, LLMResponse, MockLLMClient, OllamaClient, OpenAIChatClient, create_llm_client, get_llm_client
from .summarizer import DocumentSummarizer, compute_file_hash
from .summary_parser import parse_document_summary_response, summary_to_price_records

__all__ = [
    "LLMClient",
    "LLMConfig",
    "LLMResponse",
    "MockLLMClient",
    "OllamaClient",
    "OpenAIChatClient",
    "create_llm_client",
    "get_llm_client",
    "DocumentSummarizer",
    "compute_file_hash",
    "parse_document_summary_response",
    "summary_to_price_records",
]
