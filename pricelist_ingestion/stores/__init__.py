"""Document stores for cached LLM summaries."""

from pricelist_ingestion.stores.base import DocumentStore
from pricelist_ingestion.stores.memory_store import InMemoryDocumentStore
from pricelist_ingestion.stores.redis_store import RedisDocumentStore

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "RedisDocumentStore",
]
