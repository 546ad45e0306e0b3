"""Error handling module."""
from pricelist_ingestion.errors.exceptions import (
    DataIngestionError,
    ParserError,
    UnsupportedFileError,
    FileTooLargeError,
    LLMError,
    CacheStoreError,
)

__all__ = [
    "DataIngestionError",
    "ParserError",
    "UnsupportedFileError",
    "FileTooLargeError",
    "LLMError",
    "CacheStoreError",
]
