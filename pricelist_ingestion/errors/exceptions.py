"""Custom exception hierarchy for price list ingestion errors."""


class DataIngestionError(Exception):
    """Base exception for all price list ingestion errors."""

    def __init__(self, message: str, *args, **kwargs):
        """Initialize error with message."""
        self.message = message
        super().__init__(message, *args, **kwargs)


class ParserError(DataIngestionError):
    """Raised when a source document cannot be read."""
    pass


class UnsupportedFileError(ParserError):
    """Raised when a file extension maps to no known container type."""
    pass


class FileTooLargeError(ParserError):
    """Raised when a file exceeds the configured byte ceiling."""

    def __init__(self, file_path: str, size: int, max_bytes: int):
        self.file_path = file_path
        self.size = size
        self.max_bytes = max_bytes
        super().__init__(
            f"file too large: {file_path} is {size} bytes (limit {max_bytes})"
        )


class LLMError(DataIngestionError):
    """Raised when an LLM call fails or returns unusable content."""
    pass


class CacheStoreError(DataIngestionError):
    """Raised when the document summary cache store fails."""
    pass
