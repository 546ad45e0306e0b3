"""Configuration management using pydantic-settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List, Optional
from enum import Enum
import structlog


class LLMBackendType(str, Enum):
    """Supported LLM backends."""
    OPENAI = "openai"
    OLLAMA = "ollama"
    MOCK = "mock"


class CacheBackendType(str, Enum):
    """Supported document summary cache backends."""
    MEMORY = "memory"
    REDIS = "redis"


class ParserSettings(BaseSettings):
    """Row-based price list parser defaults.

    All settings prefixed with PARSER_ (e.g., PARSER_DEFAULT_CURRENCY=NGN).
    Values here are only defaults; a ParseContext built for a single file
    may override any of them.
    """

    default_currency: str = Field(
        default="NGN",
        min_length=3,
        max_length=3,
        description="Currency applied when a document does not state one"
    )
    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Files larger than this are rejected without being read"
    )
    facility_inference_threshold: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Minimum confidence for a facility name inferred from document content"
    )
    filename_fallback_confidence: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Confidence assigned to a facility name derived from the file name; "
                    "the fallback is used only when the inference threshold does not exceed it"
    )
    provider_id: str = Field(
        default="file_price_list",
        description="Provider identifier stamped on every record"
    )
    procedure_code_max_length: int = Field(
        default=32,
        ge=16,
        le=128,
        description="Upper bound on generated procedure code length"
    )
    generic_facility_tokens: List[str] = Field(
        default_factory=lambda: [
            "hospital", "clinic", "general", "center", "centre",
            "facility", "medical", "healthcare", "health", "the", "of", "and",
        ],
        description="Tokens that on their own do not identify a facility"
    )
    non_facility_names: List[str] = Field(
        default_factory=lambda: [
            "price list", "tariff list", "office use", "for office use",
            "services only", "services", "unknown facility", "price",
            "tariff", "list",
        ],
        description="Names that are list titles rather than facilities"
    )

    model_config = SettingsConfigDict(
        env_prefix="PARSER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def max_file_size_bytes(self) -> int:
        """Byte ceiling derived from max_file_size_mb."""
        return self.max_file_size_mb * 1024 * 1024


class LLMSettings(BaseSettings):
    """LLM configuration for document summarization.

    All settings prefixed with LLM_ (e.g., LLM_MODEL=gpt-4o-mini)

    Supported backends:
    - openai: OpenAI-compatible chat completions API (requires API key)
    - ollama: Local Ollama server
    - mock: Mock client for testing
    """

    # Backend Configuration
    backend: LLMBackendType = Field(
        default=LLMBackendType.OPENAI,
        description="LLM backend to use (openai, ollama, mock)"
    )
    model: str = Field(
        default="gpt-4o-mini",
        description="Model used for structured extraction"
    )

    # OpenAI Configuration
    api_key: Optional[str] = Field(
        default=None,
        description="API key for the openai backend"
    )
    api_endpoint: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        description="OpenAI-compatible chat completions endpoint"
    )

    # Ollama Configuration
    ollama_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL"
    )

    # Request Configuration
    timeout: float = Field(
        default=120.0,
        ge=1.0,
        le=600.0,
        description="Request timeout in seconds"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Model temperature (lower = more deterministic)"
    )

    # Preview bounds
    max_rows: int = Field(
        default=5000,
        ge=1,
        description="Maximum rows included in a document preview"
    )
    max_chars: int = Field(
        default=50_000,
        ge=100,
        description="Maximum characters included in a document preview"
    )
    max_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Files larger than this are never sent to the LLM"
    )

    # Feature Flags
    enabled: bool = Field(
        default=False,
        description="Use LLM summarization before row-based parsing"
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class CacheSettings(BaseSettings):
    """Document summary cache configuration.

    All settings prefixed with CACHE_ (e.g., CACHE_BACKEND=redis)
    """

    backend: CacheBackendType = Field(
        default=CacheBackendType.MEMORY,
        description="Cache store backend (memory, redis)"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for the redis backend"
    )
    key_prefix: str = Field(
        default="doc_summary_",
        description="Prefix prepended to content hashes to form cache keys"
    )
    ttl_seconds: Optional[int] = Field(
        default=None,
        ge=1,
        description="Optional expiry for cached summaries (None = keep forever)"
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    log_level: str = "INFO"
    environment: str = "development"
    max_workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Maximum number of files ingested concurrently"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instances
settings = Settings()
parser_settings = ParserSettings()
llm_settings = LLMSettings()
cache_settings = CacheSettings()


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for JSON logging."""
    import logging

    logging.basicConfig(format="%(message)s", level=log_level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# Initialize logging on module import (after settings are loaded)
try:
    configure_logging(settings.log_level)
except Exception:
    # If settings fail to load, use default log level
    configure_logging("INFO")
