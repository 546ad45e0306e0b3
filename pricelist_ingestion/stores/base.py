"""Key-value document store interface used for summary caching."""

from abc import ABC, abstractmethod
from typing import Dict, Generic, Optional, TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


class DocumentStore(ABC, Generic[ModelT]):
    """Async key-value store of pydantic documents.

    Writes are last-write-wins per key. ``tags`` are free-form string
    attributes kept alongside a value for lookup and audit; they are never
    needed to read the value back.
    """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True when ``key`` holds a value."""

    @abstractmethod
    async def get(self, key: str) -> Optional[ModelT]:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    async def put(self, key: str, value: ModelT, tags: Optional[Dict[str, str]] = None) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    async def close(self) -> None:
        """Release backend connections (no-op by default)."""
