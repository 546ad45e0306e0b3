"""In-process document store."""

from typing import Dict, Optional

from pricelist_ingestion.stores.base import DocumentStore, ModelT


class InMemoryDocumentStore(DocumentStore[ModelT]):
    """Dict-backed store; values live as long as the instance."""

    def __init__(self) -> None:
        self._values: Dict[str, ModelT] = {}
        self._tags: Dict[str, Dict[str, str]] = {}

    async def exists(self, key: str) -> bool:
        return key in self._values

    async def get(self, key: str) -> Optional[ModelT]:
        return self._values.get(key)

    async def put(self, key: str, value: ModelT, tags: Optional[Dict[str, str]] = None) -> None:
        self._values[key] = value
        self._tags[key] = dict(tags or {})

    def tags_for(self, key: str) -> Dict[str, str]:
        return dict(self._tags.get(key, {}))

    def __len__(self) -> int:
        return len(self._values)
