"""
Redis Document Store

Values are stored as camelCase JSON strings under ``<key>``; tags live in a
companion hash under ``<key>:tags``. Both keys share the optional TTL.
"""

from typing import Dict, Optional, Type

import structlog
from pydantic import ValidationError as PydanticValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from pricelist_ingestion.errors.exceptions import CacheStoreError
from pricelist_ingestion.stores.base import DocumentStore, ModelT

logger = structlog.get_logger(__name__)

TAGS_KEY_SUFFIX = ":tags"


def _tags_key(key: str) -> str:
    return f"{key}{TAGS_KEY_SUFFIX}"


class RedisDocumentStore(DocumentStore[ModelT]):
    """Redis-backed store for one pydantic model type.

    Args:
        redis: redis.asyncio client (``decode_responses`` may be either value)
        model: Model class used to validate values read back
        ttl_seconds: Optional expiry applied on every write
    """

    def __init__(self, redis: Redis, model: Type[ModelT], ttl_seconds: Optional[int] = None):
        self._redis = redis
        self._model = model
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, model: Type[ModelT], ttl_seconds: Optional[int] = None) -> "RedisDocumentStore[ModelT]":
        return cls(Redis.from_url(url, decode_responses=True), model, ttl_seconds)

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._redis.exists(key))
        except RedisError as e:
            logger.error("cache_exists_failed", cache_key=key, error=str(e))
            raise CacheStoreError(f"cache exists failed for {key}: {e}") from e

    async def get(self, key: str) -> Optional[ModelT]:
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            logger.error("cache_get_failed", cache_key=key, error=str(e))
            raise CacheStoreError(f"cache get failed for {key}: {e}") from e

        if raw is None:
            return None
        try:
            return self._model.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.error("cache_value_invalid", cache_key=key, error=str(e))
            raise CacheStoreError(f"cached value for {key} is invalid") from e

    async def put(self, key: str, value: ModelT, tags: Optional[Dict[str, str]] = None) -> None:
        payload = value.model_dump_json(by_alias=True)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(key, payload, ex=self._ttl_seconds)
                if tags:
                    pipe.delete(_tags_key(key))
                    pipe.hset(_tags_key(key), mapping=tags)
                    if self._ttl_seconds:
                        pipe.expire(_tags_key(key), self._ttl_seconds)
                await pipe.execute()
        except RedisError as e:
            logger.error("cache_put_failed", cache_key=key, error=str(e))
            raise CacheStoreError(f"cache put failed for {key}: {e}") from e

        logger.debug("cache_put", cache_key=key, tags=tags)

    async def get_tags(self, key: str) -> Dict[str, str]:
        try:
            return await self._redis.hgetall(_tags_key(key))
        except RedisError as e:
            raise CacheStoreError(f"cache tag lookup failed for {key}: {e}") from e

    async def close(self) -> None:
        await self._redis.aclose()
