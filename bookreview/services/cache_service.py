import logging
from typing import Optional, Type, TypeVar

from pydantic import BaseModel

from bookreview.core.config import settings
from bookreview.db.redis_conn import redis_client

logger = logging.getLogger(__name__)

SchemaType = TypeVar("SchemaType", bound=BaseModel)


class CacheService:
    """
    Best-effort Redis cache for serialized response schemas.

    A failed or disabled cache behaves as a miss; nothing here is allowed to
    change what callers observe apart from latency.
    """

    def __init__(self, client=None, enabled: Optional[bool] = None, ttl: Optional[int] = None):
        self.client = client if client is not None else redis_client
        self.enabled = settings.CACHE_ENABLED if enabled is None else enabled
        self.ttl = ttl if ttl is not None else settings.CACHE_TTL_SECONDS

    async def get(self, key: str, schema: Type[SchemaType]) -> Optional[SchemaType]:
        """Return the cached value for `key` parsed as `schema`, or None."""
        if not self.enabled:
            return None
        try:
            cached_data = await self.client.get(key)
            if cached_data:
                return schema.model_validate_json(cached_data)
            return None
        except Exception:
            logger.warning(f"Cache lookup failed for key: {key}", exc_info=True)
            return None

    async def set(self, key: str, value: BaseModel, ttl: Optional[int] = None) -> None:
        if not self.enabled:
            return
        try:
            await self.client.set(key, value.model_dump_json(), ex=ttl or self.ttl)
        except Exception:
            logger.warning(f"Failed to cache value with key: {key}", exc_info=True)

    async def invalidate(self, prefix: str) -> None:
        """Drop every key starting with `prefix`."""
        if not self.enabled:
            return
        try:
            keys = [key async for key in self.client.scan_iter(match=f"{prefix}*")]
            if keys:
                await self.client.delete(*keys)
        except Exception:
            logger.warning(f"Failed to invalidate cache prefix: {prefix}", exc_info=True)


# Create a single, reusable instance for the rest of the application
cache_service = CacheService()
