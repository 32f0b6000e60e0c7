"""Redis caches for place context, import previews and coordinate lookups."""
import json
import logging
from typing import Generic, Optional, Type, TypeVar

import redis.asyncio as redis
from pydantic import BaseModel, ValidationError

from app.config import Settings
from app.models.enrichment import AiContext

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def create_redis_client(settings: Settings) -> redis.Redis:
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        password=settings.redis_password,
        decode_responses=True,
    )


class ModelCache(Generic[ModelT]):
    """Caches one pydantic model type under a key prefix. Every error is a cache miss."""

    def __init__(self, client: redis.Redis, ttl_seconds: int, prefix: str, model: Type[ModelT]):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix
        self.model = model

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[ModelT]:
        try:
            value = await self.client.get(self._key(key))
            if value:
                return self.model.model_validate(json.loads(value))
            return None
        except (redis.RedisError, ValueError, ValidationError) as e:
            logger.warning(f"Redis GET error: {e}")
            return None

    async def set(self, key: str, value: ModelT) -> bool:
        try:
            await self.client.setex(self._key(key), self.ttl_seconds, value.model_dump_json())
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis SET error: {e}")
            return False

    async def ping(self) -> bool:
        """Check if Redis is connected."""
        try:
            return await self.client.ping()
        except redis.RedisError:
            return False


class ContextCache(ModelCache[AiContext]):
    """AiContext per external place id."""

    def __init__(self, client: redis.Redis, ttl_seconds: int):
        super().__init__(client, ttl_seconds, "place_context", AiContext)
