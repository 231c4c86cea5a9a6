"""Redis cache for resolved geo records."""

import os
from functools import partial
from typing import Optional, Type, TypeVar

from redis import Redis
from redis.exceptions import RedisError

from app.geo_service.errors import CacheUnavailableError
from app.logging_config import logger
from app.models.geo import GeoRecord, GeoSource

REDIS_HOST = os.getenv("REDIS_HOST", "redis")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))

redis_client = Redis(
    host=REDIS_HOST,
    port=REDIS_PORT,
    db=int(os.getenv("REDIS_DB", "0")),
    decode_responses=True,
)
GEO_TTL_S = int(os.getenv("GEO_TTL", "0"))

RecordT = TypeVar("RecordT", bound=GeoRecord)


def geo_key(source: GeoSource, cache_key: str) -> str:
    """Build the Redis key for a record of the given provenance."""
    return f"geo:{source.value}:{cache_key}"


class GeoIndex:
    """Cache wrapper for storing and retrieving geo records by lookup key."""

    def __init__(self, client):
        self.redis_client: Redis = client

    def search(
        self, source: GeoSource, cache_key: str, model: Type[RecordT]
    ) -> Optional[RecordT]:
        """Look up a stored record.

        Args:
            source: Provider namespace to search in.
            cache_key: Normalized lookup key.
            model: Record model the stored document is parsed into.

        Returns:
            The stored record, or None when nothing is stored under the key.

        Raises:
            CacheUnavailableError: If Redis cannot be reached.
        """
        try:
            document = self.redis_client.get(geo_key(source, cache_key))
        except RedisError as exc:
            logger.error(
                "REDIS_GET_GEO_FAILED",
                source=source.value,
                key=cache_key,
                error=str(exc),
            )
            raise CacheUnavailableError(f"Search failed, {exc}") from exc
        if not document:
            return None
        return model.model_validate_json(document)

    def add(self, cache_key: str, record: GeoRecord) -> None:
        """Store a record under its provenance namespace.

        A failed write is logged and otherwise ignored.

        Args:
            cache_key: Normalized lookup key.
            record: Record produced by a provider.
        """
        try:
            ttl = GEO_TTL_S if GEO_TTL_S > 0 else None
            self.redis_client.set(
                geo_key(record.source, cache_key), record.model_dump_json(), ex=ttl
            )
        except RedisError as exc:
            logger.error(
                "REDIS_SAVE_GEO_FAILED",
                source=record.source.value,
                key=cache_key,
                error=str(exc),
            )


geo_index = partial(GeoIndex, client=redis_client)
