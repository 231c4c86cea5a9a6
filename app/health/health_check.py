"""Health checks for Redis and the external geocoding providers."""

import httpx
from redis.exceptions import RedisError

from app.logging_config import logger
from app.models.health import ServiceStatus
from app.providers.http import USER_AGENT
from app.providers.nominatim import NOMINATIM_URL
from app.providers.wikidata import WIKIDATA_API_URL
from app.redis_cache.cache import redis_client


def is_redis_available() -> ServiceStatus:
    """Check Redis connectivity.

    Returns:
        ServiceStatus.available when Redis responds, else not_available.
    """
    try:
        redis_client.ping()
        logger.info("REDIS CONNECTED")
        return ServiceStatus.available
    except RedisError:
        logger.error("REDIS UNAVAILABLE")
        return ServiceStatus.not_available


async def is_nominatim_available() -> bool:
    """Check the Nominatim status endpoint.

    Returns:
        True if Nominatim reports status 0 (OK).
    """
    try:
        async with httpx.AsyncClient(timeout=5, headers={"User-Agent": USER_AGENT}) as client:
            response = await client.get(
                f"{NOMINATIM_URL.rstrip('/')}/status", params={"format": "json"}
            )
            return response.status_code == 200 and response.json().get("status") == 0
    except (httpx.HTTPError, ValueError):
        return False


async def is_wikidata_available() -> bool:
    """Check that the Wikidata API answers a site info query."""
    try:
        async with httpx.AsyncClient(timeout=5, headers={"User-Agent": USER_AGENT}) as client:
            response = await client.get(
                WIKIDATA_API_URL,
                params={"action": "query", "meta": "siteinfo", "format": "json"},
            )
            return response.status_code == 200 and "query" in response.json()
    except (httpx.HTTPError, ValueError):
        return False
