"""Cache-aside geo lookups over the Redis index and the external providers."""

from typing import Callable, Optional, Type

from prometheus_client import Counter

from app.geo_service.errors import CacheUnavailableError
from app.logging_config import logger
from app.models.geo import (
    AddressKey,
    AddressRecord,
    GeoRecord,
    GeoSource,
    QueryKey,
    WikiDataRecord,
)
from app.models.lookup import BackendError, Hit, LookupResult, Miss
from app.providers.nominatim import StreetGeocoder
from app.providers.wikidata import WikidataLookup
from app.redis_cache.cache import GeoIndex

CACHE_LOOKUPS = Counter(
    "geo_cache_lookups_total", "Geo cache lookups by outcome", ["type", "outcome"]
)
PROVIDER_CALLS = Counter(
    "geo_provider_calls_total", "External geocoding provider calls", ["provider"]
)


class GeoInformator:
    """Resolves addresses and free-text queries, caching provider results.

    Holds no per-request state; one instance serves the whole process.
    """

    def __init__(
        self,
        cache: GeoIndex,
        street_geocoder: StreetGeocoder,
        wikidata: WikidataLookup,
    ):
        self.cache = cache
        self.street_geocoder = street_geocoder
        self.wikidata = wikidata

    def resolve_by_address(self, key: AddressKey) -> LookupResult:
        """Resolve a street address through the cache or the street geocoder."""
        return self._resolve(
            source=GeoSource.nominatim,
            cache_key=key.cache_key,
            model=AddressRecord,
            fetch=lambda: self.street_geocoder.create_geo_node(key),
            log_context={"address": key.describe()},
        )

    def resolve_by_query(self, key: QueryKey) -> LookupResult:
        """Resolve a free-text query through the cache or Wikidata."""
        return self._resolve(
            source=GeoSource.wikidata,
            cache_key=key.cache_key,
            model=WikiDataRecord,
            fetch=lambda: self.wikidata.create_geo_node(key),
            log_context={"query": key.describe()},
        )

    def _resolve(
        self,
        *,
        source: GeoSource,
        cache_key: str,
        model: Type[GeoRecord],
        fetch: Callable[[], Optional[GeoRecord]],
        log_context: dict,
    ) -> LookupResult:
        try:
            record = self.cache.search(source, cache_key, model)
        except CacheUnavailableError as exc:
            CACHE_LOOKUPS.labels(type=source.value, outcome="error").inc()
            return BackendError(cause=str(exc))

        if record is not None:
            CACHE_LOOKUPS.labels(type=source.value, outcome="hit").inc()
            logger.info("CACHE_GEO_HIT", source=source.value, **log_context)
            return Hit(record=record, cached=True)

        # never looked up before
        CACHE_LOOKUPS.labels(type=source.value, outcome="miss").inc()
        logger.info("CACHE_GEO_MISS", source=source.value, **log_context)
        PROVIDER_CALLS.labels(provider=source.value).inc()
        record = fetch()
        if record is None:
            return Miss()
        self.cache.add(cache_key, record)
        return Hit(record=record, cached=False)
