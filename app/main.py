"""FastAPI application routes, middleware, and metrics."""

import time
import uuid
from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from app.geo_service.errors import ExternalAPIError, GeoServiceError
from app.geo_service.lookup import GeoInformator
from app.health.health_check import (
    is_nominatim_available,
    is_redis_available,
    is_wikidata_available,
)
from app.logging_config import logger
from app.models.geo import AddressKey, GeoRecord, QueryKey
from app.models.health import Dependencies, HealthResponse, ServiceStatus
from app.models.lookup import BackendError, LookupResult, Miss
from app.providers.nominatim import StreetGeocoder
from app.providers.wikidata import WikidataLookup
from app.redis_cache.cache import geo_index
from structlog.contextvars import bind_contextvars, clear_contextvars

app = FastAPI()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "HTTP request duration in seconds", ["path"]
)


@lru_cache
def get_informator() -> GeoInformator:
    """Build the process-wide lookup service on first use."""
    return GeoInformator(
        cache=geo_index(),
        street_geocoder=StreetGeocoder(),
        wikidata=WikidataLookup(),
    )


@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Log request details, attach a request ID, and record metrics.

    Args:
        request: Incoming HTTP request.
        call_next: FastAPI handler for the next middleware/app.

    Returns:
        The response produced by the downstream handler.
    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    bind_contextvars(request_id=request_id)
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response
    finally:
        duration_s = time.perf_counter() - start
        duration_ms = round(duration_s * 1000, 2)
        status_code = getattr(response, "status_code", 500)
        logger.info(
            "HTTP_REQUEST",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
        REQUEST_COUNT.labels(
            method=request.method, path=request.url.path, status_code=status_code
        ).inc()
        REQUEST_LATENCY.labels(path=request.url.path).observe(duration_s)
        clear_contextvars()


@app.exception_handler(ExternalAPIError)
async def external_api_error_handler(request: Request, exc: ExternalAPIError):
    """Convert geocoding provider errors into 502 responses.

    Args:
        request: Incoming HTTP request.
        exc: Raised provider error.

    Returns:
        A JSON response with the error detail.
    """
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(GeoServiceError)
async def geo_service_error_handler(request: Request, exc: GeoServiceError):
    """Convert unexpected geo service errors into 500 responses."""
    return JSONResponse(status_code=500, content={"detail": "Unexpected error"})


def _field_response(
    result: LookupResult,
    tag: str,
    key: AddressKey,
    extract: Callable[[GeoRecord], Optional[object]],
) -> Response:
    """Render one scalar field of an address lookup as plain text.

    Args:
        result: Outcome of the lookup.
        tag: Label naming the requested value in the error message.
        key: Address the lookup was made for.
        extract: Picks the requested value out of the record.

    Returns:
        200 with the value, 204 when there is no value, 500 when the cache
        could not be searched.
    """
    if isinstance(result, BackendError):
        return PlainTextResponse(
            f"{result.cause} {tag} {key.describe()}", status_code=500
        )
    if isinstance(result, Miss):
        return Response(status_code=204)
    value = extract(result.record)
    if value is None:
        return Response(status_code=204)
    return PlainTextResponse(str(value))


def _latitude(record: GeoRecord):
    """Return the latitude of a record, or None without a geocode."""
    return record.geocode.latitude if record.geocode else None


def _longitude(record: GeoRecord):
    """Return the longitude of a record, or None without a geocode."""
    return record.geocode.longitude if record.geocode else None


@app.get("/")
async def root():
    """Return a basic liveness response."""
    return {"message": "Hello World"}


@app.get("/geo/wikidata")
def get_wiki_data(
    q: str = Query(..., min_length=1),
    informator: GeoInformator = Depends(get_informator),
) -> Response:
    """Look up the Wikidata node for a free-text query.

    Args:
        q: Free-text query string.
        informator: Lookup service.

    Returns:
        The record as JSON, 204 if nothing matches, 500 on cache failure.
    """
    key = QueryKey(query=q)
    result = informator.resolve_by_query(key)
    if isinstance(result, BackendError):
        return PlainTextResponse(
            f"{result.cause} `geoNode` {key.describe()}", status_code=500
        )
    if isinstance(result, Miss):
        return Response(status_code=204)
    return JSONResponse(content=result.record.model_dump(mode="json"))


@app.get("/geo/postcode")
def get_post_code(
    street: str = Query(..., min_length=1),
    city: str = Query(..., min_length=1),
    country: str = Query(..., min_length=1),
    number: Optional[str] = None,
    informator: GeoInformator = Depends(get_informator),
) -> Response:
    """Get the postal code for a street address, optionally with house number."""
    key = AddressKey.with_number(street, number, city, country)
    result = informator.resolve_by_address(key)
    return _field_response(result, "`postCode`", key, lambda record: record.postalcode)


@app.get("/geo/lat")
def get_lat(
    street: str = Query(..., min_length=1),
    city: str = Query(..., min_length=1),
    country: str = Query(..., min_length=1),
    number: Optional[str] = None,
    informator: GeoInformator = Depends(get_informator),
) -> Response:
    """Get the latitude for a street address, optionally with house number."""
    key = AddressKey.with_number(street, number, city, country)
    result = informator.resolve_by_address(key)
    return _field_response(result, "`latLong` (for lat)", key, _latitude)


@app.get("/geo/long")
def get_long(
    street: str = Query(..., min_length=1),
    city: str = Query(..., min_length=1),
    country: str = Query(..., min_length=1),
    number: Optional[str] = None,
    informator: GeoInformator = Depends(get_informator),
) -> Response:
    """Get the longitude for a street address, optionally with house number."""
    key = AddressKey.with_number(street, number, city, country)
    result = informator.resolve_by_address(key)
    return _field_response(result, "`latLong` (for long)", key, _longitude)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Report API health and dependency availability.

    Returns:
        A HealthResponse containing dependency status.
    """
    nominatim_available = await is_nominatim_available()
    wikidata_available = await is_wikidata_available()
    return HealthResponse(
        status="ok",
        dependencies=Dependencies(
            nominatim=ServiceStatus.available
            if nominatim_available
            else ServiceStatus.not_available,
            wikidata=ServiceStatus.available
            if wikidata_available
            else ServiceStatus.not_available,
            redis=is_redis_available(),
        ),
    )


@app.get("/metrics")
async def metrics():
    """Expose Prometheus metrics for scraping."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
