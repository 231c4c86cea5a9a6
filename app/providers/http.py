"""HTTP helper shared by the external geocoding providers."""

import os
import time

import httpx

from app.geo_service.errors import ExternalAPIError
from app.logging_config import logger

USER_AGENT = os.getenv("GEO_USER_AGENT", "geo-informator/0.1")
PROVIDER_TIMEOUT_S = float(os.getenv("GEO_PROVIDER_TIMEOUT", "5"))
PROVIDER_ATTEMPTS = max(1, int(os.getenv("GEO_PROVIDER_ATTEMPTS", "1")))
RETRY_BASE_DELAY_S = 0.3
RETRY_MAX_DELAY_S = 2.0
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def request_json(
    *,
    url: str,
    params: dict,
    event_prefix: str,
    log_context: dict,
    error_message: str,
    attempts: int = PROVIDER_ATTEMPTS,
):
    """Execute an HTTP GET and return the decoded JSON body.

    Only retryable statuses and transport errors are attempted again, and only
    when ``attempts`` is greater than one.

    Args:
        url: The URL to call.
        params: Query parameters to include in the request.
        event_prefix: Log event prefix for consistent names.
        log_context: Extra log fields for all events.
        error_message: Error message to wrap in ExternalAPIError.
        attempts: Total number of tries.

    Returns:
        The decoded JSON payload.

    Raises:
        ExternalAPIError: When the request fails or the body is not JSON.
    """
    for attempt in range(1, attempts + 1):
        try:
            response = httpx.get(
                url,
                params=params,
                headers={"User-Agent": USER_AGENT},
                timeout=PROVIDER_TIMEOUT_S,
            )
            logger.info(
                f"{event_prefix}_RESPONSE",
                **log_context,
                status=response.status_code,
                attempt=attempt,
            )
            response.raise_for_status()
            try:
                return response.json()
            except ValueError as exc:
                logger.error(f"{event_prefix}_BAD_PAYLOAD", **log_context, error=str(exc))
                raise ExternalAPIError(error_message) from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            retryable = status_code in RETRYABLE_STATUS_CODES
            logger.error(
                f"{event_prefix}_BAD_STATUS",
                **log_context,
                status=status_code,
                attempt=attempt,
                retryable=retryable,
            )
            if not retryable or attempt == attempts:
                raise ExternalAPIError(error_message) from exc
        except httpx.RequestError as exc:
            logger.error(
                f"{event_prefix}_REQUEST_FAILED",
                **log_context,
                error=str(exc),
                attempt=attempt,
            )
            if attempt == attempts:
                raise ExternalAPIError(error_message) from exc

        delay = min(RETRY_BASE_DELAY_S * (2 ** (attempt - 1)), RETRY_MAX_DELAY_S)
        logger.info(
            f"{event_prefix}_RETRY",
            **log_context,
            attempt=attempt + 1,
            delay_s=delay,
        )
        time.sleep(delay)

    raise ExternalAPIError(error_message)
