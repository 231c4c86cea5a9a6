"""Street address geocoding through the Nominatim structured search API."""

import os
from typing import Optional

from app.geo_service.errors import ExternalAPIError
from app.logging_config import logger
from app.models.geo import AddressKey, AddressRecord, Geocode
from app.providers.http import request_json

NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org")


class StreetGeocoder:
    """Resolves street addresses to a postal code and coordinates."""

    def __init__(self, base_url: str = NOMINATIM_URL):
        self.base_url = base_url.rstrip("/")

    def create_geo_node(self, key: AddressKey) -> Optional[AddressRecord]:
        """Geocode an address.

        Args:
            key: Street (with house number, if any), city and country.

        Returns:
            A fully populated AddressRecord, or None if Nominatim has no match.

        Raises:
            ExternalAPIError: If the request fails or the payload is invalid.
        """
        log_context = {"address": key.describe()}
        results = request_json(
            url=f"{self.base_url}/search",
            params={
                "street": key.street,
                "city": key.city,
                "country": key.country,
                "format": "jsonv2",
                "addressdetails": 1,
                "limit": 1,
            },
            event_prefix="NOMINATIM",
            log_context=log_context,
            error_message="Street geocoding failed",
        )
        if not results:
            logger.info("NOMINATIM_NO_MATCH", **log_context)
            return None

        try:
            place = results[0]
            address = place.get("address") or {}
            return AddressRecord(
                street=key.street,
                city=key.city,
                country=key.country,
                postalcode=address.get("postcode"),
                geocode=Geocode(latitude=place["lat"], longitude=place["lon"]),
            )
        except (TypeError, KeyError, ValueError) as exc:
            logger.error("NOMINATIM_BAD_PAYLOAD", **log_context, error=str(exc))
            raise ExternalAPIError("Street geocoding failed") from exc
