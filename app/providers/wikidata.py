"""Free-text lookups against the Wikidata API."""

import os
from typing import Optional

from app.geo_service.errors import ExternalAPIError
from app.logging_config import logger
from app.models.geo import Geocode, QueryKey, WikiDataRecord
from app.providers.http import request_json

WIKIDATA_API_URL = os.getenv("WIKIDATA_API_URL", "https://www.wikidata.org/w/api.php")
WIKIDATA_LANGUAGE = os.getenv("WIKIDATA_LANGUAGE", "en")

COORDINATE_LOCATION = "P625"
POSTAL_CODE = "P281"


def _first_claim_value(entity: dict, prop: str):
    """Return the datavalue of the first claim for ``prop``, if any."""
    for claim in entity.get("claims", {}).get(prop, []):
        value = claim.get("mainsnak", {}).get("datavalue", {}).get("value")
        if value is not None:
            return value
    return None


def _localized(entity: dict, field: str, language: str) -> Optional[str]:
    entry = entity.get(field, {}).get(language)
    return entry["value"] if entry else None


class WikidataLookup:
    """Resolves a free-text query to its best matching Wikidata entity."""

    def __init__(self, api_url: str = WIKIDATA_API_URL, language: str = WIKIDATA_LANGUAGE):
        self.api_url = api_url
        self.language = language

    def _search(self, query: str) -> Optional[str]:
        payload = request_json(
            url=self.api_url,
            params={
                "action": "wbsearchentities",
                "search": query,
                "language": self.language,
                "type": "item",
                "limit": 1,
                "format": "json",
            },
            event_prefix="WIKIDATA_SEARCH",
            log_context={"query": query},
            error_message="Wikidata search failed",
        )
        try:
            hits = payload.get("search") or []
            return hits[0]["id"] if hits else None
        except (AttributeError, KeyError, IndexError, TypeError) as exc:
            logger.error("WIKIDATA_SEARCH_BAD_PAYLOAD", query=query, error=str(exc))
            raise ExternalAPIError("Wikidata search failed") from exc

    def _entity(self, entity_id: str) -> dict:
        payload = request_json(
            url=self.api_url,
            params={
                "action": "wbgetentities",
                "ids": entity_id,
                "props": "labels|descriptions|claims",
                "languages": self.language,
                "format": "json",
            },
            event_prefix="WIKIDATA_ENTITY",
            log_context={"entity": entity_id},
            error_message="Wikidata entity lookup failed",
        )
        try:
            return payload["entities"][entity_id]
        except (TypeError, KeyError) as exc:
            logger.error("WIKIDATA_ENTITY_BAD_PAYLOAD", entity=entity_id, error=str(exc))
            raise ExternalAPIError("Wikidata entity lookup failed") from exc

    def create_geo_node(self, key: QueryKey) -> Optional[WikiDataRecord]:
        """Look up the entity best matching the query.

        Args:
            key: Free-text query.

        Returns:
            A WikiDataRecord with any coordinate and postal code claims, or
            None if the search has no result.

        Raises:
            ExternalAPIError: If a request fails or a payload is invalid.
        """
        entity_id = self._search(key.query)
        if entity_id is None:
            logger.info("WIKIDATA_NO_MATCH", query=key.query)
            return None

        entity = self._entity(entity_id)
        coordinate = _first_claim_value(entity, COORDINATE_LOCATION)
        postal_code = _first_claim_value(entity, POSTAL_CODE)
        try:
            return WikiDataRecord(
                query=key.query,
                id=entity_id,
                label=_localized(entity, "labels", self.language),
                description=_localized(entity, "descriptions", self.language),
                postalcode=postal_code,
                geocode=Geocode(
                    latitude=coordinate["latitude"],
                    longitude=coordinate["longitude"],
                )
                if coordinate
                else None,
            )
        except (TypeError, KeyError, ValueError) as exc:
            logger.error("WIKIDATA_ENTITY_BAD_PAYLOAD", entity=entity_id, error=str(exc))
            raise ExternalAPIError("Wikidata entity lookup failed") from exc
