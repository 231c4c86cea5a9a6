"""Geo record models and the keys used to look them up."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class GeoSource(str, Enum):
    """Provider that produced a record; also namespaces cache keys."""

    nominatim = "nominatim"
    wikidata = "wikidata"


def normalize_key_part(value: str) -> str:
    """Normalize a lookup string for stable cache keys.

    Args:
        value: Raw user input.

    Returns:
        Lower-cased value with surrounding and repeated whitespace removed.
    """
    return " ".join(value.lower().split())


class Geocode(BaseModel):
    """Latitude/longitude pair."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float


class GeoRecord(BaseModel):
    """Fields shared by every resolved record."""

    model_config = ConfigDict(frozen=True)

    postalcode: Optional[str] = None
    geocode: Optional[Geocode] = None
    source: GeoSource


class AddressRecord(GeoRecord):
    """Street address resolved by the street geocoder."""

    street: str
    city: str
    country: str
    geocode: Geocode
    source: GeoSource = GeoSource.nominatim


class WikiDataRecord(GeoRecord):
    """Wikidata entity resolved from a free-text query."""

    query: str
    id: str
    label: Optional[str] = None
    description: Optional[str] = None
    source: GeoSource = GeoSource.wikidata


class AddressKey(BaseModel):
    """Street/city/country tuple used to probe the cache."""

    model_config = ConfigDict(frozen=True)

    street: str
    city: str
    country: str

    @classmethod
    def with_number(
        cls, street: str, number: Optional[str], city: str, country: str
    ) -> "AddressKey":
        """Build a key, appending the house number to the street if given."""
        if number:
            street = f"{street} {number}"
        return cls(street=street, city=city, country=country)

    @property
    def cache_key(self) -> str:
        # separators inside a part are escaped so distinct tuples never share a key
        return "|".join(
            normalize_key_part(part).replace("\\", "\\\\").replace("|", "\\|")
            for part in (self.street, self.city, self.country)
        )

    def describe(self) -> str:
        return f"{self.street}+{self.city}+{self.country}"


class QueryKey(BaseModel):
    """Free-text query used to probe the cache."""

    model_config = ConfigDict(frozen=True)

    query: str

    @property
    def cache_key(self) -> str:
        return normalize_key_part(self.query)

    def describe(self) -> str:
        return self.query
