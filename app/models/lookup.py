"""Outcome variants of a cache-aside lookup."""

from typing import Union

from pydantic import BaseModel

from app.models.geo import AddressRecord, WikiDataRecord


class Hit(BaseModel):
    """A record was found in the cache or produced by a provider."""

    record: Union[AddressRecord, WikiDataRecord]
    cached: bool


class Miss(BaseModel):
    """Neither the cache nor the provider had a record."""


class BackendError(BaseModel):
    """The cache backend could not be reached."""

    cause: str


LookupResult = Union[Hit, Miss, BackendError]
