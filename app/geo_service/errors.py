"""Exceptions raised by the geo lookup layers."""


class GeoServiceError(Exception):
    """Base exception for geo service failures."""
    pass


class CacheUnavailableError(GeoServiceError):
    """Raised when the cache backend itself cannot be reached."""
    pass


class ExternalAPIError(GeoServiceError):
    """Raised when an external geocoding provider fails."""
    pass
