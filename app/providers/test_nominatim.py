import httpx
import pytest

from app.geo_service.errors import ExternalAPIError
from app.models.geo import AddressKey, Geocode
from app.providers.nominatim import StreetGeocoder


def make_response(url, payload, status_code=200):
    return httpx.Response(status_code, json=payload, request=httpx.Request("GET", url))


def test_create_geo_node(monkeypatch):
    calls = []

    def fake_get(url, params=None, headers=None, timeout=None):
        calls.append((url, params))
        return make_response(
            url,
            [
                {
                    "lat": "39.7817",
                    "lon": "-89.6501",
                    "address": {"postcode": "62701", "city": "Springfield"},
                }
            ],
        )

    monkeypatch.setattr("app.providers.http.httpx.get", fake_get)
    record = StreetGeocoder("https://nominatim.test/").create_geo_node(
        AddressKey(street="Main St 12", city="Springfield", country="US")
    )

    assert record.postalcode == "62701"
    assert record.geocode == Geocode(latitude=39.7817, longitude=-89.6501)
    assert record.source.value == "nominatim"
    url, params = calls[0]
    assert url == "https://nominatim.test/search"
    assert params["street"] == "Main St 12"
    assert params["city"] == "Springfield"
    assert params["country"] == "US"


def test_create_geo_node_without_match(monkeypatch):
    monkeypatch.setattr(
        "app.providers.http.httpx.get",
        lambda url, params=None, headers=None, timeout=None: make_response(url, []),
    )
    key = AddressKey(street="Nowhere", city="Nowhere", country="XX")
    assert StreetGeocoder().create_geo_node(key) is None


def test_create_geo_node_bad_payload(monkeypatch):
    monkeypatch.setattr(
        "app.providers.http.httpx.get",
        lambda url, params=None, headers=None, timeout=None: make_response(
            url, [{"address": {}}]
        ),
    )
    with pytest.raises(ExternalAPIError):
        StreetGeocoder().create_geo_node(
            AddressKey(street="Main St", city="Springfield", country="US")
        )


def test_create_geo_node_bad_status_is_not_retried(monkeypatch):
    calls = []

    def fake_get(url, params=None, headers=None, timeout=None):
        calls.append(url)
        return make_response(url, {}, status_code=503)

    monkeypatch.setattr("app.providers.http.httpx.get", fake_get)
    with pytest.raises(ExternalAPIError, match="Street geocoding failed"):
        StreetGeocoder().create_geo_node(
            AddressKey(street="Main St", city="Springfield", country="US")
        )
    assert len(calls) == 1
