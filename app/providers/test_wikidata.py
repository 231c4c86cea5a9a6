import httpx
import pytest

from app.geo_service.errors import ExternalAPIError
from app.models.geo import Geocode, QueryKey
from app.providers.wikidata import WikidataLookup

BERLIN_ENTITY = {
    "entities": {
        "Q64": {
            "labels": {"en": {"language": "en", "value": "Berlin"}},
            "descriptions": {"en": {"language": "en", "value": "capital of Germany"}},
            "claims": {
                "P625": [
                    {
                        "mainsnak": {
                            "datavalue": {
                                "value": {"latitude": 52.516666666667, "longitude": 13.383333333333}
                            }
                        }
                    }
                ],
                "P281": [{"mainsnak": {"datavalue": {"value": "10115"}}}],
            },
        }
    }
}


def fake_wikidata(search_payload, entity_payload=BERLIN_ENTITY):
    def fake_get(url, params=None, headers=None, timeout=None):
        request = httpx.Request("GET", url)
        if params["action"] == "wbsearchentities":
            return httpx.Response(200, json=search_payload, request=request)
        if params["action"] == "wbgetentities":
            return httpx.Response(200, json=entity_payload, request=request)
        raise AssertionError(f"Unexpected action: {params['action']}")

    return fake_get


def test_create_geo_node(monkeypatch):
    monkeypatch.setattr(
        "app.providers.http.httpx.get", fake_wikidata({"search": [{"id": "Q64"}]})
    )
    record = WikidataLookup().create_geo_node(QueryKey(query="Berlin"))

    assert record.id == "Q64"
    assert record.query == "Berlin"
    assert record.label == "Berlin"
    assert record.description == "capital of Germany"
    assert record.postalcode == "10115"
    assert record.geocode == Geocode(latitude=52.516666666667, longitude=13.383333333333)
    assert record.source.value == "wikidata"


def test_create_geo_node_without_coordinates(monkeypatch):
    entity = {"entities": {"Q1": {"labels": {}, "descriptions": {}, "claims": {}}}}
    monkeypatch.setattr(
        "app.providers.http.httpx.get",
        fake_wikidata({"search": [{"id": "Q1"}]}, entity),
    )
    record = WikidataLookup().create_geo_node(QueryKey(query="universe"))
    assert record.geocode is None
    assert record.label is None


def test_create_geo_node_without_match(monkeypatch):
    monkeypatch.setattr("app.providers.http.httpx.get", fake_wikidata({"search": []}))
    assert WikidataLookup().create_geo_node(QueryKey(query="xyzzy")) is None


def test_create_geo_node_missing_entity(monkeypatch):
    monkeypatch.setattr(
        "app.providers.http.httpx.get",
        fake_wikidata({"search": [{"id": "Q64"}]}, {"entities": {}}),
    )
    with pytest.raises(ExternalAPIError, match="Wikidata entity lookup failed"):
        WikidataLookup().create_geo_node(QueryKey(query="Berlin"))


def test_create_geo_node_search_hit_without_id(monkeypatch):
    monkeypatch.setattr(
        "app.providers.http.httpx.get", fake_wikidata({"search": [{"label": "Berlin"}]})
    )
    with pytest.raises(ExternalAPIError, match="Wikidata search failed"):
        WikidataLookup().create_geo_node(QueryKey(query="Berlin"))
