from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.airport_lookup import (
    AirportLookupService,
    get_airport_lookup_service,
    search_fallback,
)

LOCATIONS = {
    "data": [
        {
            "type": "location",
            "subType": "AIRPORT",
            "name": "CHARLES DE GAULLE",
            "iataCode": "CDG",
            "address": {"cityName": "PARIS", "countryName": "FRANCE"},
        },
        {
            "type": "location",
            "subType": "CITY",
            "name": "PARIS",
            "iataCode": "PAR",
            "address": {"cityName": "PARIS", "countryName": "FRANCE"},
        },
    ]
}


@pytest.fixture
def client():
    app.dependency_overrides[get_airport_lookup_service] = lambda: AirportLookupService()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_fallback_matches_any_field():
    assert [a.iata for a in search_fallback("paris")] == ["CDG"]
    assert [a.iata for a in search_fallback("united states")] == ["JFK", "AUS", "LAX"]
    assert [a.iata for a in search_fallback("wsss")] == ["SIN"]
    assert search_fallback("atlantis") == []


async def test_amadeus_lookup(response_factory):
    post = AsyncMock(return_value=response_factory(200, {"access_token": "TEST_TOKEN"}))
    get = AsyncMock(return_value=response_factory(200, LOCATIONS))

    with patch("httpx.AsyncClient.post", post), patch("httpx.AsyncClient.get", get):
        results = await AirportLookupService().search("paris")

    assert [(r.iata, r.type, r.city) for r in results] == [
        ("CDG", "AIRPORT", "PARIS"),
        ("PAR", "CITY", "PARIS"),
    ]
    assert get.call_args.args[0].endswith("/v1/reference-data/locations")
    assert get.call_args.kwargs["params"]["subType"] == "AIRPORT,CITY"
    assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer TEST_TOKEN"


async def test_transport_errors_are_retried(response_factory):
    post = AsyncMock(return_value=response_factory(200, {"access_token": "TEST_TOKEN"}))
    get = AsyncMock(side_effect=[httpx.ConnectError("reset"), response_factory(200, LOCATIONS)])

    with patch("httpx.AsyncClient.post", post), patch("httpx.AsyncClient.get", get):
        results = await AirportLookupService().search("paris")

    assert get.call_count == 2
    assert results[0].iata == "CDG"


async def test_falls_back_to_static_list_on_error(response_factory):
    post = AsyncMock(return_value=response_factory(200, {"access_token": "TEST_TOKEN"}))
    get = AsyncMock(return_value=response_factory(500, {"errors": []}))

    with patch("httpx.AsyncClient.post", post), patch("httpx.AsyncClient.get", get):
        results = await AirportLookupService().search("tokyo")

    assert [r.iata for r in results] == ["NRT"]


async def test_falls_back_without_credentials(monkeypatch):
    from app.config import settings
    monkeypatch.setattr(settings, "AMADEUS_CLIENT_ID", "")

    results = await AirportLookupService().search("colombo")

    assert [r.iata for r in results] == ["CMB"]


def test_airports_endpoint_requires_keyword(client):
    response = client.get("/airports")

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "missing_params"


def test_airports_endpoint(client):
    with patch("httpx.AsyncClient.post", AsyncMock(side_effect=httpx.ConnectError("down"))):
        response = client.get("/airports?keyword=Sydney")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["results"][0] == {
        "iata": "SYD",
        "icao": "YSSY",
        "name": "Sydney Kingsford Smith",
        "city": "Sydney",
        "country": "Australia",
        "type": "AIRPORT",
    }
