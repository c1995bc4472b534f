"""Shared fixtures: provider payloads, offer factories and fake providers."""
import asyncio
from datetime import date
from typing import List, Optional

import httpx
import pytest

from app.config import settings
from app.schemas.flight import (
    FlightOffer,
    FlightSegment,
    PriceOption,
    SearchRequest,
    TripType,
)
from app.services.providers import FlightProvider, identity_key
from app.services.providers.base import airport_time
from app.utils.duration import MinutesDuration


@pytest.fixture(autouse=True)
def provider_credentials(monkeypatch):
    """Every provider configured, token caching off"""
    monkeypatch.setattr(settings, "AMADEUS_CLIENT_ID", "test-client-id")
    monkeypatch.setattr(settings, "AMADEUS_CLIENT_SECRET", "test-client-secret")
    monkeypatch.setattr(settings, "AMADEUS_TOKEN_CACHE_SECONDS", 0)
    monkeypatch.setattr(settings, "SERPAPI_KEY", "test-serpapi-key")
    monkeypatch.setattr(settings, "RAPIDAPI_KEY", "test-rapidapi-key")


def make_response(status_code: int = 200, payload=None, url: str = "https://example.test", text: Optional[str] = None):
    """httpx.Response bound to a request so raise_for_status works"""
    request = httpx.Request("GET", url)
    if text is not None:
        return httpx.Response(status_code, text=text, request=request)
    return httpx.Response(status_code, json=payload if payload is not None else {}, request=request)


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def search_request() -> SearchRequest:
    return SearchRequest(
        origin_code="CDG",
        destination_code="AUS",
        departure_date=date(2025, 11, 1),
    )


@pytest.fixture
def amadeus_payload() -> dict:
    """Flight Offers Search answer: a connection via JFK and a nonstop"""
    return {
        "data": [
            {
                "id": "1",
                "oneWay": False,
                "numberOfBookableSeats": 4,
                "itineraries": [{
                    "duration": "PT15H10M",
                    "segments": [
                        {
                            "id": "1",
                            "departure": {"iataCode": "CDG", "terminal": "2E", "at": "2025-11-01T10:00:00"},
                            "arrival": {"iataCode": "JFK", "terminal": "1", "at": "2025-11-01T12:30:00"},
                            "carrierCode": "AF",
                            "number": "22",
                            "aircraft": {"code": "359"},
                            "duration": "PT8H30M",
                            "numberOfStops": 0,
                        },
                        {
                            "id": "2",
                            "departure": {"iataCode": "JFK", "at": "2025-11-01T15:00:00"},
                            "arrival": {"iataCode": "AUS", "at": "2025-11-01T19:10:00"},
                            "carrierCode": "AA",
                            "number": "100",
                            "aircraft": {"code": "321"},
                            "duration": "PT5H10M",
                            "numberOfStops": 0,
                        },
                    ],
                }],
                "price": {"currency": "USD", "total": "650.00"},
                "travelerPricings": [{
                    "fareDetailsBySegment": [
                        {"segmentId": "1", "cabin": "ECONOMY", "includedCheckedBags": {"quantity": 1}},
                        {"segmentId": "2", "cabin": "ECONOMY"},
                    ],
                }],
            },
            {
                "id": "2",
                "oneWay": False,
                "numberOfBookableSeats": 1,
                "itineraries": [{
                    "duration": "PT11H",
                    "segments": [{
                        "id": "3",
                        "departure": {"iataCode": "CDG", "at": "2025-11-01T13:05:00"},
                        "arrival": {"iataCode": "AUS", "at": "2025-11-01T18:05:00"},
                        "carrierCode": "AF",
                        "number": "700",
                        "aircraft": {"code": "77W"},
                        "duration": "PT11H",
                        "numberOfStops": 0,
                    }],
                }],
                "price": {"currency": "USD", "total": "900.00"},
                "travelerPricings": [{
                    "fareDetailsBySegment": [{"segmentId": "3", "cabin": "ECONOMY"}],
                }],
            },
        ],
        "dictionaries": {
            "carriers": {"AF": "AIR FRANCE", "AA": "AMERICAN AIRLINES"},
            "aircraft": {"359": "AIRBUS A350-900", "321": "AIRBUS A321"},
        },
    }


@pytest.fixture
def serpapi_payload() -> dict:
    """google_flights engine answer: same JFK connection plus one via ATL"""
    return {
        "best_flights": [{
            "flights": [
                {
                    "departure_airport": {"name": "Paris Charles de Gaulle Airport", "id": "CDG", "time": "2025-11-01 10:00"},
                    "arrival_airport": {"name": "John F. Kennedy International Airport", "id": "JFK", "time": "2025-11-01 12:30"},
                    "duration": 510,
                    "airplane": "Airbus A350",
                    "airline": "Air France",
                    "airline_logo": "https://www.gstatic.com/flights/airline_logos/70px/AF.png",
                    "travel_class": "Economy",
                    "flight_number": "AF 22",
                },
                {
                    "departure_airport": {"name": "John F. Kennedy International Airport", "id": "JFK", "time": "2025-11-01 15:00"},
                    "arrival_airport": {"name": "Austin-Bergstrom International Airport", "id": "AUS", "time": "2025-11-01 19:10"},
                    "duration": 310,
                    "airplane": "Airbus A321",
                    "airline": "American",
                    "travel_class": "Economy",
                    "flight_number": "AA 100",
                },
            ],
            "layovers": [{"duration": 150, "name": "John F. Kennedy International Airport", "id": "JFK"}],
            "total_duration": 970,
            "price": 612,
            "type": "One way",
            "booking_token": "serp-token-1",
        }],
        "other_flights": [{
            "flights": [
                {
                    "departure_airport": {"name": "Paris Charles de Gaulle Airport", "id": "CDG", "time": "2025-11-01 08:15"},
                    "arrival_airport": {"name": "Hartsfield-Jackson Atlanta International Airport", "id": "ATL", "time": "2025-11-01 11:40"},
                    "duration": 565,
                    "airline": "Delta",
                    "travel_class": "Economy",
                    "flight_number": "DL 85",
                },
                {
                    "departure_airport": {"name": "Hartsfield-Jackson Atlanta International Airport", "id": "ATL", "time": "2025-11-01 14:00"},
                    "arrival_airport": {"name": "Austin-Bergstrom International Airport", "id": "AUS", "time": "2025-11-01 15:45"},
                    "duration": 165,
                    "airline": "Delta",
                    "travel_class": "Economy",
                    "flight_number": "DL 1200",
                },
            ],
            "layovers": [{"duration": 140, "name": "Hartsfield-Jackson Atlanta International Airport", "id": "ATL"}],
            "total_duration": 870,
            "price": 700,
            "type": "One way",
        }],
    }


@pytest.fixture
def skyscanner_payload() -> dict:
    """search-live answer: the JFK connection again, cheapest of the three"""
    return {
        "itineraries": [{
            "id": "sky-1",
            "legs": [
                {
                    "departure": {"airport": {"code": "CDG", "name": "Paris Charles de Gaulle"}, "time": "2025-11-01T10:00:00"},
                    "arrival": {"airport": {"code": "JFK", "name": "New York John F. Kennedy"}, "time": "2025-11-01T12:30:00"},
                    "durationInMinutes": 510,
                    "carriers": [{"name": "Air France"}],
                    "flightNumber": "AF22",
                    "stopCount": 0,
                },
                {
                    "departure": {"airport": {"code": "JFK", "name": "New York John F. Kennedy"}, "time": "2025-11-01T15:00:00"},
                    "arrival": {"airport": {"code": "AUS", "name": "Austin"}, "time": "2025-11-01T19:10:00"},
                    "durationInMinutes": 310,
                    "carriers": [{"name": "American Airlines"}],
                    "flightNumber": "AA100",
                    "stopCount": 0,
                },
            ],
            "price": {"amount": 598.4, "currency": "USD"},
            "deepLink": "https://www.skyscanner.net/transport/flights/cdg/aus/251101/",
            "tripType": "one_way",
        }],
    }


@pytest.fixture
def make_offer():
    """Factory for FlightOffers over a simple A->B->C route"""

    def _make(
        price: float = 100.0,
        provider: str = "Test",
        route: Optional[List[str]] = None,
        start: str = "2025-11-01T08:00:00",
        trip_type: TripType = TripType.ONEWAY,
        cabin: str = "ECONOMY",
        stops: Optional[List[int]] = None,
        seats: Optional[int] = None,
    ) -> FlightOffer:
        route = route or ["CDG", "AUS"]
        stops = stops or [0] * (len(route) - 1)
        segments = [
            FlightSegment(
                departure=airport_time(route[i], start if i == 0 else f"{start[:11]}{12 + i:02d}:00:00"),
                arrival=airport_time(route[i + 1], f"{start[:11]}{11 + i:02d}:30:00"),
                duration=MinutesDuration(value=150),
                carrier_name="Test Air",
                flight_number=f"TA{i + 1}",
                cabin_class=cabin,
                stop_count=stops[i],
            )
            for i in range(len(route) - 1)
        ]
        return FlightOffer(
            id=identity_key(segments),
            segments=segments,
            total_duration_minutes=150 * len(segments),
            price_options=[PriceOption(provider_name=provider, price=price)],
            trip_type=trip_type,
            bookable_seats=seats,
        )

    return _make


class FakeProvider(FlightProvider):
    """In-memory provider returning canned offers or raising a canned error"""

    def __init__(self, name: str, offers=None, error: Optional[Exception] = None, delay: float = 0.0):
        super().__init__(timeout=1)
        self.name = name
        self.display_name = name.title()
        self.offers = offers or []
        self.error = error
        self.delay = delay
        self.calls = 0

    def build_params(self, request):
        return {}

    async def search(self, request):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.offers)


@pytest.fixture
def fake_provider():
    """Factory fixture for FakeProvider instances"""
    return FakeProvider
