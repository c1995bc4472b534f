"""
Airport keyword lookup for the search form typeahead.

Queries the Amadeus locations API and falls back to a small static list
when the lookup is unavailable.
"""
from typing import List, Optional
import httpx
import logging
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.config import settings
from app.schemas.airport import AirportSuggestion
from app.services.providers import AmadeusProvider

logger = logging.getLogger(__name__)


FALLBACK_AIRPORTS = [
    AirportSuggestion(iata="LHR", icao="EGLL", name="London Heathrow", city="London", country="United Kingdom"),
    AirportSuggestion(iata="JFK", icao="KJFK", name="John F Kennedy International", city="New York", country="United States"),
    AirportSuggestion(iata="CDG", icao="LFPG", name="Charles de Gaulle", city="Paris", country="France"),
    AirportSuggestion(iata="AUS", icao="KAUS", name="Austin-Bergstrom International", city="Austin", country="United States"),
    AirportSuggestion(iata="CMB", icao="VCBI", name="Colombo Bandaranaike International", city="Colombo", country="Sri Lanka"),
    AirportSuggestion(iata="DXB", icao="OMDB", name="Dubai International", city="Dubai", country="United Arab Emirates"),
    AirportSuggestion(iata="LAX", icao="KLAX", name="Los Angeles International", city="Los Angeles", country="United States"),
    AirportSuggestion(iata="SIN", icao="WSSS", name="Singapore Changi", city="Singapore", country="Singapore"),
    AirportSuggestion(iata="NRT", icao="RJAA", name="Tokyo Narita International", city="Tokyo", country="Japan"),
    AirportSuggestion(iata="SYD", icao="YSSY", name="Sydney Kingsford Smith", city="Sydney", country="Australia"),
]


def search_fallback(keyword: str) -> List[AirportSuggestion]:
    """Match the keyword against the static airport list"""
    needle = keyword.strip().lower()
    return [
        airport for airport in FALLBACK_AIRPORTS
        if any(
            needle in (value or "").lower()
            for value in (airport.name, airport.city, airport.country, airport.iata, airport.icao)
        )
    ]


class AirportLookupService:
    """Keyword search over Amadeus reference data"""

    def __init__(self, amadeus: Optional[AmadeusProvider] = None):
        self.amadeus = amadeus or AmadeusProvider()

    async def search(self, keyword: str, limit: int = 10) -> List[AirportSuggestion]:
        try:
            return await self._search_amadeus(keyword, limit)
        except Exception as e:
            logger.warning(f"Amadeus airport lookup failed, using static list: {e}")
            return search_fallback(keyword)[:limit]

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.AIRPORT_LOOKUP_RETRIES),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _search_amadeus(self, keyword: str, limit: int) -> List[AirportSuggestion]:
        async with httpx.AsyncClient(timeout=self.amadeus.timeout) as client:
            token = await self.amadeus.get_token(client)
            response = await client.get(
                f"{self.amadeus.base_url}/v1/reference-data/locations",
                params={"keyword": keyword, "subType": "AIRPORT,CITY", "page[limit]": limit},
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
            data = response.json()

        return [
            self._parse_location(location)
            for location in data.get("data", [])
            if location.get("iataCode")
        ]

    def _parse_location(self, location: dict) -> AirportSuggestion:
        """Parse Amadeus location data into our format"""
        address = location.get("address") or {}
        return AirportSuggestion(
            iata=location["iataCode"],
            icao=location.get("icaoCode"),
            name=location.get("name", ""),
            city=address.get("cityName", ""),
            country=address.get("countryName", ""),
            type=location.get("subType", "AIRPORT"),
        )


airport_lookup_service = AirportLookupService()


def get_airport_lookup_service() -> AirportLookupService:
    return airport_lookup_service
