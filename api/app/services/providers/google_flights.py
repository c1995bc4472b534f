"""
Google Flights Provider - General web-search flight engine via SerpAPI
https://serpapi.com/google-flights-api
"""
from typing import Any, Dict, List, Optional, Union
import httpx
import logging

from pydantic import BaseModel, Field, ValidationError

from app.config import settings
from app.schemas.flight import (
    FlightOffer,
    FlightSegment,
    PriceOption,
    SearchRequest,
    SegmentStop,
    TripType,
)
from app.utils.duration import MinutesDuration, duration_from_native
from .base import (
    FlightProvider,
    ProviderAuthError,
    ProviderParseError,
    ProviderTransportError,
    airport_time,
    identity_key,
)

logger = logging.getLogger(__name__)


class SerpAirport(BaseModel):
    name: str = ""
    id: str = ""
    time: str = ""


class SerpSegment(BaseModel):
    departure_airport: SerpAirport
    arrival_airport: SerpAirport
    duration: Union[int, str] = 0
    airplane: Optional[str] = None
    airline: str = ""
    airline_logo: Optional[str] = None
    travel_class: Optional[str] = None
    flight_number: Optional[str] = None


class SerpLayover(BaseModel):
    id: str = ""
    name: str = ""
    duration: Optional[int] = None


class SerpFlightGroup(BaseModel):
    flights: List[SerpSegment] = Field(default_factory=list)
    layovers: List[SerpLayover] = Field(default_factory=list)
    total_duration: int = Field(default=0, ge=0)
    price: Optional[float] = Field(default=None, ge=0)
    type: str = ""
    booking_token: Optional[str] = None


class SerpSearchResponse(BaseModel):
    best_flights: List[Dict[str, Any]] = Field(default_factory=list)
    other_flights: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None


TRIP_TYPE_MAP = {
    "round trip": TripType.ROUNDTRIP,
    "roundtrip": TripType.ROUNDTRIP,
    "one way": TripType.ONEWAY,
    "oneway": TripType.ONEWAY,
}


class GoogleFlightsProvider(FlightProvider):
    """
    Google Flights search through SerpAPI.

    One request per search. Trip type comes from the provider's own `type`
    field; flight numbers are not always present.
    """

    name = "google_flights"
    display_name = "Google Flights"

    # SerpAPI travel_class codes
    CABIN_MAP = {
        "economy": 1,
        "premium_economy": 2,
        "business": 3,
        "first": 4,
    }
    ROUND_TRIP = 1
    ONE_WAY = 2

    @property
    def is_configured(self) -> bool:
        """Check if SerpAPI key is configured"""
        return bool(settings.SERPAPI_KEY)

    def build_params(self, request: SearchRequest) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "api_key": settings.SERPAPI_KEY,
            "engine": "google_flights",
            "hl": "en",
            "departure_id": request.origin_code,
            "arrival_id": request.destination_code,
            "outbound_date": request.departure_date.isoformat(),
            "adults": request.adults,
            "travel_class": self.CABIN_MAP.get(request.cabin_class.value, 1),
            "currency": request.currency,
            "type": self.ONE_WAY,
        }

        if request.return_date:
            params["return_date"] = request.return_date.isoformat()
            params["type"] = self.ROUND_TRIP
        if request.children > 0:
            params["children"] = request.children
        if request.infants > 0:
            params["infants_on_lap"] = request.infants

        return params

    async def search(self, request: SearchRequest) -> List[FlightOffer]:
        """Search flights using the SerpAPI google_flights engine"""
        return await self.with_deadline(self._search(request))

    async def _search(self, request: SearchRequest) -> List[FlightOffer]:
        if not self.is_configured:
            raise ProviderAuthError(self.name, "SerpAPI key not configured")

        params = self.build_params(request)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(settings.SERPAPI_BASE_URL, params=params)
        except httpx.HTTPError as e:
            raise ProviderTransportError(self.name, f"Request failed: {e}", e)

        if response.status_code >= 400:
            # Keep the provider's own status and body for callers
            try:
                payload = response.json()
            except ValueError:
                payload = {"error": response.text}
            raise ProviderTransportError(
                self.name,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                payload=payload,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderParseError(self.name, "Response is not valid JSON", e)

        offers = self.parse_response(data, request.currency)
        logger.info(
            f"Google Flights returned {len(offers)} offers for "
            f"{request.origin_code}->{request.destination_code}"
        )
        return offers

    def parse_response(self, data: Any, currency: Optional[str] = None) -> List[FlightOffer]:
        """Parse SerpAPI response (best_flights followed by other_flights)"""
        currency = currency or settings.DEFAULT_CURRENCY
        try:
            response = SerpSearchResponse.model_validate(data)
        except ValidationError as e:
            raise ProviderParseError(self.name, "Unexpected response shape", e)

        if response.error and not (response.best_flights or response.other_flights):
            logger.info(f"Google Flights reported no results: {response.error}")
            return []

        offers = []
        for raw_group in response.best_flights + response.other_flights:
            try:
                group = SerpFlightGroup.model_validate(raw_group)
            except ValidationError as e:
                logger.warning(f"Failed to parse Google Flights result: {e}")
                continue

            if not group.flights or group.price is None:
                continue

            segments = [
                self._parse_segment(seg, group.layovers[i] if i < len(group.layovers) else None)
                for i, seg in enumerate(group.flights)
            ]

            offers.append(FlightOffer(
                id=identity_key(segments),
                segments=segments,
                total_duration_minutes=group.total_duration,
                price_options=[PriceOption(
                    provider_name=self.display_name,
                    price=group.price,
                    currency=currency,
                )],
                trip_type=TRIP_TYPE_MAP.get(group.type.strip().lower(), TripType.UNKNOWN),
                booking_token=group.booking_token,
                raw_provider_payload=raw_group,
            ))

        return offers

    def _parse_segment(self, seg: SerpSegment, layover: Optional[SerpLayover]) -> FlightSegment:
        """Parse a single leg; the layover following it counts as its stop"""
        stops = []
        if layover is not None:
            stops.append(SegmentStop(
                airport_code=layover.id,
                display_name=layover.name or layover.id,
                duration=MinutesDuration(value=layover.duration) if layover.duration else None,
            ))

        return FlightSegment(
            departure=airport_time(seg.departure_airport.id, seg.departure_airport.time,
                                   name=seg.departure_airport.name),
            arrival=airport_time(seg.arrival_airport.id, seg.arrival_airport.time,
                                 name=seg.arrival_airport.name),
            duration=duration_from_native(seg.duration),
            carrier_name=seg.airline,
            carrier_logo=seg.airline_logo,
            flight_number=(seg.flight_number or "").replace(" ", ""),
            cabin_class=seg.travel_class or "",
            aircraft_name=seg.airplane or "Unknown",
            stop_count=len(stops),
            stops=stops,
        )
