"""
Skyscanner Flight Provider - Regional fare aggregator
https://rapidapi.com/ (Skyscanner API)
"""
from typing import Any, Dict, List, Optional
import httpx
import logging

from pydantic import BaseModel, Field, ValidationError

from app.config import settings
from app.schemas.flight import FlightOffer, FlightSegment, PriceOption, SearchRequest, TripType
from app.utils.concurrency import Settled
from app.utils.duration import MinutesDuration
from .base import (
    FlightProvider,
    ProviderAuthError,
    ProviderParseError,
    ProviderTransportError,
    airport_time,
    identity_key,
)

logger = logging.getLogger(__name__)


class SkyAirport(BaseModel):
    code: str = ""
    name: str = ""


class SkyEndpoint(BaseModel):
    airport: SkyAirport = Field(default_factory=SkyAirport)
    time: str = ""


class SkyCarrier(BaseModel):
    name: str = ""


class SkyLeg(BaseModel):
    departure: SkyEndpoint
    arrival: SkyEndpoint
    durationInMinutes: int = Field(default=0, ge=0)
    carriers: List[SkyCarrier] = Field(default_factory=list)
    flightNumber: str = ""
    stopCount: int = Field(default=0, ge=0)


class SkyPrice(BaseModel):
    amount: float = Field(ge=0)
    currency: str = "USD"


class SkyItinerary(BaseModel):
    id: str = ""
    legs: List[SkyLeg] = Field(default_factory=list)
    price: Optional[SkyPrice] = None
    deepLink: str = ""
    tripType: str = ""
    duration: Optional[int] = None


class SkySearchResponse(BaseModel):
    itineraries: List[Dict[str, Any]] = Field(default_factory=list)


class SkyscannerProvider(FlightProvider):
    """
    Skyscanner flight search provider.

    Best-effort source: `search` never raises. A failure is logged and
    reported as an empty result; `search_settled` also hands back the
    swallowed error so the aggregate search can record it.

    Requires a RapidAPI subscription.
    """

    name = "skyscanner"
    display_name = "Skyscanner"

    CABIN_MAP = {
        "economy": "economy",
        "premium_economy": "premium_economy",
        "business": "business",
        "first": "first",
    }

    def __init__(self, timeout: Optional[float] = None):
        super().__init__(timeout)
        self._market = "en-US"
        self._country = "US"

    @property
    def is_configured(self) -> bool:
        """Check if RapidAPI key is configured"""
        return bool(settings.RAPIDAPI_KEY)

    @property
    def base_url(self) -> str:
        return f"https://{settings.SKYSCANNER_API_HOST}/v3/flights"

    def build_params(self, request: SearchRequest) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "originSkyId": request.origin_code,
            "destinationSkyId": request.destination_code,
            "date": request.departure_date.strftime("%Y%m%d"),
            "adults": max(request.adults, 1),
            "cabinClass": self.CABIN_MAP.get(request.cabin_class.value, "economy"),
            "currency": request.currency,
            "countryCode": self._country,
            "marketCode": self._market,
        }

        if request.return_date:
            params["returnDate"] = request.return_date.strftime("%Y%m%d")
        if request.children > 0:
            params["childrens"] = request.children
        if request.infants > 0:
            params["infants"] = request.infants

        return params

    async def search(self, request: SearchRequest) -> List[FlightOffer]:
        """Search flights; never raises"""
        outcome = await self.search_settled(request)
        return outcome.value or []

    async def search_settled(self, request: SearchRequest) -> Settled[List[FlightOffer]]:
        """Empty result plus the swallowed error when the search fails"""
        try:
            return Settled(ok=True, value=await self.with_deadline(self._search(request)))
        except Exception as e:
            logger.warning(f"Skyscanner search skipped: {e}")
            return Settled(ok=False, value=[], error=e)

    async def _search(self, request: SearchRequest) -> List[FlightOffer]:
        if not self.is_configured:
            raise ProviderAuthError(self.name, "RapidAPI key not configured")

        headers = {
            "x-rapidapi-key": settings.RAPIDAPI_KEY,
            "x-rapidapi-host": settings.SKYSCANNER_API_HOST,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.base_url}/search-live",
                    params=self.build_params(request),
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise ProviderTransportError(self.name, f"Request failed: {e}", e)

        if response.status_code in (401, 403):
            raise ProviderAuthError(self.name, f"HTTP {response.status_code}")
        if response.status_code >= 400:
            raise ProviderTransportError(
                self.name, f"HTTP {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderParseError(self.name, "Response is not valid JSON", e)

        offers = self.parse_response(data)
        logger.info(
            f"Skyscanner returned {len(offers)} offers for "
            f"{request.origin_code}->{request.destination_code}"
        )
        return offers

    def parse_response(self, data: Any) -> List[FlightOffer]:
        """Parse Skyscanner itineraries, one segment per leg"""
        try:
            response = SkySearchResponse.model_validate(data)
        except ValidationError as e:
            raise ProviderParseError(self.name, "Unexpected response shape", e)

        offers = []
        for raw_itinerary in response.itineraries:
            try:
                itinerary = SkyItinerary.model_validate(raw_itinerary)
            except ValidationError as e:
                logger.warning(f"Failed to parse Skyscanner itinerary: {e}")
                continue

            if not itinerary.legs or itinerary.price is None:
                continue

            segments = [self._parse_leg(leg) for leg in itinerary.legs]
            total_duration = itinerary.duration
            if total_duration is None:
                total_duration = sum(leg.durationInMinutes for leg in itinerary.legs)

            trip_type = {
                "roundtrip": TripType.ROUNDTRIP,
                "oneway": TripType.ONEWAY,
            }.get(itinerary.tripType.replace("_", "").replace("-", "").lower(), TripType.UNKNOWN)

            offers.append(FlightOffer(
                id=identity_key(segments),
                segments=segments,
                total_duration_minutes=max(total_duration, 0),
                price_options=[PriceOption(
                    provider_name=self.display_name,
                    price=itinerary.price.amount,
                    currency=itinerary.price.currency,
                    booking_url=itinerary.deepLink,
                )],
                trip_type=trip_type,
                booking_token=itinerary.id or None,
                raw_provider_payload=raw_itinerary,
            ))

        return offers

    def _parse_leg(self, leg: SkyLeg) -> FlightSegment:
        return FlightSegment(
            departure=airport_time(leg.departure.airport.code, leg.departure.time,
                                   name=leg.departure.airport.name),
            arrival=airport_time(leg.arrival.airport.code, leg.arrival.time,
                                 name=leg.arrival.airport.name),
            duration=MinutesDuration(value=leg.durationInMinutes),
            carrier_name=leg.carriers[0].name if leg.carriers else "",
            flight_number=leg.flightNumber,
            stop_count=leg.stopCount,
        )
