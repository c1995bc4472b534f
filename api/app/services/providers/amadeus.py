"""
Amadeus Flight Provider - GDS flight data source
https://developers.amadeus.com/
"""
from typing import Any, Dict, List, Optional, Union
import time
import httpx
import logging

from pydantic import BaseModel, Field, ValidationError

from app.config import settings
from app.schemas.flight import (
    CheckedBags,
    FlightOffer,
    FlightSegment,
    PriceOption,
    SearchRequest,
    SegmentStop,
    TripType,
)
from app.utils.duration import EncodedDuration, duration_from_native, parse_duration
from .base import (
    FlightProvider,
    ProviderAuthError,
    ProviderParseError,
    ProviderTransportError,
    airport_time,
    identity_key,
)

logger = logging.getLogger(__name__)


# Response shapes - only the fields we read, everything else ignored

class AmadeusEndpoint(BaseModel):
    iataCode: str = ""
    at: str = ""
    terminal: Optional[str] = None


class AmadeusAircraft(BaseModel):
    code: Optional[str] = None


class AmadeusStop(BaseModel):
    iataCode: str = ""
    duration: Optional[str] = None


class AmadeusSegment(BaseModel):
    id: Optional[Union[str, int]] = None
    departure: AmadeusEndpoint
    arrival: AmadeusEndpoint
    carrierCode: str = ""
    number: str = ""
    aircraft: AmadeusAircraft = Field(default_factory=AmadeusAircraft)
    cabin: Optional[str] = None
    duration: str = ""
    numberOfStops: int = Field(default=0, ge=0)
    stops: List[AmadeusStop] = Field(default_factory=list)


class AmadeusItinerary(BaseModel):
    duration: str = ""
    segments: List[AmadeusSegment] = Field(default_factory=list)


class AmadeusPrice(BaseModel):
    currency: str = "USD"
    total: float = Field(ge=0)


class AmadeusBags(BaseModel):
    quantity: Optional[int] = None
    weight: Optional[int] = None
    weightUnit: Optional[str] = None


class AmadeusFareDetail(BaseModel):
    segmentId: Optional[Union[str, int]] = None
    cabin: Optional[str] = None
    includedCheckedBags: Optional[AmadeusBags] = None


class AmadeusTravelerPricing(BaseModel):
    fareDetailsBySegment: List[AmadeusFareDetail] = Field(default_factory=list)


class AmadeusOffer(BaseModel):
    id: str = ""
    oneWay: Optional[bool] = None
    numberOfBookableSeats: Optional[int] = None
    itineraries: List[AmadeusItinerary] = Field(default_factory=list)
    price: AmadeusPrice
    travelerPricings: List[AmadeusTravelerPricing] = Field(default_factory=list)


class AmadeusDictionaries(BaseModel):
    carriers: Dict[str, str] = Field(default_factory=dict)
    aircraft: Dict[str, str] = Field(default_factory=dict)


class AmadeusSearchResponse(BaseModel):
    data: List[Dict[str, Any]] = Field(default_factory=list)
    dictionaries: AmadeusDictionaries = Field(default_factory=AmadeusDictionaries)


class AmadeusProvider(FlightProvider):
    """
    Amadeus flight search provider.

    GDS provider with comprehensive global coverage. Requires client
    credentials from https://developers.amadeus.com/. A bearer token is
    obtained per search unless AMADEUS_TOKEN_CACHE_SECONDS allows reuse.
    """

    name = "amadeus"
    display_name = "Amadeus"

    CABIN_MAP = {
        "economy": "ECONOMY",
        "premium_economy": "PREMIUM_ECONOMY",
        "business": "BUSINESS",
        "first": "FIRST",
    }
    MAX_RESULTS = 250

    def __init__(self, timeout: Optional[float] = None):
        super().__init__(timeout)
        self._token: Optional[str] = None
        self._token_expiry: float = 0.0

    @property
    def is_configured(self) -> bool:
        """Check if Amadeus credentials are configured"""
        return bool(settings.AMADEUS_CLIENT_ID and settings.AMADEUS_CLIENT_SECRET)

    @property
    def base_url(self) -> str:
        """Get API host (test or production)"""
        return settings.AMADEUS_BASE_URL

    async def get_token(self, client: httpx.AsyncClient) -> str:
        """Exchange client credentials for a bearer token"""
        if not self.is_configured:
            raise ProviderAuthError(self.name, "Amadeus API credentials not configured")

        if self._token and time.monotonic() < self._token_expiry:
            return self._token

        try:
            response = await client.post(
                f"{self.base_url}/v1/security/oauth2/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": settings.AMADEUS_CLIENT_ID,
                    "client_secret": settings.AMADEUS_CLIENT_SECRET,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            raise ProviderTransportError(self.name, f"Token request failed: {e}", e)

        if response.status_code in (401, 403):
            raise ProviderAuthError(
                self.name, f"Token request rejected with HTTP {response.status_code}"
            )
        if response.status_code >= 400:
            raise ProviderTransportError(
                self.name,
                f"Token request failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            token = data["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise ProviderAuthError(self.name, "Token response missing access_token", e)

        cache_seconds = settings.AMADEUS_TOKEN_CACHE_SECONDS
        if cache_seconds > 0:
            # refresh 60s before the provider-side expiry
            expires_in = int(data.get("expires_in", cache_seconds)) - 60
            self._token = token
            self._token_expiry = time.monotonic() + min(cache_seconds, max(expires_in, 0))

        return token

    def build_params(self, request: SearchRequest) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "originLocationCode": request.origin_code,
            "destinationLocationCode": request.destination_code,
            "departureDate": request.departure_date.isoformat(),
            "adults": max(request.adults, 1),
            "travelClass": self.CABIN_MAP.get(request.cabin_class.value, "ECONOMY"),
            "currencyCode": request.currency,
            "max": min(request.result_cap, self.MAX_RESULTS),
        }

        if request.children > 0:
            params["children"] = request.children
        if request.infants > 0:
            params["infants"] = request.infants
        if request.return_date:
            params["returnDate"] = request.return_date.isoformat()

        return params

    async def search(self, request: SearchRequest) -> List[FlightOffer]:
        """Search flights using Amadeus Flight Offers Search API"""
        return await self.with_deadline(self._search(request))

    async def _search(self, request: SearchRequest) -> List[FlightOffer]:
        params = self.build_params(request)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            token = await self.get_token(client)

            try:
                response = await client.get(
                    f"{self.base_url}/v2/shopping/flight-offers",
                    params=params,
                    headers={"Authorization": f"Bearer {token}"},
                )
            except httpx.HTTPError as e:
                raise ProviderTransportError(self.name, f"Search request failed: {e}", e)

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
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

        offers = self.parse_response(data)
        logger.info(
            f"Amadeus returned {len(offers)} offers for "
            f"{request.origin_code}->{request.destination_code}"
        )
        return offers

    def parse_response(self, data: Any) -> List[FlightOffer]:
        """Parse Amadeus API response"""
        try:
            response = AmadeusSearchResponse.model_validate(data)
        except ValidationError as e:
            raise ProviderParseError(self.name, "Unexpected response shape", e)

        carriers = response.dictionaries.carriers
        aircraft = response.dictionaries.aircraft

        offers = []
        for raw_offer in response.data:
            try:
                offer_data = AmadeusOffer.model_validate(raw_offer)
            except ValidationError as e:
                logger.warning(f"Failed to parse Amadeus offer: {e}")
                continue

            fare_details = {}
            if offer_data.travelerPricings:
                fare_details = {
                    str(detail.segmentId): detail
                    for detail in offer_data.travelerPricings[0].fareDetailsBySegment
                    if detail.segmentId is not None
                }

            segments = [
                self._parse_segment(seg, carriers, aircraft, fare_details.get(str(seg.id)))
                for itinerary in offer_data.itineraries
                for seg in itinerary.segments
            ]
            if not segments:
                continue

            total_duration = sum(
                parse_duration(EncodedDuration(value=itinerary.duration))
                for itinerary in offer_data.itineraries
            )

            if offer_data.oneWay is None:
                trip_type = TripType.UNKNOWN
            else:
                trip_type = TripType.ONEWAY if offer_data.oneWay else TripType.ROUNDTRIP

            offers.append(FlightOffer(
                id=identity_key(segments),
                segments=segments,
                total_duration_minutes=total_duration,
                price_options=[PriceOption(
                    provider_name=self.display_name,
                    price=offer_data.price.total,
                    currency=offer_data.price.currency,
                )],
                trip_type=trip_type,
                bookable_seats=offer_data.numberOfBookableSeats,
                booking_token=offer_data.id or None,
                raw_provider_payload=raw_offer,
            ))

        return offers

    def _parse_segment(
        self,
        seg: AmadeusSegment,
        carriers: Dict[str, str],
        aircraft: Dict[str, str],
        fare_detail: Optional[AmadeusFareDetail],
    ) -> FlightSegment:
        """Parse a single flight segment"""
        aircraft_code = seg.aircraft.code
        cabin = seg.cabin or (fare_detail.cabin if fare_detail else None) or ""

        bags = None
        if fare_detail and fare_detail.includedCheckedBags:
            raw_bags = fare_detail.includedCheckedBags
            bags = CheckedBags(
                quantity=raw_bags.quantity,
                weight=raw_bags.weight,
                weight_unit=raw_bags.weightUnit,
            )

        return FlightSegment(
            departure=airport_time(seg.departure.iataCode, seg.departure.at,
                                   terminal=seg.departure.terminal),
            arrival=airport_time(seg.arrival.iataCode, seg.arrival.at,
                                 terminal=seg.arrival.terminal),
            duration=duration_from_native(seg.duration),
            carrier_name=carriers.get(seg.carrierCode, seg.carrierCode),
            flight_number=f"{seg.carrierCode}{seg.number}",
            cabin_class=cabin,
            aircraft_name=aircraft.get(aircraft_code, aircraft_code) if aircraft_code else "Unknown",
            stop_count=seg.numberOfStops,
            stops=[
                SegmentStop(
                    airport_code=stop.iataCode,
                    display_name=stop.iataCode,
                    duration=duration_from_native(stop.duration) if stop.duration else None,
                )
                for stop in seg.stops
            ],
            included_checked_bags=bags,
        )

    async def health_check(self) -> bool:
        """Check Amadeus API connectivity"""
        if not self.is_configured:
            return False

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                await self.get_token(client)
            return True
        except Exception:
            return False
