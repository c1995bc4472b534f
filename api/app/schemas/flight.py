"""
Flight Schemas
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from app.utils.duration import Duration, MinutesDuration, parse_duration


class TripType(str, Enum):
    """Trip type as reported by the provider"""
    ONEWAY = "oneway"
    ROUNDTRIP = "roundtrip"
    UNKNOWN = "unknown"


class CabinClass(str, Enum):
    ECONOMY = "economy"
    PREMIUM_ECONOMY = "premium_economy"
    BUSINESS = "business"
    FIRST = "first"


class AirportTime(BaseModel):
    """One end of a flight segment"""
    airport_code: str
    display_name: str = ""
    local_timestamp: str = ""
    terminal: Optional[str] = None


class CheckedBags(BaseModel):
    quantity: Optional[int] = None
    weight: Optional[int] = None
    weight_unit: Optional[str] = None


class SegmentStop(BaseModel):
    """Technical stop or layover within a segment"""
    airport_code: str = ""
    display_name: str = ""
    duration: Optional[Duration] = None


class FlightSegment(BaseModel):
    """A single flown leg"""
    departure: AirportTime
    arrival: AirportTime
    duration: Duration = Field(default_factory=lambda: MinutesDuration(value=0))
    carrier_name: str = ""
    carrier_logo: Optional[str] = None
    flight_number: str = ""
    cabin_class: str = ""
    aircraft_name: str = "Unknown"
    stop_count: int = Field(default=0, ge=0)
    stops: List[SegmentStop] = Field(default_factory=list)
    included_checked_bags: Optional[CheckedBags] = None

    @computed_field
    @property
    def duration_minutes(self) -> int:
        """Segment duration normalized to minutes for display"""
        return parse_duration(self.duration)


class PriceOption(BaseModel):
    """A price quoted by one provider"""
    provider_name: str
    price: float = Field(ge=0)
    currency: str = "USD"
    booking_url: str = ""


class FlightOffer(BaseModel):
    """One bookable itinerary, possibly priced by several providers"""
    id: str
    segments: List[FlightSegment] = Field(min_length=1)
    total_duration_minutes: int = Field(default=0, ge=0)
    price_options: List[PriceOption] = Field(min_length=1)
    lowest_price: float = 0.0
    trip_type: TripType = TripType.UNKNOWN
    bookable_seats: Optional[int] = None
    booking_token: Optional[str] = None
    raw_provider_payload: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _sync_lowest_price(self) -> "FlightOffer":
        self.lowest_price = min(option.price for option in self.price_options)
        return self

    @computed_field
    @property
    def total_stops(self) -> int:
        return sum(segment.stop_count for segment in self.segments)


class SearchRequest(BaseModel):
    """Validated flight search input"""
    origin_code: str = Field(..., min_length=3, max_length=3)
    destination_code: str = Field(..., min_length=3, max_length=3)
    departure_date: date
    return_date: Optional[date] = None
    adults: int = Field(1, ge=0)
    children: int = Field(0, ge=0)
    infants: int = Field(0, ge=0)
    cabin_class: CabinClass = CabinClass.ECONOMY
    trip_type: Optional[TripType] = None
    max_stops: Optional[int] = Field(None, ge=0)
    result_cap: int = Field(50, ge=1)
    currency: str = "USD"

    @property
    def is_round_trip(self) -> bool:
        if self.trip_type is not None:
            return self.trip_type == TripType.ROUNDTRIP
        return self.return_date is not None


class AirportReference(BaseModel):
    code: str
    display_name: str


class SearchMetadata(BaseModel):
    contributing_providers: List[str]
    total_before_filter: int
    provider_errors: Dict[str, str] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)


class FlightSearchResponse(BaseModel):
    """Aggregated flight search response"""
    offers: List[FlightOffer]
    metadata: SearchMetadata
    airports_referenced: List[AirportReference]
    searched_at: datetime


class PriceSummary(BaseModel):
    total_results: int
    cheapest_price: float
    most_expensive: float


class ProviderSearchResponse(BaseModel):
    """Single-provider search response"""
    provider: str
    offers: List[FlightOffer]
    summary: PriceSummary
    searched_at: datetime
