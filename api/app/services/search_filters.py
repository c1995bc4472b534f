"""
Search request validation and post-aggregation filters
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional
import logging
import re

from app.config import settings
from app.schemas.flight import (
    AirportReference,
    CabinClass,
    FlightOffer,
    SearchRequest,
    TripType,
)

logger = logging.getLogger(__name__)

IATA_RE = re.compile(r"^[A-Za-z]{3}$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")

TRIP_TYPE_HINTS = {
    "roundtrip": TripType.ROUNDTRIP,
    "round_trip": TripType.ROUNDTRIP,
    "1": TripType.ROUNDTRIP,
    "oneway": TripType.ONEWAY,
    "one_way": TripType.ONEWAY,
    "2": TripType.ONEWAY,
}

ROUND_TRIP_ONEWAY_WARNING = "Only one-way flights returned for round-trip search."


class SearchValidationError(Exception):
    """Client supplied missing or malformed search parameters"""
    MISSING_PARAMS = "missing_params"
    INVALID_AIRPORT_CODE = "invalid_airport_code"
    INVALID_DATE = "invalid_date"
    INVALID_PARAM = "invalid_param"

    def __init__(self, reason: str, message: str):
        self.reason = reason
        self.message = message
        super().__init__(message)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _parse_date(value: str, field_name: str) -> date:
    value = value.strip()
    if not DATE_RE.match(value):
        raise SearchValidationError(
            SearchValidationError.INVALID_DATE,
            f"Invalid date format for {field_name}: expected YYYY-MM-DD",
        )
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise SearchValidationError(
            SearchValidationError.INVALID_DATE,
            f"Invalid calendar date for {field_name}: {value}",
        )


def _parse_count(value: Optional[str], field_name: str, default: Optional[int],
                 minimum: int = 0) -> Optional[int]:
    if _blank(value):
        return default
    try:
        parsed = int(str(value).strip())
    except ValueError:
        parsed = None
    if parsed is None or parsed < minimum:
        raise SearchValidationError(
            SearchValidationError.INVALID_PARAM,
            f"{field_name} must be an integer >= {minimum}",
        )
    return parsed


def normalize_label(value: Optional[str]) -> str:
    """Case and separator insensitive form: 'Premium economy' == 'PREMIUM_ECONOMY'"""
    return (value or "").strip().lower().replace(" ", "_").replace("-", "_")


def validate_search_params(
    origin: Optional[str],
    destination: Optional[str],
    departure_date: Optional[str],
    return_date: Optional[str] = None,
    adults: Optional[str] = None,
    children: Optional[str] = None,
    infants: Optional[str] = None,
    travel_class: Optional[str] = None,
    trip_type: Optional[str] = None,
    stops: Optional[str] = None,
    max_results: Optional[str] = None,
    currency: Optional[str] = None,
) -> SearchRequest:
    """
    Validate raw query values and build a SearchRequest.

    Raises:
        SearchValidationError: with reason missing_params, invalid_airport_code,
            invalid_date or invalid_param
    """
    missing = [
        name for name, value in (
            ("origin", origin),
            ("destination", destination),
            ("departure_date", departure_date),
        )
        if _blank(value)
    ]
    if missing:
        raise SearchValidationError(
            SearchValidationError.MISSING_PARAMS,
            f"Missing required params: {', '.join(missing)}",
        )

    origin = origin.strip()
    destination = destination.strip()
    if not IATA_RE.match(origin) or not IATA_RE.match(destination):
        raise SearchValidationError(
            SearchValidationError.INVALID_AIRPORT_CODE,
            "Invalid airport code(s): expected 3-letter IATA codes",
        )

    departure = _parse_date(departure_date, "departure_date")
    return_day = None
    if not _blank(return_date):
        return_day = _parse_date(return_date, "return_date")
        if return_day < departure:
            raise SearchValidationError(
                SearchValidationError.INVALID_DATE,
                "Return date must be after departure date",
            )

    cabin = normalize_label(travel_class) or CabinClass.ECONOMY.value
    if cabin not in {c.value for c in CabinClass}:
        raise SearchValidationError(
            SearchValidationError.INVALID_PARAM,
            f"Unknown cabin class: {travel_class}",
        )

    hint = None
    trip_key = normalize_label(trip_type)
    if trip_key and trip_key != "any":
        if trip_key not in TRIP_TYPE_HINTS:
            raise SearchValidationError(
                SearchValidationError.INVALID_PARAM,
                f"Unknown trip type: {trip_type}",
            )
        hint = TRIP_TYPE_HINTS[trip_key]

    currency_code = settings.DEFAULT_CURRENCY
    if not _blank(currency):
        if not CURRENCY_RE.match(currency.strip()):
            raise SearchValidationError(
                SearchValidationError.INVALID_PARAM,
                "currency must be a 3-letter ISO code",
            )
        currency_code = currency.strip().upper()

    return SearchRequest(
        origin_code=origin.upper(),
        destination_code=destination.upper(),
        departure_date=departure,
        return_date=return_day,
        adults=_parse_count(adults, "adults", 1),
        children=_parse_count(children, "children", 0),
        infants=_parse_count(infants, "infants", 0),
        cabin_class=CabinClass(cabin),
        trip_type=hint,
        max_stops=_parse_count(stops, "stops", None),
        result_cap=_parse_count(max_results, "max", settings.DEFAULT_RESULT_CAP, minimum=1),
        currency=currency_code,
    )


@dataclass
class FilterOutcome:
    offers: List[FlightOffer]
    warnings: List[str] = field(default_factory=list)


def _keep_if_any(
    offers: List[FlightOffer],
    predicate: Callable[[FlightOffer], bool],
    label: str,
) -> List[FlightOffer]:
    """Apply a filter unless it would remove every offer"""
    filtered = [offer for offer in offers if predicate(offer)]
    if filtered:
        return filtered
    if offers:
        logger.debug(f"{label} filter matched no offers, keeping {len(offers)} unfiltered")
    return offers


def dedupe_by_id(offers: List[FlightOffer]) -> List[FlightOffer]:
    """Keep the first offer seen for each identity key"""
    seen = set()
    unique = []
    for offer in offers:
        if offer.id not in seen:
            seen.add(offer.id)
            unique.append(offer)
    return unique


def apply_filters(offers: List[FlightOffer], request: SearchRequest) -> FilterOutcome:
    """
    Run the business filters in their fixed order.

    A stop constraint of 0 (or none) means any number of stops, not nonstop.
    """
    result = dedupe_by_id(offers)

    if request.is_round_trip:
        result = _keep_if_any(
            result, lambda offer: offer.trip_type == TripType.ROUNDTRIP, "trip type"
        )

    cabin = request.cabin_class.value
    result = _keep_if_any(
        result,
        lambda offer: any(normalize_label(seg.cabin_class) == cabin for seg in offer.segments),
        "cabin class",
    )

    if request.max_stops:
        result = _keep_if_any(
            result, lambda offer: offer.total_stops == request.max_stops, "stops"
        )

    if request.adults:
        result = _keep_if_any(
            result,
            lambda offer: offer.bookable_seats is None or offer.bookable_seats >= request.adults,
            "seat availability",
        )

    result = result[:request.result_cap]

    warnings = []
    if request.is_round_trip and result and all(
        offer.trip_type == TripType.ONEWAY for offer in result
    ):
        warnings.append(ROUND_TRIP_ONEWAY_WARNING)

    return FilterOutcome(offers=result, warnings=warnings)


def collect_airports(offers: List[FlightOffer]) -> List[AirportReference]:
    """Unique airports referenced by the offers, in first-seen order"""
    airports: Dict[str, AirportReference] = {}
    for offer in offers:
        for seg in offer.segments:
            for end in (seg.departure, seg.arrival):
                if end.airport_code and end.airport_code not in airports:
                    airports[end.airport_code] = AirportReference(
                        code=end.airport_code,
                        display_name=end.display_name or end.airport_code,
                    )
    return list(airports.values())
