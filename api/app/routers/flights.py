"""
Flight Search Endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import ORJSONResponse
from typing import Optional
from datetime import datetime, timezone
import logging

from app.schemas.flight import (
    FlightSearchResponse,
    PriceSummary,
    ProviderSearchResponse,
    SearchMetadata,
)
from app.services.aggregator import (
    AggregateExhaustionError,
    FlightAggregator,
    get_flight_aggregator,
    sort_by_price,
)
from app.services.providers import (
    GoogleFlightsProvider,
    ProviderAuthError,
    ProviderError,
    ProviderTransportError,
)
from app.services.search_filters import (
    SearchValidationError,
    apply_filters,
    collect_airports,
    validate_search_params,
)

router = APIRouter()
logger = logging.getLogger(__name__)

google_flights_provider = GoogleFlightsProvider()


def get_google_flights_provider() -> GoogleFlightsProvider:
    return google_flights_provider


def _bad_request(error: SearchValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"reason": error.reason, "message": error.message},
    )


@router.get("/search", response_model=FlightSearchResponse)
async def search_flights(
    origin: Optional[str] = Query(None, description="Origin airport code (IATA)"),
    destination: Optional[str] = Query(None, description="Destination airport code (IATA)"),
    departure_date: Optional[str] = Query(None, description="Departure date (YYYY-MM-DD)"),
    return_date: Optional[str] = Query(None, description="Return date for round trip"),
    adults: Optional[str] = Query(None, description="Number of adult passengers"),
    children: Optional[str] = Query(None),
    infants: Optional[str] = Query(None),
    travel_class: Optional[str] = Query(None, description="economy, premium_economy, business, first"),
    trip_type: Optional[str] = Query(None, alias="type", description="roundtrip, oneway or any"),
    stops: Optional[str] = Query(None, description="Exact total stop count; 0 means any"),
    max_results: Optional[str] = Query(None, alias="max", description="Maximum offers returned"),
    currency: Optional[str] = Query(None, description="ISO currency code"),
    aggregator: FlightAggregator = Depends(get_flight_aggregator),
):
    """
    Search all flight providers concurrently.

    Offers for the same itinerary are merged, sorted by lowest price and
    filtered by cabin, stops, seat availability and trip type.
    """
    try:
        search = validate_search_params(
            origin, destination, departure_date, return_date,
            adults, children, infants, travel_class, trip_type,
            stops, max_results, currency,
        )
    except SearchValidationError as e:
        logger.info(f"Rejected flight search ({e.reason}): {e.message}")
        raise _bad_request(e)

    logger.info(
        f"Searching flights: {search.origin_code} -> {search.destination_code} "
        f"on {search.departure_date}"
    )

    try:
        result = await aggregator.aggregate(search)
    except AggregateExhaustionError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": "All flight providers failed",
                "provider_errors": e.provider_errors,
            },
        )

    filtered = apply_filters(result.offers, search)

    return FlightSearchResponse(
        offers=filtered.offers,
        metadata=SearchMetadata(
            contributing_providers=result.contributing_providers,
            total_before_filter=len(result.offers),
            provider_errors=result.provider_errors,
            warnings=filtered.warnings,
        ),
        airports_referenced=collect_airports(filtered.offers),
        searched_at=datetime.now(timezone.utc),
    )


@router.get("/google", response_model=ProviderSearchResponse)
async def search_google_flights(
    origin: Optional[str] = Query(None, description="Origin airport code (IATA)"),
    destination: Optional[str] = Query(None, description="Destination airport code (IATA)"),
    departure_date: Optional[str] = Query(None, description="Departure date (YYYY-MM-DD)"),
    return_date: Optional[str] = Query(None),
    adults: Optional[str] = Query(None),
    children: Optional[str] = Query(None),
    infants: Optional[str] = Query(None),
    travel_class: Optional[str] = Query(None),
    currency: Optional[str] = Query(None),
    provider: GoogleFlightsProvider = Depends(get_google_flights_provider),
):
    """
    Search Google Flights only, with a price summary.
    Provider errors are returned with the provider's own status and body.
    """
    try:
        search = validate_search_params(
            origin, destination, departure_date, return_date,
            adults, children, infants, travel_class,
            currency=currency,
        )
    except SearchValidationError as e:
        raise _bad_request(e)

    try:
        offers = await provider.search(search)
    except ProviderAuthError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    except ProviderTransportError as e:
        if e.status_code is not None:
            return ORJSONResponse(status_code=e.status_code, content=e.payload)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    except ProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    offers = sort_by_price(offers)
    prices = [offer.lowest_price for offer in offers]

    return ProviderSearchResponse(
        provider=provider.display_name,
        offers=offers,
        summary=PriceSummary(
            total_results=len(offers),
            cheapest_price=min(prices) if prices else 0.0,
            most_expensive=max(prices) if prices else 0.0,
        ),
        searched_at=datetime.now(timezone.utc),
    )
