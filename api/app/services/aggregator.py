"""
Flight Aggregator - Fans a search out to every provider and merges the results
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
import logging
import time

from app.schemas.flight import FlightOffer, SearchRequest
from app.services.providers import (
    AmadeusProvider,
    FlightProvider,
    GoogleFlightsProvider,
    ProviderError,
    SkyscannerProvider,
)
from app.utils.concurrency import Settled, settle_all
from app.utils.metrics import PROVIDER_LATENCY, PROVIDER_REQUESTS

logger = logging.getLogger(__name__)


class AggregateExhaustionError(Exception):
    """Every provider failed, so there is no data to show"""
    def __init__(self, provider_errors: Dict[str, str]):
        self.provider_errors = provider_errors
        super().__init__(
            "All flight providers failed: "
            + ", ".join(f"{name} ({reason})" for name, reason in provider_errors.items())
        )


@dataclass
class AggregateResult:
    """Merged offers plus per-provider diagnostics"""
    offers: List[FlightOffer]
    contributing_providers: List[str] = field(default_factory=list)
    provider_errors: Dict[str, str] = field(default_factory=dict)


def merge_offers(existing: FlightOffer, incoming: FlightOffer) -> FlightOffer:
    """
    Combine two offers for the same itinerary.

    Price options are concatenated and the lowest price recomputed; route
    and segment data of the existing offer are kept as they are.
    """
    if existing.id != incoming.id:
        raise ValueError(f"Cannot merge offers {existing.id!r} and {incoming.id!r}")

    price_options = existing.price_options + incoming.price_options
    return existing.model_copy(update={
        "price_options": price_options,
        "lowest_price": min(option.price for option in price_options),
    })


def merge_all(offers: Iterable[FlightOffer]) -> List[FlightOffer]:
    """Fold offers into one per identity key, in first-seen order"""
    merged: Dict[str, FlightOffer] = {}
    for offer in offers:
        if offer.id in merged:
            merged[offer.id] = merge_offers(merged[offer.id], offer)
        else:
            merged[offer.id] = offer
    return list(merged.values())


def sort_by_price(offers: List[FlightOffer]) -> List[FlightOffer]:
    """Stable ascending sort by lowest price"""
    return sorted(offers, key=lambda offer: offer.lowest_price)


def describe_error(error: BaseException) -> str:
    if isinstance(error, ProviderError):
        return error.message
    return str(error) or type(error).__name__


class FlightAggregator:
    """
    Searches all providers concurrently and merges duplicate itineraries.

    Providers are queried in a fixed order (Amadeus, Google Flights,
    Skyscanner) which is also the merge order, so price ties keep that
    order after sorting.
    """

    def __init__(self, providers: Optional[List[FlightProvider]] = None):
        if providers is None:
            providers = [
                AmadeusProvider(),
                GoogleFlightsProvider(),
                SkyscannerProvider(),
            ]
        self._providers = providers

    @property
    def providers(self) -> List[FlightProvider]:
        """Get all registered providers"""
        return self._providers

    async def _timed_search(
        self, provider: FlightProvider, request: SearchRequest
    ) -> Settled[List[FlightOffer]]:
        start = time.time()
        try:
            return await provider.search_settled(request)
        finally:
            PROVIDER_LATENCY.labels(provider=provider.name).observe(time.time() - start)

    async def aggregate(self, request: SearchRequest) -> AggregateResult:
        """
        Search every provider and return merged offers sorted by lowest price.

        Raises:
            AggregateExhaustionError: if no provider succeeded
        """
        outcomes = await settle_all([
            self._timed_search(provider, request) for provider in self._providers
        ])

        collected: List[FlightOffer] = []
        contributing: List[str] = []
        errors: Dict[str, str] = {}

        for provider, outcome in zip(self._providers, outcomes):
            # a provider that swallowed its own failure still reports it
            if outcome.ok:
                outcome = outcome.value
            if outcome.ok:
                PROVIDER_REQUESTS.labels(provider=provider.name, outcome="success").inc()
                contributing.append(provider.name)
                collected.extend(outcome.value or [])
                logger.info(f"{provider.name}: {len(outcome.value or [])} offers")
            else:
                PROVIDER_REQUESTS.labels(provider=provider.name, outcome="failure").inc()
                errors[provider.name] = describe_error(outcome.error)
                logger.warning(f"{provider.name} failed: {errors[provider.name]}")

        if not contributing:
            logger.error(
                f"All providers failed for {request.origin_code}->{request.destination_code}"
            )
            raise AggregateExhaustionError(errors)

        offers = sort_by_price(merge_all(collected))
        logger.info(
            f"Aggregated {len(collected)} offers into {len(offers)} itineraries for "
            f"{request.origin_code}->{request.destination_code}"
        )

        return AggregateResult(
            offers=offers,
            contributing_providers=contributing,
            provider_errors=errors,
        )


# Singleton instance for the application
flight_aggregator = FlightAggregator()


def get_flight_aggregator() -> FlightAggregator:
    """Dependency that provides the flight aggregator"""
    return flight_aggregator
