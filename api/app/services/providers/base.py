"""
Base Flight Provider - Abstract interface for all flight search providers
"""
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Dict, List, Optional, TypeVar
from datetime import datetime
import asyncio
import logging

from app.config import settings
from app.schemas.flight import AirportTime, FlightSegment, SearchRequest, FlightOffer
from app.utils.concurrency import Settled

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Exception raised when a provider fails"""
    def __init__(self, provider_name: str, message: str, original_error: Optional[Exception] = None):
        self.provider_name = provider_name
        self.message = message
        self.original_error = original_error
        super().__init__(f"{provider_name}: {message}")


class ProviderAuthError(ProviderError):
    """Missing or rejected provider credentials"""


class ProviderTransportError(ProviderError):
    """Network failure, timeout or non-success HTTP status"""
    def __init__(
        self,
        provider_name: str,
        message: str,
        original_error: Optional[Exception] = None,
        status_code: Optional[int] = None,
        payload: Any = None,
    ):
        super().__init__(provider_name, message, original_error)
        self.status_code = status_code
        self.payload = payload


class ProviderParseError(ProviderError):
    """Provider answered with a payload we cannot read"""


class FlightProvider(ABC):
    """
    Abstract base class for flight search providers.

    Every provider turns a canonical SearchRequest into its own request
    format and maps the answer back into FlightOffers.
    """

    # Provider identification
    name: str = "base"
    display_name: str = "Base"

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else settings.PROVIDER_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        """Check if provider has required configuration (API keys, etc.)"""
        return True  # Override in subclasses

    @abstractmethod
    def build_params(self, request: SearchRequest) -> Dict[str, Any]:
        """Translate the canonical request into provider query params"""

    @abstractmethod
    async def search(self, request: SearchRequest) -> List[FlightOffer]:
        """
        Search for flights.

        Args:
            request: Validated search request

        Returns:
            List of flight offers in provider order

        Raises:
            ProviderError: If the search fails
        """

    async def search_settled(self, request: SearchRequest) -> Settled[List[FlightOffer]]:
        """
        Search for the aggregate fan-out.

        Raising providers let the error propagate. Providers that swallow their
        own failures override this to hand back the empty result together
        with the error they swallowed.
        """
        return Settled(ok=True, value=await self.search(request))

    async def with_deadline(self, call: Awaitable[T]) -> T:
        """Run a whole provider call (token exchange included) within self.timeout"""
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTransportError(self.name, f"Timed out after {self.timeout}s", e)

    async def health_check(self) -> bool:
        """
        Check if the provider is usable.

        Default implementation reports configuration only.
        """
        return self.is_configured


def identity_key(segments: List[FlightSegment]) -> str:
    """
    Build the cross-provider identity of an itinerary from its ordered
    (departure code, arrival code, departure time) triples.
    """
    return "|".join(
        f"{seg.departure.airport_code}-{seg.arrival.airport_code}-"
        f"{normalize_timestamp(seg.departure.local_timestamp)}"
        for seg in segments
    )


def normalize_timestamp(raw: str) -> str:
    """Render a local timestamp as YYYY-MM-DDTHH:MM, or return it unchanged if unparseable"""
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return raw
    return parsed.strftime("%Y-%m-%dT%H:%M")


def airport_time(code: Optional[str], timestamp: Optional[str], name: Optional[str] = None,
                 terminal: Optional[str] = None) -> AirportTime:
    code = (code or "").upper()
    return AirportTime(
        airport_code=code,
        display_name=name or code,
        local_timestamp=timestamp or "",
        terminal=terminal,
    )
