"""
Flight Search Providers - Multiple data sources for flight searches
"""
from .base import (
    FlightProvider,
    ProviderError,
    ProviderAuthError,
    ProviderTransportError,
    ProviderParseError,
    identity_key,
)
from .amadeus import AmadeusProvider
from .google_flights import GoogleFlightsProvider
from .skyscanner import SkyscannerProvider

__all__ = [
    "FlightProvider",
    "ProviderError",
    "ProviderAuthError",
    "ProviderTransportError",
    "ProviderParseError",
    "identity_key",
    "AmadeusProvider",
    "GoogleFlightsProvider",
    "SkyscannerProvider",
]
