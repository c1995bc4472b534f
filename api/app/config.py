"""
Application Configuration - Environment Variables & Settings
"""
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """
    # Application
    DEBUG: bool = Field(default=False)
    API_TITLE: str = "Flightmerge API"

    # CORS - stored as comma-separated string
    ALLOWED_ORIGINS_STR: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        alias="ALLOWED_ORIGINS"
    )

    @computed_field
    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        """Parse comma-separated origins into list"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS_STR.split(',') if origin.strip()]

    # Flight APIs - GDS: Amadeus
    AMADEUS_CLIENT_ID: str = Field(default="")
    AMADEUS_CLIENT_SECRET: str = Field(default="")
    # Use True for sandbox/test API, False for production API
    AMADEUS_USE_TEST_API: bool = Field(default=True)
    # 0 = request a fresh token for every search
    AMADEUS_TOKEN_CACHE_SECONDS: int = Field(default=0, ge=0)

    @computed_field
    @property
    def AMADEUS_BASE_URL(self) -> str:
        """Get Amadeus API host based on environment"""
        if self.AMADEUS_USE_TEST_API:
            return "https://test.api.amadeus.com"
        return "https://api.amadeus.com"

    # Flight APIs - General search: Google Flights via SerpAPI
    SERPAPI_KEY: str = Field(default="")
    SERPAPI_BASE_URL: str = Field(default="https://serpapi.com/search")

    # Flight APIs - Regional: Skyscanner (via RapidAPI)
    RAPIDAPI_KEY: str = Field(default="")
    SKYSCANNER_API_HOST: str = Field(default="skyscanner-api.p.rapidapi.com")

    # Outbound call budget per provider
    PROVIDER_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0)

    # Search defaults
    DEFAULT_CURRENCY: str = Field(default="USD")
    DEFAULT_RESULT_CAP: int = Field(default=50, ge=1)

    # Airport typeahead lookup
    AIRPORT_LOOKUP_RETRIES: int = Field(default=2, ge=1)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance
    """
    return Settings()


# Global settings instance
settings = get_settings()
