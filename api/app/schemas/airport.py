"""
Airport Schemas
"""
from pydantic import BaseModel
from typing import Optional


class AirportSuggestion(BaseModel):
    """Typeahead result for the search form"""
    iata: str
    icao: Optional[str] = None
    name: str
    city: str = ""
    country: str = ""
    type: str = "AIRPORT"
