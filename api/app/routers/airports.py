"""
Airport Search & Autocomplete Endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from typing import List, Optional
import logging

from app.schemas.airport import AirportSuggestion
from app.services.airport_lookup import AirportLookupService, get_airport_lookup_service

router = APIRouter()
logger = logging.getLogger(__name__)


class AirportSearchResponse(BaseModel):
    """Search results response (flat list)"""
    query: str
    results: List[AirportSuggestion]
    total: int


@router.get("", response_model=AirportSearchResponse)
async def search_airports(
    keyword: Optional[str] = Query(None, max_length=50, description="City, airport name or code"),
    limit: int = Query(10, ge=1, le=50),
    lookup: AirportLookupService = Depends(get_airport_lookup_service),
):
    """
    Search airports by keyword for the search form autocomplete.
    Uses Amadeus reference data, or a static list when that is unavailable.
    """
    if keyword is None or not keyword.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"reason": "missing_params", "message": "Missing required params: keyword"},
        )

    results = await lookup.search(keyword.strip(), limit)
    logger.debug(f"Airport search '{keyword}' returned {len(results)} results")

    return AirportSearchResponse(query=keyword, results=results, total=len(results))
