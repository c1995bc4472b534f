"""
Health Check Endpoints
"""
from fastapi import APIRouter, Depends

from app.services.aggregator import FlightAggregator, get_flight_aggregator

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "flightmerge-api"}


@router.get("/health/ready")
async def readiness_check(aggregator: FlightAggregator = Depends(get_flight_aggregator)):
    """
    Readiness check - reports which flight providers have credentials.
    The service is ready as long as at least one provider can be queried.
    """
    checks = {provider.name: provider.is_configured for provider in aggregator.providers}

    return {
        "status": "ready" if any(checks.values()) else "degraded",
        "checks": checks,
    }


@router.get("/health/live")
async def liveness_check():
    """Liveness check - is the service running"""
    return {"status": "alive"}
