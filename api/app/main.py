"""
Flightmerge API - Main Application Entry Point
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse, Response
import time
import logging

from prometheus_client import generate_latest, CONTENT_TYPE_LATEST, REGISTRY

from app.config import settings
from app.routers import airports, flights, health
from app.services.aggregator import flight_aggregator
from app.utils.metrics import REQUEST_COUNT, REQUEST_LATENCY

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager - handles startup and shutdown events
    """
    logger.info("Starting Flightmerge API...")

    for provider in flight_aggregator.providers:
        if provider.is_configured:
            logger.info(f"Provider {provider.display_name} configured")
        else:
            logger.warning(f"Provider {provider.display_name} has no credentials and will be skipped")

    logger.info("Flightmerge API ready to serve requests!")

    yield

    logger.info("Shutting down Flightmerge API...")


# Create FastAPI application
app = FastAPI(
    title=settings.API_TITLE,
    description="""
    ## Flight Search Aggregation API

    Searches several flight providers at once and merges identical
    itineraries into a single offer with one price per provider.

    ### Features
    - Concurrent search across Amadeus, Google Flights and Skyscanner
    - Cheapest-first results with per-provider price options
    - Cabin, stop count, seat availability and trip type filters
    - Airport autocomplete
    """,
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware with Prometheus metrics
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    # Skip /metrics to avoid recording the scrape itself
    if request.url.path != "/metrics":
        endpoint = request.url.path
        method = request.method
        status = response.status_code

        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()
        REQUEST_LATENCY.labels(method=method, endpoint=endpoint).observe(process_time)

    response.headers["X-Process-Time"] = str(process_time)
    return response


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(flights.router, prefix="/flights", tags=["Flights"])
app.include_router(airports.router, prefix="/airports", tags=["Airports"])


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint - API information"""
    return {
        "name": settings.API_TITLE,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs" if settings.DEBUG else "disabled",
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST
    )
