"""
Prometheus metrics shared across the app
"""
from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

REQUEST_LATENCY = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint']
)

PROVIDER_REQUESTS = Counter(
    'provider_requests_total',
    'Flight provider searches by outcome',
    ['provider', 'outcome']
)

PROVIDER_LATENCY = Histogram(
    'provider_request_duration_seconds',
    'Flight provider search latency in seconds',
    ['provider']
)
