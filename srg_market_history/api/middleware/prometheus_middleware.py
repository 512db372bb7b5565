import time
from fastapi import Request
from fastapi.responses import JSONResponse
from loguru import logger
from prometheus_client import CONTENT_TYPE_LATEST
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from srg_market_history.base.metrics import MetricsRegistry

HISTORY_PREFIXES = ("price-history", "volume-history", "liquidity-history")
STATIC_ENDPOINTS = ("/", "/health", "/metrics", "/docs", "/openapi.json")


class PrometheusMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for collecting Prometheus HTTP metrics"""

    def __init__(self, app: ASGIApp, metrics_registry: MetricsRegistry = None, service_name: str = "api"):
        super().__init__(app)
        self.metrics_registry = metrics_registry
        self.service_name = service_name

        if metrics_registry:
            self._init_metrics()
        else:
            logger.warning(f"No metrics registry provided for {service_name}")

    def _init_metrics(self):
        self.http_requests_total = self.metrics_registry.create_counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status']
        )

        self.http_request_duration = self.metrics_registry.create_histogram(
            'http_request_duration_seconds',
            'HTTP request duration',
            ['method', 'endpoint'],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, float('inf'))
        )

        self.http_requests_in_progress = self.metrics_registry.create_gauge(
            'http_requests_in_progress',
            'HTTP requests currently being processed',
            ['method', 'endpoint']
        )

        self.http_errors_total = self.metrics_registry.create_counter(
            'http_errors_total',
            'Total HTTP errors',
            ['method', 'endpoint', 'status', 'error_type']
        )

    async def dispatch(self, request: Request, call_next):
        if not self.metrics_registry or request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = normalize_endpoint(request.url.path)

        self.http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.time()
        try:
            response = await call_next(request)

            status_code = response.status_code
            self.http_requests_total.labels(method=method, endpoint=endpoint, status=status_code).inc()
            self.http_request_duration.labels(method=method, endpoint=endpoint).observe(time.time() - start_time)

            if status_code >= 400:
                self.http_errors_total.labels(
                    method=method, endpoint=endpoint, status=status_code,
                    error_type=categorize_status(status_code)
                ).inc()

            return response

        except Exception as e:
            self.http_errors_total.labels(
                method=method, endpoint=endpoint, status=500, error_type="internal_error"
            ).inc()
            logger.error(f"Error processing request {method} {request.url.path}: {e}")
            raise

        finally:
            self.http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()


def normalize_endpoint(path: str) -> str:
    """Map a request path to a bounded set of endpoint labels

    The token segment of the history routes becomes a placeholder whatever
    its content, and any path outside the known routes shares one label.

    Examples:
        >>> normalize_endpoint("/price-history/0xAbC123")
        '/price-history/{address}'
        >>> normalize_endpoint("/wp-admin/setup.php")
        '/{unmatched}'
    """
    parts = [part for part in path.split('/') if part]
    if len(parts) == 2 and parts[0] in HISTORY_PREFIXES:
        return f"/{parts[0]}/{{address}}"

    normalized = '/' + '/'.join(parts)
    if normalized in STATIC_ENDPOINTS:
        return normalized
    return '/{unmatched}'


def categorize_status(status_code: int) -> str:
    if status_code == 400:
        return "bad_request"
    elif status_code == 404:
        return "not_found"
    elif 400 <= status_code < 500:
        return "client_error"
    elif status_code == 500:
        return "internal_error"
    elif status_code == 504:
        return "gateway_timeout"
    return "server_error"


def create_metrics_endpoint(metrics_registry):
    """Create a /metrics endpoint for Prometheus scraping"""
    async def metrics_endpoint():
        if metrics_registry:
            return Response(content=metrics_registry.get_metrics_text(), media_type=CONTENT_TYPE_LATEST)
        return JSONResponse(status_code=503, content={"error": "Metrics not available"})

    return metrics_endpoint
