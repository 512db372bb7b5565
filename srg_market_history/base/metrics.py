import threading
from typing import Dict, Optional
from prometheus_client import CollectorRegistry, Counter, Histogram, Gauge, Info, generate_latest
from loguru import logger

# Global metrics registry per service
_service_registries: Dict[str, "MetricsRegistry"] = {}
_metrics_lock = threading.Lock()


class MetricsRegistry:
    """Metrics registry for one service, exposed through the API's /metrics endpoint"""

    def __init__(self, service_name: str, version: str = "1.0.0"):
        self.service_name = service_name
        self.registry = CollectorRegistry()

        self.service_info = Info(
            'service_info',
            'Service information',
            registry=self.registry
        )
        self.service_info.info({'service_name': service_name, 'version': version, 'component': 'api'})

        self.service_start_time = Gauge(
            'service_start_time_seconds',
            'Service start time in Unix timestamp',
            registry=self.registry
        )
        self.service_start_time.set_to_current_time()

        self.errors_total = Counter(
            'service_errors_total',
            'Total number of errors by type',
            ['error_type', 'component'],
            registry=self.registry
        )

    def create_counter(self, name: str, description: str, labelnames: list = None) -> Counter:
        return Counter(name, description, labelnames or [], registry=self.registry)

    def create_histogram(self, name: str, description: str, labelnames: list = None,
                         buckets: tuple = None) -> Histogram:
        kwargs = {
            'name': name,
            'documentation': description,
            'labelnames': labelnames or [],
            'registry': self.registry
        }
        if buckets:
            kwargs['buckets'] = buckets
        return Histogram(**kwargs)

    def create_gauge(self, name: str, description: str, labelnames: list = None) -> Gauge:
        return Gauge(name, description, labelnames or [], registry=self.registry)

    def get_metrics_text(self) -> str:
        """Get metrics in Prometheus text format"""
        return generate_latest(self.registry).decode('utf-8')

    def record_error(self, error_type: str, component: str = "unknown"):
        self.errors_total.labels(error_type=error_type, component=component).inc()


def setup_metrics(service_name: str, version: str = "1.0.0") -> "MetricsRegistry":
    """
    Setup metrics for a service. Calling it twice with the same name returns
    the registry created by the first call.

    Args:
        service_name: Name of the service (e.g., 'srg-market-history-api')
        version: Service version reported in service_info

    Returns:
        MetricsRegistry: Configured metrics registry for the service
    """
    with _metrics_lock:
        if service_name in _service_registries:
            logger.debug(f"Metrics already setup for {service_name}")
            return _service_registries[service_name]

        metrics_registry = MetricsRegistry(service_name, version)
        _service_registries[service_name] = metrics_registry
        logger.info(f"Metrics setup completed for service: {service_name}")
        return metrics_registry


def get_metrics_registry(service_name: str) -> Optional["MetricsRegistry"]:
    return _service_registries.get(service_name)


DURATION_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, 30.0, float('inf'))


class SeriesMetrics:
    """Metrics for the subgraph queries and windows behind one history series"""

    def __init__(self, registry: MetricsRegistry):
        self.registry = registry

        self.subgraph_queries_total = registry.create_counter(
            'subgraph_queries_total',
            'Total GraphQL queries sent to the subgraph',
            ['query_type', 'status']
        )

        self.subgraph_query_duration = registry.create_histogram(
            'subgraph_query_duration_seconds',
            'GraphQL query duration',
            ['query_type'],
            buckets=DURATION_BUCKETS
        )

        self.transfers_fetched_total = registry.create_counter(
            'transfers_fetched_total',
            'Transfer records fetched from the subgraph',
            ['role']
        )

        self.series_windows_total = registry.create_counter(
            'series_windows_total',
            'Time windows processed per metric and outcome',
            ['metric', 'outcome']
        )

    def record_query(self, query_type: str, duration: float, success: bool = True):
        status = "success" if success else "error"
        self.subgraph_queries_total.labels(query_type=query_type, status=status).inc()
        self.subgraph_query_duration.labels(query_type=query_type).observe(duration)

    def record_transfers_fetched(self, role: str, count: int):
        self.transfers_fetched_total.labels(role=role).inc(count)

    def record_window(self, metric: str, outcome: str):
        self.series_windows_total.labels(metric=metric, outcome=outcome).inc()


_series_metrics: Dict[str, SeriesMetrics] = {}


def get_series_metrics(service_name: str) -> Optional[SeriesMetrics]:
    """SeriesMetrics bound to the service's registry, or None when metrics were never set up"""
    registry = get_metrics_registry(service_name)
    if registry is None:
        return None
    with _metrics_lock:
        if service_name not in _series_metrics:
            _series_metrics[service_name] = SeriesMetrics(registry)
        return _series_metrics[service_name]
