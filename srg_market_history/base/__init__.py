import os
from dataclasses import dataclass
from dotenv import load_dotenv
from .metrics import setup_metrics, get_metrics_registry, get_series_metrics, SeriesMetrics
from .enhanced_logging import (
    setup_enhanced_logger, ErrorContextManager, classify_error, log_service_start, log_service_stop,
    get_correlation_id, set_correlation_id, generate_correlation_id
)


load_dotenv()

TICKER_QUERY_MODES = ("scoped", "unscoped")
VOLUME_MISSING_PREVIOUS_POLICIES = ("skip", "zero")
MAX_TRANSFERS_PAGE_SIZE = 1000


@dataclass(frozen=True)
class SubgraphSettings:
    url: str
    timeout_seconds: float
    page_size: int
    max_workers: int
    ticker_query_mode: str
    volume_missing_previous_policy: str


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Invalid {name} value: {raw}")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Invalid {name} value: {raw}")


def get_subgraph_settings() -> SubgraphSettings:
    """Read subgraph connection and aggregation settings from the environment.

    Raises:
        ValueError: if any value is out of range or not one of the allowed choices
    """
    page_size = _int_env("TRANSFERS_PAGE_SIZE", MAX_TRANSFERS_PAGE_SIZE)
    if not 1 <= page_size <= MAX_TRANSFERS_PAGE_SIZE:
        raise ValueError(f"TRANSFERS_PAGE_SIZE must be between 1 and {MAX_TRANSFERS_PAGE_SIZE}, got {page_size}")

    timeout_seconds = _float_env("SUBGRAPH_TIMEOUT_SECONDS", 30.0)
    if timeout_seconds <= 0:
        raise ValueError(f"SUBGRAPH_TIMEOUT_SECONDS must be positive, got {timeout_seconds}")

    max_workers = _int_env("SUBGRAPH_MAX_WORKERS", 4)
    if max_workers < 1:
        raise ValueError(f"SUBGRAPH_MAX_WORKERS must be at least 1, got {max_workers}")

    ticker_query_mode = os.getenv("TICKER_QUERY_MODE", "scoped").lower()
    if ticker_query_mode not in TICKER_QUERY_MODES:
        raise ValueError(f"TICKER_QUERY_MODE must be one of {TICKER_QUERY_MODES}, got {ticker_query_mode}")

    volume_policy = os.getenv("VOLUME_MISSING_PREVIOUS_POLICY", "skip").lower()
    if volume_policy not in VOLUME_MISSING_PREVIOUS_POLICIES:
        raise ValueError(
            f"VOLUME_MISSING_PREVIOUS_POLICY must be one of {VOLUME_MISSING_PREVIOUS_POLICIES}, got {volume_policy}"
        )

    return SubgraphSettings(
        url=os.getenv("SUBGRAPH_URL", "http://localhost:8000/subgraphs/name/srg20"),
        timeout_seconds=timeout_seconds,
        page_size=page_size,
        max_workers=max_workers,
        ticker_query_mode=ticker_query_mode,
        volume_missing_previous_policy=volume_policy,
    )


def get_service_name() -> str:
    return os.getenv("SERVICE_NAME", "srg-market-history-api")


def get_cors_origins():
    origins = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in origins.split(",") if origin.strip()]


def get_api_bind():
    return os.getenv("API_HOST", "0.0.0.0"), _int_env("API_PORT", 3000)


def get_logging_settings():
    """Log directory (None for the project default) and minimum level"""
    return os.getenv("LOGS_DIR") or None, os.getenv("LOG_LEVEL", "INFO").upper()
