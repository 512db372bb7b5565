"""
Enhanced logging infrastructure for the SRG market history API.

Log records carry the service name and the correlation id of the request
that produced them, so a single history request can be followed from the
transfer fetch through every ticker query it issued.
"""

import os
import sys
import time
import uuid
import traceback
from contextvars import ContextVar
from typing import Dict, Any, Optional
from loguru import logger
import psutil


_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return f"req_{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]):
    _correlation_id.set(correlation_id)


def get_system_state() -> Dict[str, Any]:
    """Get current system state for error context."""
    try:
        process = psutil.Process()
        return {
            "memory_usage_mb": round(process.memory_info().rss / 1024 / 1024, 2),
            "cpu_percent": process.cpu_percent(),
            "threads": process.num_threads(),
            "timestamp": time.time()
        }
    except Exception:
        return {"error": "unable_to_get_system_state"}


def setup_enhanced_logger(service_name: str, logs_dir: Optional[str] = None, level: str = "INFO"):
    """
    Setup enhanced logger with correlation ID support and structured context.

    Args:
        service_name: Name of the service (e.g., 'srg-market-history-api')
        logs_dir: Directory for the JSON log file, defaults to <project>/logs
        level: Minimum level for both sinks
    """
    def patch_record(record):
        record["extra"]["service"] = service_name
        record["extra"]["correlation_id"] = get_correlation_id() or "no_correlation"
        return True

    if logs_dir is None:
        project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
        logs_dir = os.path.join(project_root, "logs")

    os.makedirs(logs_dir, exist_ok=True)

    logger.remove()

    # JSON file sink for log shipping
    logger.add(
        os.path.join(logs_dir, f"{service_name}.log"),
        rotation="500 MB",
        level=level,
        filter=patch_record,
        serialize=True,
    )

    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level}</level> | <cyan>{extra[service]}</cyan> | <blue>{extra[correlation_id]}</blue> | <white>{message}</white>",
        level=level,
        filter=patch_record,
        backtrace=False,
        diagnose=False,
    )


class ErrorContextManager:
    """
    Structured error logging for one service.

    Errors are logged with the correlation id of the current request, the
    process state and whatever business context the caller passes in.
    """

    def __init__(self, service_name: str):
        self.service_name = service_name

    def log_error(self, message: str, error: Exception, **context):
        """
        Log an error with enhanced context.

        Args:
            message: Human-readable error message
            error: The exception that occurred
            **context: Additional context for the error
        """
        logger.bind(
            error_type=type(error).__name__,
            error_message=str(error),
            error_category=classify_error(error),
            system_state=get_system_state(),
            stack_trace="".join(traceback.format_exception(type(error), error, error.__traceback__)),
            **context
        ).error(f"{message}: {error}")

    def log_business_decision(self, decision: str, reason: str, **context):
        """
        Log a decision that changes what the caller receives, such as a
        window left out of a series.
        """
        logger.bind(decision=decision, reason=reason, **context).info(f"Business decision: {decision}")

    def log_service_lifecycle(self, event: str, **context):
        logger.bind(lifecycle_event=event, timestamp=time.time(), **context).info(f"Service lifecycle: {event}")


def classify_error(error: Exception) -> str:
    """
    Classify errors into categories for metrics labels and alerting.

    Args:
        error: The exception to classify

    Returns:
        str: Error category
    """
    error_type = type(error).__name__.lower()
    error_message = str(error).lower()

    if 'timeout' in error_type or 'timed out' in error_message:
        return 'timeout_error'
    elif 'connection' in error_type or 'transport' in error_type:
        return 'connection_error'
    elif 'query' in error_type or 'graphql' in error_message:
        return 'graphql_error'
    elif 'response' in error_type:
        return 'response_shape_error'
    elif 'invalid' in error_type or 'valueerror' in error_type:
        return 'validation_error'
    else:
        return 'unknown_error'


def log_service_start(service_name: str, **config):
    """Log service startup with configuration."""
    ErrorContextManager(service_name).log_service_lifecycle(
        "service_start",
        configuration=config,
        pid=os.getpid()
    )


def log_service_stop(service_name: str, **context):
    ErrorContextManager(service_name).log_service_lifecycle("service_stop", **context)
