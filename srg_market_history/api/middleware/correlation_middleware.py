"""
Correlation ID middleware.

Every request gets a correlation id (taken from the X-Correlation-ID header
when the caller sends one). Log records written while the request is handled
carry it, and the response echoes it back.
"""

import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from loguru import logger

from srg_market_history.base.enhanced_logging import generate_correlation_id, set_correlation_id


class CorrelationMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("x-correlation-id") or generate_correlation_id()

        request.state.correlation_id = correlation_id
        request.state.start_time = time.time()
        set_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id
            logger.bind(status=response.status_code, **get_request_context(request)).info(
                f"{request.method} {request.url.path} -> {response.status_code}"
            )
            return response

        except Exception as e:
            logger.error(f"Unhandled error processing {request.method} {request.url.path}: {e}")
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error."},
                headers={"X-Correlation-ID": correlation_id}
            )

        finally:
            set_correlation_id(None)


def get_request_context(request: Request) -> dict:
    """
    Extract request context for logging.

    Args:
        request: FastAPI request object

    Returns:
        dict: Request context for logging
    """
    return {
        "method": request.method,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else "unknown",
        "correlation_id": getattr(request.state, 'correlation_id', None),
        "processing_time": time.time() - getattr(request.state, 'start_time', time.time())
    }
