"""
FastAPI middleware for request context and logging
"""
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from halal_tools.core.config import get_settings
from halal_tools.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)


def get_client_ip(request: Request, trust_proxy_headers: Optional[bool] = None) -> str:
    """
    Caller address

    The first X-Forwarded-For hop is used only when proxy headers are
    trusted; otherwise any client could pick its own address.
    """
    if trust_proxy_headers is None:
        trust_proxy_headers = get_settings().trust_proxy_headers
    forwarded = request.headers.get("x-forwarded-for") if trust_proxy_headers else None
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """Middleware to add request context to logs"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())

        LoggingConfig.set_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=get_client_ip(request),
        )

        start_time = time.time()
        logger.info("Request started", extra={"query_params": str(request.query_params)})

        try:
            response = await call_next(request)
            duration_ms = int((time.time() - start_time) * 1000)
            logger.info(
                "Request completed",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                }
            )
            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "Request failed",
                exc_info=True,
                extra={
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "duration_ms": duration_ms,
                }
            )
            raise

        finally:
            LoggingConfig.clear_context()
