"""
Correlation IDs for tracing one staff/driver/customer request through
the ledger, the queue engine and the notifications it fans out.

Inbound HTTP requests carry the id in X-Correlation-ID (or X-Request-ID);
log records pick it up through CorrelationIdFilter and notification events
copy it so a subscriber can tie an update back to the command that caused it.
"""
import uuid
import logging
from contextvars import ContextVar
from typing import Optional
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> None:
    _correlation_id.set(correlation_id)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Reuses the caller's correlation id or mints one, and echoes it on the response.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER) or
            request.headers.get(REQUEST_ID_HEADER) or
            generate_correlation_id()
        )
        token = _correlation_id.set(correlation_id)

        logger.debug(f"{request.method} {request.url.path} started")
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        except Exception as e:
            logger.error(f"{request.method} {request.url.path} failed: {e}")
            raise
        finally:
            _correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """
    Exposes the current correlation id as %(correlation_id)s in log formats.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True
