"""
RequestContext Middleware - Adds request tracking to all requests.

Every request gets:
- request_id: taken from an incoming X-Request-ID header or generated
- ip_address: client IP (X-Forwarded-For only from trusted proxies)
- user_agent: client user agent string

The values are stored on request.state and bound to structlog's
contextvars, so every log line written while handling the request
carries the request_id.
"""

import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Populate request.state and the logging context for one request."""

    async def dispatch(self, request: Request, call_next):
        request_id = self._request_id(request)
        ip_address = self._extract_client_ip(request)
        user_agent = request.headers.get("user-agent")

        request.state.request_id = request_id
        request.state.ip_address = ip_address
        request.state.user_agent = user_agent

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.debug(
            "Request started",
            method=request.method,
            path=request.url.path,
            ip_address=ip_address,
        )

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    def _request_id(self, request: Request) -> str:
        incoming = request.headers.get(REQUEST_ID_HEADER)
        if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
            return incoming
        return str(uuid.uuid4())

    def _extract_client_ip(self, request: Request) -> str | None:
        """
        Extract client IP address with proxy spoofing protection.

        X-Forwarded-For is only trusted when TRUST_X_FORWARDED_FOR is enabled
        and the direct peer is one of TRUSTED_PROXY_IPS.
        """
        direct_ip = request.client.host if request.client else None

        if not settings.TRUST_X_FORWARDED_FOR:
            return direct_ip

        if direct_ip in settings.TRUSTED_PROXY_IPS:
            forwarded_for = request.headers.get("x-forwarded-for")
            if forwarded_for:
                # "client, proxy1, proxy2": first entry is the original client
                return forwarded_for.split(",")[0].strip()

        return direct_ip
