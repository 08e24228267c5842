"""
CORS Middleware for the artist dashboard.

Only origins listed in CORS_ALLOWED_ORIGINS get CORS headers. Preflight
requests from other origins are rejected with 403. The public unsubscribe
and webhook endpoints are server-to-server or plain link clicks and do not
depend on CORS.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
DEFAULT_HEADERS = ["Accept", "Content-Type", "Authorization", "X-Request-ID"]


class CORSMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        allowed_origins: list[str] | None = None,
        allow_credentials: bool = True,
        allow_methods: list[str] | None = None,
        allow_headers: list[str] | None = None,
        max_age: int = 600,
    ):
        super().__init__(app)
        self.allowed_origins = allowed_origins or []
        self.allow_credentials = allow_credentials
        self.allow_methods = allow_methods or DEFAULT_METHODS
        self.allow_headers = allow_headers or DEFAULT_HEADERS
        self.max_age = max_age

    def is_allowed(self, origin: str | None) -> bool:
        return bool(origin) and origin in self.allowed_origins

    async def dispatch(self, request, call_next):
        origin = request.headers.get("origin")
        allowed = self.is_allowed(origin)

        is_preflight = (
            request.method == "OPTIONS" and "access-control-request-method" in request.headers
        )
        if is_preflight:
            if not allowed:
                logger.warning("CORS preflight rejected", origin=origin)
                return Response(status_code=403, content="Origin not allowed")
            return self._preflight_response(origin)

        response = await call_next(request)

        if allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            if self.allow_credentials:
                response.headers["Access-Control-Allow-Credentials"] = "true"

        return response

    def _preflight_response(self, origin: str) -> Response:
        headers = {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
            "Access-Control-Max-Age": str(self.max_age),
            "Vary": "Origin",
        }
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return Response(status_code=204, headers=headers)
