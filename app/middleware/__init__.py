"""
Middleware components for request processing.

This package contains:
- Request context (request ID, IP address, user agent)
- CORS for the web dashboard
- Exception handlers rendering {"error", "code"} bodies
"""

from app.middleware.cors import CORSMiddleware
from app.middleware.error_handlers import register_error_handlers
from app.middleware.request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
    "CORSMiddleware",
    "register_error_handlers",
]
