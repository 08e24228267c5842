"""
Structured logging setup for the artist command center API.
Provides JSON-formatted logs with consistent fields for production monitoring.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: JSON lines for production, coloured console output otherwise
    """
    renderer = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _redact_message_content,
            # ConsoleRenderer pretty-prints exceptions itself
            *([structlog.processors.format_exc_info] if json_logs else []),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# Keys that may carry campaign content; never written to the log stream.
_REDACTED_KEYS = frozenset({"html", "html_content", "body", "password"})


def _redact_message_content(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Replace email bodies and secrets with a length marker."""
    for key in _REDACTED_KEYS & event_dict.keys():
        value = event_dict[key]
        event_dict[key] = f"[redacted len={len(value)}]" if isinstance(value, str) else "[redacted]"
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


# Probes hit these every few seconds; only failures are worth an info line
_PROBE_PATHS = frozenset({"/healthz", "/readyz"})


def log_health_check(service: str, healthy: bool, latency_ms: float, error: str | None = None):
    """One line per dependency checked by /readyz."""
    logger = get_logger("health")
    if healthy:
        logger.debug("Dependency healthy", service=service, latency_ms=latency_ms)
    else:
        logger.error("Dependency unhealthy", service=service, latency_ms=latency_ms, error=error)


def log_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    request_id: str | None = None,
):
    """
    Access log line written by the timing middleware in app.main.

    5xx responses log at error, 4xx at warning. Successful health checks
    log at debug so they do not drown out API traffic.
    """
    logger = get_logger("http").bind(
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
        request_id=request_id,
    )

    if status_code >= 500:
        logger.error("HTTP request errored")
    elif status_code >= 400:
        logger.warning("HTTP request rejected")
    elif path in _PROBE_PATHS:
        logger.debug("HTTP health check")
    else:
        logger.info("HTTP request completed")
