"""
Observability: structured logging, request IDs, health checks.

Usage:
    from farmops.observability import configure_logging, RequestContext

    configure_logging("INFO")
    with RequestContext() as ctx:
        logger.info("Computing compliance", extra={"week_start": "2026-01-26"})
"""

from .context import RequestContext, generate_request_id, get_request_id, set_request_id
from .health import HealthChecker, HealthReport, HealthStatus
from .logging import CorrelationIdMiddleware, HumanFormatter, JSONFormatter, configure_logging

__all__ = [
    # Logging
    "configure_logging",
    "JSONFormatter",
    "HumanFormatter",
    "CorrelationIdMiddleware",
    # Context
    "RequestContext",
    "generate_request_id",
    "get_request_id",
    "set_request_id",
    # Health
    "HealthChecker",
    "HealthReport",
    "HealthStatus",
]
