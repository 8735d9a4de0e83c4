"""
Health check system with component-level checks.
"""

import logging
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from farmops import schema, schema_engine
from farmops.db import Database

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheckResult:
    name: str
    status: HealthStatus
    message: str
    latency_ms: float = 0.0
    details: dict = field(default_factory=dict)


@dataclass
class HealthReport:
    status: HealthStatus
    checks: list[HealthCheckResult]
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "checks": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": round(c.latency_ms, 2),
                    **c.details,
                }
                for c in self.checks
            ],
        }


class HealthChecker:
    """
    Health check orchestrator.

    Usage:
        checker = HealthChecker(db)
        report = checker.run_all()
    """

    def __init__(self, db: Database):
        self.db = db
        self._checks: dict[str, Callable[[], HealthCheckResult]] = {}
        self.add_check("db", self._check_db)
        self.add_check("schema_version", self._check_schema_version)

    def add_check(self, name: str, check_fn: Callable[[], HealthCheckResult]) -> None:
        self._checks[name] = check_fn

    def run_all(self) -> HealthReport:
        """Run every check; the worst status wins."""
        results = []
        overall = HealthStatus.HEALTHY

        for name, check_fn in self._checks.items():
            start = time.monotonic()
            try:
                result = check_fn()
            except sqlite3.Error as e:
                logger.error("Health check '%s' failed", name, exc_info=e)
                result = HealthCheckResult(name=name, status=HealthStatus.UNHEALTHY, message=f"Check failed: {e}")
            result.latency_ms = (time.monotonic() - start) * 1000
            results.append(result)

            if result.status == HealthStatus.UNHEALTHY:
                overall = HealthStatus.UNHEALTHY
            elif result.status == HealthStatus.DEGRADED and overall != HealthStatus.UNHEALTHY:
                overall = HealthStatus.DEGRADED

        return HealthReport(
            status=overall,
            checks=results,
            timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
        )

    def _check_db(self) -> HealthCheckResult:
        self.db.fetch_one("SELECT 1")
        return HealthCheckResult(
            name="db",
            status=HealthStatus.HEALTHY,
            message="Database connection OK",
            details={"path": self.db.db_path},
        )

    def _check_schema_version(self) -> HealthCheckResult:
        with self.db.connect() as conn:
            pending = schema_engine.diff(conn)
        if not pending.up_to_date:
            message = (
                f"Schema behind: version {pending.version} (expected {schema.SCHEMA_VERSION}), "
                f"{len(pending.missing_tables)} tables and {len(pending.missing_columns)} columns missing"
            )
            logger.warning("Health: %s", message)
            return HealthCheckResult(
                name="schema_version",
                status=HealthStatus.DEGRADED,
                message=message,
                details={
                    "current": pending.version,
                    "expected": schema.SCHEMA_VERSION,
                    "missing_tables": pending.missing_tables,
                },
            )
        return HealthCheckResult(
            name="schema_version",
            status=HealthStatus.HEALTHY,
            message=f"Schema version: {pending.version}",
            details={"version": pending.version},
        )
