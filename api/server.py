"""
FarmOps Compliance API Server.

Run:
    python -m api.server
    uvicorn --factory api.server:create_app --port 8420
"""

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import compliance_router, overrides_router, reports_router
from api.dependencies import get_database
from api.response_models import ErrorResponse, HealthResponse
from farmops import config
from farmops.activity_matcher import ActivityMatcher, configured_alias_table
from farmops.compliance import ComplianceService
from farmops.db import Database
from farmops.errors import DependencyFailure, InvalidInput
from farmops.observability import CorrelationIdMiddleware, HealthChecker, configure_logging
from farmops.repository import FarmRepository
from farmops.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db: Database = app.state.db
    logger.info("=== FarmOps Compliance API startup ===")
    logger.info("DB path: %s", db.db_path)
    db.ensure_schema()
    yield


def create_app(db: Database | None = None, now_fn: Callable[[], datetime] | None = None) -> FastAPI:
    """
    Build the application.

    db defaults to the configured store. now_fn pins "now" for status
    computation; tests use it to make statuses deterministic.
    """
    app = FastAPI(
        title="FarmOps Compliance API",
        description="Scheduled farm tasks vs. activity logs, per week",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    database = db or Database()
    matcher = ActivityMatcher(configured_alias_table())
    app.state.db = database
    app.state.service = ComplianceService(
        FarmRepository(database),
        SnapshotStore(database),
        matcher,
        now_fn=now_fn,
    )
    logger.info("Task alias table version %s", matcher.version)

    # ==== Error mapping ====

    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(request: Request, exc: InvalidInput):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(DependencyFailure)
    async def dependency_failure_handler(request: Request, exc: DependencyFailure):
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
            message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
        else:
            message = "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    # ==== Routes ====

    error_responses = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
    for module in (compliance_router, overrides_router, reports_router):
        app.include_router(module.router, prefix="/api", responses=error_responses)

    @app.get("/api/health", response_model=HealthResponse)
    def health(db: Database = Depends(get_database)):
        return HealthChecker(db).run_all().to_dict()

    return app


# ==== Main ====


def main():
    """Run the server."""
    configure_logging(config.LOG_LEVEL, config.LOG_JSON)
    uvicorn.run(create_app(), host=config.API_HOST, port=config.API_PORT)


if __name__ == "__main__":
    main()
