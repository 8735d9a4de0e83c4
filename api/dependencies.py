"""
Request-scoped access to the objects create_app() wires onto app.state.
"""

from fastapi import Request

from farmops.compliance import ComplianceService
from farmops.db import Database
from farmops.repository import FarmRepository


def get_service(request: Request) -> ComplianceService:
    return request.app.state.service


def get_repository(request: Request) -> FarmRepository:
    return request.app.state.service.repository


def get_database(request: Request) -> Database:
    return request.app.state.db
