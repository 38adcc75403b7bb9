"""
Health-check endpoint. No authentication required.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from sessionauth.db.connection import Database, get_database
from sessionauth.schemas import HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/api/health", response_model=HealthResponse)
def health_check(database: Database = Depends(get_database)) -> HealthResponse:
    """Report whether the credential store answers a trivial query."""
    database_ok = database.ping()
    return HealthResponse(
        status="ok" if database_ok else "degraded",
        database=database_ok,
    )
