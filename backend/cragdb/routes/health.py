"""
CragDB Backend — Health Check Route
=====================================

What:  Liveness/readiness check for load balancers and container health checks.
How:   Runs SELECT 1 against the database and reports the query cache backend.

Status levels:
    healthy    database reachable, cache usable (HTTP 200)
    degraded   database reachable, Redis cache unreachable (HTTP 200);
               reads fall through to the database
    unhealthy  database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from cragdb import __version__
from cragdb.database import engine
from cragdb.services.query_cache import RedisQueryCache, query_cache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    query_cache: str
    uptime_seconds: float


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"model": HealthResponse}},
)
async def health_check():
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    cache_status = query_cache.backend
    if isinstance(query_cache, RedisQueryCache) and not query_cache.ping():
        cache_status = "redis-unavailable"
        if overall == "healthy":
            overall = "degraded"

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        query_cache=cache_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(
        status_code=503 if overall == "unhealthy" else 200, content=body.model_dump()
    )
