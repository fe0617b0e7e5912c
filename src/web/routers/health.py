"""
Health Check Endpoint

GET /health reports the database and the permission cache. The service
keeps answering from the database when the cache is down, so a cache
outage is reported as "degraded" rather than failing the check.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from database.async_engine import check_database
from rbac.dependencies import get_permission_service
from rbac.service import PermissionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(service: PermissionService = Depends(get_permission_service)):
    database = await check_database(service.session_factory)
    cache = await service.health()

    if database["status"] != "healthy":
        status = "unhealthy"
    elif cache["status"] != "healthy":
        status = "degraded"
    else:
        status = "healthy"

    return JSONResponse(
        status_code=503 if status == "unhealthy" else 200,
        content={
            "status": status,
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "database": database,
            "cache": cache,
        },
    )
