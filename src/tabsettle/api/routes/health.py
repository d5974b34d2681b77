from __future__ import annotations

from fastapi import APIRouter, Response, status

from tabsettle.infrastructure.cache.redis_client import ping_redis
from tabsettle.infrastructure.config import storage_backend
from tabsettle.infrastructure.db.session import ping_database

router = APIRouter()


@router.get("/health/live")
def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
def ready(response: Response) -> dict[str, object]:
    backend = storage_backend()
    checks = {
        # the in-memory ledger has nothing to reach
        "database": backend == "memory" or ping_database(timeout_seconds=1.0),
        "redis": ping_redis(timeout_seconds=1.0),
    }
    if all(checks.values()):
        return {"status": "ok", "storageBackend": backend}

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "unavailable", "storageBackend": backend, "checks": checks}
