"""Health & Readiness Probes — is the gateway up, and can it serve share links?

Invariants:
    - GET /health/ always answers 200 while the process is up (liveness)
    - GET /health/ready answers 503 until the client is started and its durable
      store responds; the persistence service is not probed (resolution already
      degrades to UNAVAILABLE on its own)
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "cardsync-gateway"
SERVICE_VERSION = "1.0.0"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@router.get("/ready")
async def readiness_check(request: Request):
    client = getattr(request.app.state, "client", None)
    if client is None:
        return _not_ready("client_not_started")
    if not await client.local_store.health_check():
        logger.warning("Readiness check failed: local store unavailable")
        return _not_ready("local_store_unavailable")
    return {
        "status": "ready",
        "checks": {"local_store": "healthy"},
        "cache": client.cache.stats(),
    }


def _not_ready(reason: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "reason": reason},
    )
