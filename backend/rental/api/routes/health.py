from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from rental.api.deps.services import get_tenant_directory
from rental.schemas.common import HealthOut
from rental.services.tenants import TenantDirectory

# mounted at the root, not under /api
liveness_router = APIRouter(tags=["health"])

router = APIRouter(tags=["health"])


@liveness_router.get("/health", response_class=PlainTextResponse)
async def liveness() -> str:
    return "OK"


@router.get("/health", response_model=HealthOut)
async def health(directory: TenantDirectory = Depends(get_tenant_directory)):
    return {
        "success": True,
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "dataCounts": directory.health(),
    }
