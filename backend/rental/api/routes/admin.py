# backend/rental/api/routes/admin.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from rental.api.deps.permissions import require_admin_identity
from rental.api.deps.services import get_media_registry, get_payment_ledger, get_tenant_directory
from rental.auth.identity import Identity
from rental.schemas.image import ImagePageOut
from rental.schemas.payment import PaymentPageOut, PaymentSavedOut, PaymentStatusUpdate
from rental.schemas.tenant import (
    DashboardResponse,
    TenantDeletedOut,
    TenantListOut,
    TenantOptionsOut,
    TenantPageOut,
)
from rental.services.media import MediaRegistry
from rental.services.payments import PaymentLedger
from rental.services.tenants import TenantDirectory

router = APIRouter(prefix="/admin", tags=["admin"])


def list_params(
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    tenant_id: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None),
    sort_order: Optional[str] = Query(default=None),
) -> dict:
    """
    Raw query-string values; the query engine validates them so that bad
    input becomes the same ValidationError wherever it is called from.
    """
    return {
        "page": page,
        "limit": limit,
        "status": status,
        "tenant_id": tenant_id,
        "search": search,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }


# ---------------------------------------------------------
# Tenants
# ---------------------------------------------------------
@router.get("/tenants", response_model=TenantListOut)
async def list_tenants(
    identity: Identity = Depends(require_admin_identity),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    return {"success": True, "tenants": directory.list_tenants(identity)}


@router.get("/tenants/paginated", response_model=TenantPageOut)
async def paginate_tenants(
    params: dict = Depends(list_params),
    identity: Identity = Depends(require_admin_identity),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    return {"success": True, **directory.paginate(identity, params)}


@router.get("/tenant-options", response_model=TenantOptionsOut)
async def tenant_options(
    identity: Identity = Depends(require_admin_identity),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    return {"success": True, "data": directory.tenant_options(identity)}


@router.delete("/tenants/{tenant_id}", response_model=TenantDeletedOut)
async def delete_tenant(
    tenant_id: int,
    identity: Identity = Depends(require_admin_identity),
    registry: MediaRegistry = Depends(get_media_registry),
):
    deleted = await registry.delete_tenant(identity, tenant_id)
    return {
        "success": True,
        "message": f"Tenant {deleted['tenant']!r} deleted",
        "deleted": deleted,
    }


# ---------------------------------------------------------
# Dashboard
# ---------------------------------------------------------
@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    identity: Identity = Depends(require_admin_identity),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    return {"success": True, "dashboard": directory.dashboard(identity)}


# ---------------------------------------------------------
# Payments / images
# ---------------------------------------------------------
@router.get("/payments/paginated", response_model=PaymentPageOut)
async def paginate_payments(
    params: dict = Depends(list_params),
    identity: Identity = Depends(require_admin_identity),
    ledger: PaymentLedger = Depends(get_payment_ledger),
):
    return {"success": True, **ledger.paginate(identity, params)}


@router.put("/payments/{payment_id}/status", response_model=PaymentSavedOut)
async def update_payment_status(
    payment_id: int,
    payload: PaymentStatusUpdate,
    identity: Identity = Depends(require_admin_identity),
    ledger: PaymentLedger = Depends(get_payment_ledger),
):
    payment = await ledger.set_status(identity, payment_id, payload.status)
    return {"success": True, "message": "Payment status updated", "payment": payment}


@router.get("/images/paginated", response_model=ImagePageOut)
async def paginate_images(
    params: dict = Depends(list_params),
    identity: Identity = Depends(require_admin_identity),
    registry: MediaRegistry = Depends(get_media_registry),
):
    return {"success": True, **registry.paginate(identity, params)}
