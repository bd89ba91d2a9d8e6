from __future__ import annotations

from fastapi import APIRouter, Depends

from rental.api.deps.identity import get_current_identity
from rental.api.deps.permissions import require_admin_identity
from rental.api.deps.services import get_tenant_directory
from rental.auth.identity import Identity
from rental.schemas.bank import BankInfoResponse, BankInfoUpdate, BankInfoUpdatedOut
from rental.services.tenants import TenantDirectory

router = APIRouter(prefix="/bank-info", tags=["bank-info"])


@router.get("", response_model=BankInfoResponse)
async def get_bank_info(
    identity: Identity = Depends(get_current_identity),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    return {"success": True, "bankInfo": directory.get_bank_info(identity)}


@router.put("", response_model=BankInfoUpdatedOut)
async def update_bank_info(
    payload: BankInfoUpdate,
    identity: Identity = Depends(require_admin_identity),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    bank_info = await directory.update_bank_info(identity, payload)
    return {"success": True, "message": "Bank information updated", "bankInfo": bank_info}
