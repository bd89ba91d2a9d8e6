from __future__ import annotations

from fastapi import APIRouter, Depends

from rental.api.deps.identity import get_current_identity
from rental.api.deps.permissions import require_admin_identity
from rental.api.deps.services import get_payment_ledger
from rental.auth.identity import Identity
from rental.schemas.payment import PaymentCreate, PaymentListOut, PaymentSavedOut, PaymentStatusUpdate
from rental.services.payments import PaymentLedger

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("", response_model=PaymentListOut)
async def list_payments(
    identity: Identity = Depends(get_current_identity),
    ledger: PaymentLedger = Depends(get_payment_ledger),
):
    """Tenants get their own payments, admins get all of them; newest first."""
    return {"success": True, "payments": ledger.list_payments(identity)}


@router.post("", response_model=PaymentSavedOut)
async def create_payment(
    payload: PaymentCreate,
    identity: Identity = Depends(get_current_identity),
    ledger: PaymentLedger = Depends(get_payment_ledger),
):
    payment = await ledger.create_payment(identity, payload)
    return {"success": True, "message": "Payment submitted", "payment": payment}


@router.put("/{payment_id}", response_model=PaymentSavedOut)
async def update_payment_status(
    payment_id: int,
    payload: PaymentStatusUpdate,
    identity: Identity = Depends(require_admin_identity),
    ledger: PaymentLedger = Depends(get_payment_ledger),
):
    payment = await ledger.set_status(identity, payment_id, payload.status)
    return {"success": True, "message": "Payment status updated", "payment": payment}
