# rental/services/payments.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from rental.auth.identity import Identity
from rental.auth.permissions import require_admin
from rental.core.exceptions import NotFound, ValidationError
from rental.core.logging import get_logger
from rental.core.roles import PAYMENT_STATUSES, PaymentStatus
from rental.db.store import Record, RecordStore
from rental.schemas.common import parse_model
from rental.schemas.payment import PaymentCreate
from rental.services import query

logger = get_logger(__name__)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def compute_fees(
    *,
    rent_amount: float,
    water_fee: float,
    electricity_rate: float,
    previous_meter: float,
    current_meter: float,
    total_amount: float | None = None,
) -> Dict[str, float]:
    """
    usage = current - previous, fee = usage * rate,
    total = explicit total if given, else rent + water + fee.
    """
    electricity_usage = current_meter - previous_meter
    electricity_fee = electricity_usage * electricity_rate
    if total_amount is None:
        total_amount = rent_amount + water_fee + electricity_fee
    return {
        "electricity_usage": electricity_usage,
        "electricity_fee": electricity_fee,
        "total_amount": total_amount,
    }


class PaymentLedger:
    def __init__(self, store: RecordStore):
        self.store = store

    async def create_payment(self, identity: Identity, data: PaymentCreate | Mapping[str, Any]) -> Record:
        payload = parse_model(PaymentCreate, data)
        fees = compute_fees(
            rent_amount=payload.rent_amount,
            water_fee=payload.water_fee,
            electricity_rate=payload.electricity_rate,
            previous_meter=payload.previous_meter,
            current_meter=payload.current_meter,
            total_amount=payload.total_amount,
        )

        async with self.store.transaction() as data_set:
            now = _utcnow_iso()
            payment = {
                "id": self.store.next_id("payments"),
                "tenant_id": identity.id,
                "tenant_name": identity.name or identity.username,
                "payment_date": payload.payment_date.isoformat() if payload.payment_date else None,
                "rent_amount": payload.rent_amount,
                "water_fee": payload.water_fee,
                "electricity_rate": payload.electricity_rate,
                "previous_meter": payload.previous_meter,
                "current_meter": payload.current_meter,
                **fees,
                "account_last_five": payload.account_last_five,
                "status": PaymentStatus.PENDING.value,
                "created_at": now,
                "updated_at": now,
            }
            data_set["payments"].append(payment)

        logger.info(
            "Payment %s submitted by %s: total=%s", payment["id"], identity.username, payment["total_amount"]
        )
        return dict(payment)

    def list_payments(self, identity: Identity) -> List[Record]:
        """Own payments for tenants, everything for admins; newest payment_date first."""
        records = query.scope(self.store.payments, identity, query.PAYMENTS)
        return [
            dict(r)
            for r in query.sort_records(records, "payment_date", descending=True, fallback="created_at")
        ]

    async def set_status(self, identity: Identity, payment_id: int, status: str) -> Record:
        """
        Admin-only. Both directions are allowed (pending <-> confirmed);
        repeating the same status only refreshes updated_at.
        """
        require_admin(identity)
        status = (status.value if isinstance(status, PaymentStatus) else str(status or "")).strip().lower()
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid status {status!r}; expected one of: {', '.join(sorted(PAYMENT_STATUSES))}")

        async with self.store.transaction():
            payment = self.store.find("payments", payment_id)
            if payment is None:
                raise NotFound("Payment record not found")
            previous = payment.get("status")
            payment["status"] = status
            payment["updated_at"] = _utcnow_iso()

        logger.info("Payment %s status %s -> %s by %s", payment_id, previous, status, identity.username)
        return dict(payment)

    def paginate(self, identity: Identity, params: query.ListQuery | Mapping[str, Any]) -> Dict[str, Any]:
        require_admin(identity)
        return query.run_query(self.store, identity, query.PAYMENTS, params)
