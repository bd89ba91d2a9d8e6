# rental/services/tenants.py
from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from starlette.concurrency import run_in_threadpool

from rental.auth.identity import Identity, issue_token
from rental.auth.permissions import is_admin, require_admin
from rental.core.config import AdminAccount
from rental.core.exceptions import Conflict, NotFound, Unauthenticated
from rental.core.logging import get_logger, log_security_event
from rental.core.roles import PaymentStatus, Role
from rental.core.security import hash_password, is_password_hash, verify_password
from rental.db.store import BANK_INFO_KEY, Record, RecordStore
from rental.schemas.auth import LoginRequest, RegisterRequest
from rental.schemas.bank import BankInfoUpdate
from rental.schemas.common import parse_model
from rental.services import query

logger = get_logger(__name__)

_BAD_LOGIN = "Incorrect username or password"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def public_tenant(tenant: Record) -> Record:
    """A tenant record as it may leave the server."""
    return {k: v for k, v in tenant.items() if k != "password"}


def _tenant_identity(tenant: Record) -> Identity:
    return Identity(
        id=tenant["id"],
        username=tenant["username"],
        role=Role.TENANT.value,
        name=tenant.get("name") or tenant["username"],
    )


def _admin_user(account: AdminAccount) -> Record:
    return {
        "id": account.username,
        "username": account.username,
        "name": account.name,
        "role": Role.ADMIN.value,
    }


class TenantDirectory:
    """Accounts, profiles, bank details and the admin overview."""

    def __init__(self, store: RecordStore, admins: Sequence[AdminAccount] = (), recent_limit: int = 10):
        self.store = store
        self.admins = list(admins)
        self.recent_limit = recent_limit

    # -----------------------------
    # Accounts
    # -----------------------------
    def _find_by_username(self, username: str) -> Optional[Record]:
        for tenant in self.store.tenants:
            if tenant.get("username") == username:
                return tenant
        return None

    async def register(self, data: RegisterRequest | Mapping[str, Any]) -> Dict[str, Any]:
        payload = parse_model(RegisterRequest, data)
        password_hash = await run_in_threadpool(hash_password, payload.password)

        async with self.store.transaction() as data_set:
            if self._find_by_username(payload.username) is not None:
                raise Conflict("Username already exists")
            tenant = {
                "id": self.store.next_id("tenants"),
                "username": payload.username,
                "password": password_hash,
                "name": payload.name,
                "email": str(payload.email) if payload.email else None,
                "phone": payload.phone,
                "room_number": payload.room_number,
                "lease_start": payload.lease_start.isoformat() if payload.lease_start else None,
                "lease_end": payload.lease_end.isoformat() if payload.lease_end else None,
                "rent_amount": payload.rent_amount,
                "role": Role.TENANT.value,
                "created_at": _utcnow_iso(),
            }
            data_set["tenants"].append(tenant)

        logger.info("Registered tenant %r (id=%s)", tenant["username"], tenant["id"])
        return {"token": issue_token(_tenant_identity(tenant)), "user": public_tenant(tenant)}

    def _login_admin(self, username: str, password: str) -> Optional[Dict[str, Any]]:
        for account in self.admins:
            if account.username == username and secrets.compare_digest(
                account.password.encode("utf-8"), password.encode("utf-8")
            ):
                user = _admin_user(account)
                user["email"] = f"{account.username}@admin.local"
                identity = Identity(
                    id=account.username, username=account.username, role=Role.ADMIN.value, name=account.name
                )
                return {"token": issue_token(identity), "user": user}
        return None

    async def _login_tenant(self, username: str, password: str) -> Optional[Dict[str, Any]]:
        tenant = self._find_by_username(username)
        if tenant is None or not await run_in_threadpool(verify_password, password, tenant.get("password")):
            return None

        if not is_password_hash(tenant.get("password")):
            # plaintext left over from an older snapshot: upgrade in place
            upgraded = await run_in_threadpool(hash_password, password)
            async with self.store.transaction():
                current = self.store.find("tenants", tenant["id"])
                if current is not None:
                    current["password"] = upgraded
            logger.info("Upgraded stored password of tenant %s to a salted hash", tenant["id"])

        return {"token": issue_token(_tenant_identity(tenant)), "user": public_tenant(tenant)}

    async def login(self, data: LoginRequest | Mapping[str, Any]) -> Dict[str, Any]:
        payload = parse_model(LoginRequest, data)

        if payload.role == Role.ADMIN:
            result = self._login_admin(payload.username, payload.password)
        else:
            result = await self._login_tenant(payload.username, payload.password)

        if result is None:
            log_security_event("failed_login", {"username": payload.username, "role": payload.role.value}, logger)
            raise Unauthenticated(_BAD_LOGIN)
        return result

    def profile(self, identity: Identity) -> Record:
        if is_admin(identity):
            for account in self.admins:
                if account.username == identity.username:
                    return _admin_user(account)
            return identity.to_dict()

        tenant = self.store.find("tenants", identity.id)
        if tenant is None:
            raise NotFound("Tenant profile not found")
        return public_tenant(tenant)

    # -----------------------------
    # Admin views
    # -----------------------------
    def list_tenants(self, identity: Identity) -> List[Record]:
        require_admin(identity)
        return [public_tenant(t) for t in self.store.tenants]

    def tenant_options(self, identity: Identity) -> List[Record]:
        """Minimal rows for the filter drop-downs of the admin pages."""
        require_admin(identity)
        rows = [
            {
                "id": t.get("id"),
                "username": t.get("username"),
                "name": t.get("name"),
                "room_number": t.get("room_number"),
            }
            for t in self.store.tenants
        ]
        return query.sort_records(rows, "room_number", descending=False, fallback="name")

    def paginate(self, identity: Identity, params: query.ListQuery | Mapping[str, Any]) -> Dict[str, Any]:
        require_admin(identity)
        return query.run_query(self.store, identity, query.TENANTS, params)

    def dashboard(self, identity: Identity) -> Dict[str, Any]:
        require_admin(identity)
        payments = self.store.payments
        images = self.store.images
        return {
            "totalTenants": len(self.store.tenants),
            "totalPayments": len(payments),
            "pendingPayments": sum(1 for p in payments if p.get("status") == PaymentStatus.PENDING.value),
            "totalImages": len(images),
            "recentPayments": [
                dict(p) for p in query.sort_records(payments, "created_at")[: self.recent_limit]
            ],
            "recentImages": [
                dict(i) for i in query.sort_records(images, "uploaded_at")[: self.recent_limit]
            ],
        }

    # -----------------------------
    # Bank details
    # -----------------------------
    def get_bank_info(self, identity: Identity) -> Record:
        return dict(self.store.bank_info)

    async def update_bank_info(self, identity: Identity, data: BankInfoUpdate | Mapping[str, Any]) -> Record:
        require_admin(identity)
        payload = parse_model(BankInfoUpdate, data)

        async with self.store.transaction() as data_set:
            data_set[BANK_INFO_KEY] = {**payload.model_dump(), "updated_at": _utcnow_iso()}
            bank_info = dict(data_set[BANK_INFO_KEY])

        logger.info("Bank info updated by %s", identity.username)
        return bank_info

    def health(self) -> Dict[str, int]:
        return {**self.store.counts(), "bankInfo": 1 if self.store.bank_info else 0}
