from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from rental.core.exceptions import InvalidCredential, Unauthenticated
from rental.core.logging import get_logger, log_security_event
from rental.core.roles import Role
from rental.core.security import create_access_token, decode_access_token
from rental.db.store import RecordStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class Identity:
    """The resolved caller. Admin ids are usernames, tenant ids are integers."""

    id: Any
    username: str
    role: str
    name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def issue_token(identity: Identity) -> str:
    return create_access_token(
        identity_id=identity.id,
        username=identity.username,
        role=identity.role,
        name=identity.name,
    )


class IdentityGate:
    """
    Bearer credential -> Identity.

    A tenant token only stays valid while the tenant exists, so a deleted
    tenant cannot keep writing records under its old id.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def resolve(self, credential: Optional[str]) -> Identity:
        if credential is None or not credential.strip():
            raise Unauthenticated()

        try:
            claims = decode_access_token(credential)
        except InvalidCredential:
            log_security_event("invalid_token", {}, logger)
            raise

        role = str(claims["role"]).strip().lower()
        if role not in {Role.ADMIN.value, Role.TENANT.value}:
            raise InvalidCredential()

        identity = Identity(
            id=claims.get("id", claims["sub"]),
            username=str(claims.get("username") or claims["sub"]),
            role=role,
            name=claims.get("name"),
        )

        if role == Role.TENANT.value and self.store.find("tenants", identity.id) is None:
            log_security_event("invalid_token", {"identity_id": identity.id, "role": role}, logger)
            raise InvalidCredential("Account no longer exists")

        return identity
