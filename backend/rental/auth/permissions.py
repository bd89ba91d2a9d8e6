from __future__ import annotations

from typing import Any

from rental.auth.identity import Identity
from rental.core.exceptions import Forbidden
from rental.core.logging import get_logger, log_security_event
from rental.core.roles import Role

logger = get_logger(__name__)


def _normalize_role(role: str | None) -> str:
    return (role or "").strip().lower()


def is_admin(identity: Identity) -> bool:
    return _normalize_role(identity.role) == Role.ADMIN.value


def owns(identity: Identity, owner_id: Any) -> bool:
    """Ownership is always resolved by id, never by the denormalized name."""
    return owner_id is not None and owner_id == identity.id


def require_role(identity: Identity, role: Role | str, *, message: str | None = None) -> Identity:
    required = role.value if isinstance(role, Role) else _normalize_role(role)
    if _normalize_role(identity.role) != required:
        log_security_event(
            "forbidden",
            {"identity_id": identity.id, "role": identity.role, "required": required},
            logger,
        )
        raise Forbidden(message or f"{required.capitalize()} permission required")
    return identity


def require_admin(identity: Identity) -> Identity:
    return require_role(identity, Role.ADMIN, message="Admin permission required")


def require_owner_or_admin(identity: Identity, owner_id: Any, *, message: str | None = None) -> Identity:
    if is_admin(identity) or owns(identity, owner_id):
        return identity
    log_security_event(
        "forbidden",
        {"identity_id": identity.id, "role": identity.role, "owner_id": owner_id},
        logger,
    )
    raise Forbidden(message or "You do not have permission to access this record")
