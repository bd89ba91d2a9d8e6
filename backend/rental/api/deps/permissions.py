from __future__ import annotations

from typing import Callable

from fastapi import Depends

from rental.api.deps.identity import get_current_identity
from rental.auth.identity import Identity
from rental.auth.permissions import require_role
from rental.core.roles import Role

ALLOWED_ROLES = {r.value for r in Role}


def require_roles(*allowed_roles: str) -> Callable:
    """
    Enforce identity.role is in allowed_roles ("admin" / "tenant").
    Services repeat the check at their own entry points; this one just fails
    the request before any body parsing work is done.
    """
    allowed = {r.lower() for r in allowed_roles}
    unknown = allowed - ALLOWED_ROLES
    if unknown:
        raise ValueError(f"Unknown role(s): {sorted(unknown)}. Allowed: {sorted(ALLOWED_ROLES)}")

    async def _checker(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role in allowed:
            return identity
        # single-role requirement gives the clearer message
        return require_role(identity, sorted(allowed)[0])

    return _checker


require_admin_identity = require_roles(Role.ADMIN.value)
