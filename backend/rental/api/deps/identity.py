from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials

from rental.auth.identity import Identity, IdentityGate
from rental.core.security import bearer_scheme
from rental.db.session import get_store
from rental.db.store import RecordStore


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: RecordStore = Depends(get_store),
) -> Identity:
    """
    Dependency for protected endpoints.
    Missing header -> Unauthenticated, bad token -> InvalidCredential.
    """
    token = credentials.credentials if credentials else None
    return IdentityGate(store).resolve(token)
