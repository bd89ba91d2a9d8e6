from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from rental.core.config import settings
from rental.core.exceptions import InvalidCredential

# auto_error=False so a missing header becomes our own Unauthenticated error
bearer_scheme = HTTPBearer(auto_error=False)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def _normalize_token(token: Optional[str]) -> str:
    """
    Make token decoding resilient to common copy-paste issues:
    - Leading/trailing whitespace/newlines
    - Surrounding quotes
    - Accidentally including the 'Bearer ' prefix in the token field
    """
    if token is None:
        return ""

    t = token.strip()

    if (t.startswith('"') and t.endswith('"')) or (t.startswith("'") and t.endswith("'")):
        t = t[1:-1].strip()

    if t.lower().startswith("bearer "):
        t = t[7:].strip()

    return t


# ---------------------------------------------------------
# Tokens
# ---------------------------------------------------------
def create_access_token(
    *,
    identity_id: Any,
    username: str,
    role: str,
    name: Optional[str],
    expires_minutes: Optional[int] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire_dt = now + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    # "sub" must be a string; "id" keeps the original JSON type (int for tenants).
    to_encode: dict[str, Any] = {
        "sub": str(identity_id),
        "id": identity_id,
        "username": username,
        "role": role,
        "name": name,
        "exp": int(expire_dt.timestamp()),
        "iat": int(now.timestamp()),
    }

    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: Optional[str]) -> dict[str, Any]:
    token = _normalize_token(token)
    if not token:
        raise InvalidCredential()

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError:
        # Includes expired signature, bad format, bad signature, wrong algorithm, etc.
        raise InvalidCredential()

    if not payload.get("sub") or not payload.get("role"):
        raise InvalidCredential()
    return payload


# ---------------------------------------------------------
# Passwords
# ---------------------------------------------------------
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def is_password_hash(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(_BCRYPT_PREFIXES)


def verify_password(plain: str, stored: Optional[str]) -> bool:
    """
    Check a password against a stored bcrypt hash.

    Snapshots written by older deployments kept plaintext passwords; those are
    compared directly so the caller can upgrade them after a successful login.
    """
    if not stored:
        return False
    if not is_password_hash(stored):
        return secrets.compare_digest(plain.encode("utf-8"), stored.encode("utf-8"))
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), stored.encode("utf-8"))
    except ValueError:
        return False
