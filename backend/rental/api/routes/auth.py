# backend/rental/api/routes/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from rental.api.deps.identity import get_current_identity
from rental.api.deps.services import get_tenant_directory
from rental.auth.identity import Identity
from rental.schemas.auth import AuthOut, LoginRequest, ProfileOut, RegisterOut, RegisterRequest
from rental.services.tenants import TenantDirectory

router = APIRouter(tags=["auth"])


@router.post("/login", response_model=AuthOut)
async def login(payload: LoginRequest, directory: TenantDirectory = Depends(get_tenant_directory)):
    """
    Body: {"username": "...", "password": "...", "role": "tenant" | "admin"}
    Returns: token + user (never the password)
    """
    result = await directory.login(payload)
    return {"success": True, **result}


@router.post("/register", response_model=RegisterOut)
async def register(payload: RegisterRequest, directory: TenantDirectory = Depends(get_tenant_directory)):
    result = await directory.register(payload)
    return {"success": True, "message": "Registration successful", **result}


@router.get("/profile", response_model=ProfileOut)
async def profile(
    identity: Identity = Depends(get_current_identity),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    return {"success": True, "user": directory.profile(identity)}
