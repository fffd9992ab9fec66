"""
Auth API routes — register, login, profile update.

Route prefix: /auth
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from auth.dependencies import get_auth_service, get_current_identity
from auth.errors import AuthError, Conflict, Unauthorized
from auth.models import Identity
from auth.password import MAX_PASSWORD_BYTES
from auth.service import AuthService

router = APIRouter(tags=["auth"])


# ── Request schemas ────────────────────────────────────────────────────


def _check_password_bytes(value: str) -> str:
    if len(value.encode()) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


Password = Annotated[str, AfterValidator(_check_password_bytes)]


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=128)
    password: Password = Field(..., min_length=1)


class LoginRequest(BaseModel):
    username: str
    password: str


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_username: Optional[str] = Field(None, alias="newUsername", max_length=128)
    new_password: Optional[Password] = Field(None, alias="newPassword")
    current_password: Optional[str] = Field(None, alias="currentPassword")


# ── Endpoints ──────────────────────────────────────────────────────────


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    req: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Register a new user."""
    token = await service.register(req.username, req.password)
    return {
        "statusCode": status.HTTP_201_CREATED,
        "message": "Registration successful",
        "access_token": token,
    }


@router.post("/login", status_code=status.HTTP_200_OK)
async def login(
    req: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Login with username + password."""
    token = await service.login(req.username, req.password)
    return {
        "statusCode": status.HTTP_200_OK,
        "message": "Login successful",
        "access_token": token,
    }


@router.put("/profile", status_code=status.HTTP_200_OK)
async def update_profile(
    req: UpdateProfileRequest,
    request: Request,
    identity: Identity = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Change the caller's username and/or password."""
    try:
        token, account = await service.update_profile(
            identity,
            new_username=req.new_username,
            new_password=req.new_password,
            current_password=req.current_password,
        )
    except Unauthorized:
        raise
    except AuthError as exc:
        if not request.app.state.settings.legacy_profile_errors:
            raise
        raise Conflict(exc.message) from exc

    return {
        "statusCode": status.HTTP_200_OK,
        "message": "Profile updated",
        "access_token": token,
        "user": {
            "userId": account.id,
            "username": account.username,
        },
    }
