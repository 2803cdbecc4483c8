"""
Authentication endpoints.

Telegram code login, profile lookup and logout.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field, field_validator

from ..deps import ServicesDep, AppTokenDep

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response models

def _as_text(value: Any) -> Any:
    # Mobile clients sometimes send codes and phone numbers as JSON numbers
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class LoginRequest(BaseModel):
    """Request a Telegram login code."""
    phone: Optional[str] = Field(None, description="Phone number (e.g., +60123456789)")

    @field_validator("phone", mode="before")
    @classmethod
    def coerce_phone(cls, value: Any) -> Any:
        return _as_text(value)


class VerifyRequest(BaseModel):
    """Submit the code Telegram delivered."""
    phone: Optional[str] = Field(None, description="Phone number used for /login")
    code: Optional[str] = Field(None, description="Login code from Telegram")

    @field_validator("phone", "code", mode="before")
    @classmethod
    def coerce_fields(cls, value: Any) -> Any:
        return _as_text(value)


class MessageResponse(BaseModel):
    """Generic success response."""
    success: bool = True
    message: str


class VerifyResponse(BaseModel):
    """Successful verification with the new app token."""
    success: bool = True
    appToken: str
    message: str


class ProfileResponse(BaseModel):
    """Telegram account behind the app token."""
    id: str
    first_name: str
    last_name: str
    username: str
    phone: str
    status: str = "Logged in"


class LogoutResponse(BaseModel):
    """Logout result (always successful)."""
    success: bool = True


# Endpoints

@router.post("/login", response_model=MessageResponse)
async def login(request: LoginRequest, services: ServicesDep):
    """
    Send a login code to the user's Telegram app.

    Replaces any earlier pending code for the same phone.
    """
    await services.auth.begin_login(request.phone)
    return MessageResponse(message="Login code sent to your Telegram app.")


@router.post("/verify", response_model=VerifyResponse)
async def verify(request: VerifyRequest, services: ServicesDep):
    """
    Verify the login code and issue an app token.

    The pending login is consumed even when the code is wrong.
    """
    token = await services.auth.complete_login(request.phone, request.code)
    return VerifyResponse(appToken=token, message="Login successful.")


@router.get("/profile", response_model=ProfileResponse)
async def profile(token: AppTokenDep, services: ServicesDep):
    """
    Get the Telegram profile for the current app token.

    Requires the app token in the Authorization header.
    """
    identity = await services.auth.resolve_profile(token)
    return ProfileResponse(**identity.to_dict())


@router.post("/logout", response_model=LogoutResponse)
async def logout(token: AppTokenDep, services: ServicesDep):
    """Forget the app token. Succeeds even without a valid token."""
    await services.auth.logout(token)
    return LogoutResponse()
