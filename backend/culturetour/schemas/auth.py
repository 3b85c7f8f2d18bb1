"""
CultureTour Backend — Auth & User Schemas
==========================================

Request bodies for /api/auth and /api/users, plus the CurrentUser resolved
from a bearer token. Required-field checks live in AuthService so the
error messages match the documented API ("Please provide email, password
and name"); the models only enforce types.
"""

from typing import Optional

from pydantic import BaseModel, Field

from culturetour.schemas.common import CamelModel


class CurrentUser(BaseModel):
    """Identity resolved from a verified bearer token."""

    id: str
    email: str = ""
    role: str = "user"
    session_id: Optional[str] = None


class RegisterRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = Field(default=None, description="E.164 format, e.g. +14155550100")


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class LogoutRequest(CamelModel):
    session_id: Optional[str] = Field(
        default=None,
        description="Session to end; defaults to the session the token was issued for",
    )


class ProfileUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, max_length=128)
    phone: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=1000)


class PasswordResetRequest(CamelModel):
    email: Optional[str] = None


class PasswordResetCompleteRequest(CamelModel):
    user_id: Optional[str] = None
    secret: Optional[str] = None
    password: Optional[str] = None
    password_again: Optional[str] = None


class VerifyEmailRequest(CamelModel):
    user_id: Optional[str] = None
    secret: Optional[str] = None
