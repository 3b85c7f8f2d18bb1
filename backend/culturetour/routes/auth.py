"""
CultureTour Backend — Auth Routes
==================================

What:  /api/auth: register, login, logout, own profile, password recovery,
       email verification and token checks.
How:   Thin handlers over AuthService; every response is the ApiResponse
       envelope, every failure an exception mapped by main.py.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, status

from culturetour.dependencies import get_current_user, get_optional_user
from culturetour.schemas.auth import (
    CurrentUser,
    LoginRequest,
    LogoutRequest,
    PasswordResetCompleteRequest,
    PasswordResetRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    VerifyEmailRequest,
)
from culturetour.schemas.common import ApiResponse, ErrorResponse, ok
from culturetour.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

AUTH_ERRORS = {401: {"model": ErrorResponse}}


@router.post(
    "/register",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Create an account and its profile",
)
async def register(body: RegisterRequest) -> ApiResponse:
    result = await auth_service.register(body.email, body.password, body.name, body.phone)
    return ok(result, "User registered successfully")


@router.post(
    "/login",
    response_model=ApiResponse,
    responses={400: {"model": ErrorResponse}, **AUTH_ERRORS},
    summary="Open a session and receive a bearer token",
)
async def login(body: LoginRequest) -> ApiResponse:
    result = await auth_service.login(body.email, body.password)
    return ok(result, "Login successful")


@router.post("/logout", response_model=ApiResponse, responses=AUTH_ERRORS, summary="End a session")
async def logout(
    body: Optional[LogoutRequest] = Body(default=None),
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    await auth_service.logout(user, body.session_id if body else None)
    return ok(message="Logged out successfully")


@router.get("/me", response_model=ApiResponse, responses=AUTH_ERRORS, summary="Current user")
async def me(user: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    return ok(await auth_service.get_me(user))


@router.put("/profile", response_model=ApiResponse, responses=AUTH_ERRORS, summary="Update own profile")
async def update_profile(
    body: ProfileUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    profile = await auth_service.update_profile(user.id, body.name, body.phone, body.bio)
    return ok({"user": profile}, "Profile updated successfully")


@router.post("/password-reset", response_model=ApiResponse, summary="Send a recovery email")
async def request_password_reset(body: PasswordResetRequest) -> ApiResponse:
    await auth_service.request_password_reset(body.email)
    return ok(message="Password reset email sent")


@router.post(
    "/password-reset/complete",
    response_model=ApiResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Set a new password from a recovery link",
)
async def complete_password_reset(body: PasswordResetCompleteRequest) -> ApiResponse:
    await auth_service.complete_password_reset(
        body.user_id, body.secret, body.password, body.password_again
    )
    return ok(message="Password has been reset successfully")


@router.post("/verify-email", response_model=ApiResponse, summary="Confirm an email address")
async def verify_email(body: VerifyEmailRequest) -> ApiResponse:
    await auth_service.verify_email(body.user_id, body.secret)
    return ok(message="Email verified successfully")


@router.get("/check", response_model=ApiResponse, summary="Report whether the caller is signed in")
async def check(user: Optional[CurrentUser] = Depends(get_optional_user)) -> ApiResponse:
    if user is None:
        return ok({"authenticated": False})
    return ok({"authenticated": True, "user": user.model_dump()})


@router.get("/check-auth", response_model=ApiResponse, responses=AUTH_ERRORS, summary="Require a valid token")
async def check_auth(user: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    return ok({"authenticated": True, "user": user.model_dump()})


@router.get("/health", summary="Auth router liveness")
async def auth_health():
    return {"status": "ok"}
