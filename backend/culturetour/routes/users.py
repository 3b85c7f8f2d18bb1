"""
CultureTour Backend — User Administration Routes
=================================================

What:  /api/users: list (admin), read, update and delete profiles.
Who:   Update and delete are allowed for the user themself or an admin.
"""

from fastapi import APIRouter, Depends, Query

from culturetour.dependencies import get_current_user, require_roles
from culturetour.schemas.auth import CurrentUser, ProfileUpdateRequest
from culturetour.schemas.common import ApiResponse, ErrorResponse, ok
from culturetour.services.auth_service import auth_service

router = APIRouter(prefix="/api/users", tags=["Users"])

ERRORS = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.get("", response_model=ApiResponse, responses=ERRORS, summary="List users (admin)")
async def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    _: CurrentUser = Depends(require_roles("admin")),
) -> ApiResponse:
    return ok(await auth_service.list_users(page, limit))


@router.get("/{user_id}", response_model=ApiResponse, responses=ERRORS, summary="Get a user profile")
async def get_user(user_id: str, _: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    return ok({"user": await auth_service.get_user_profile(user_id)})


@router.put("/{user_id}", response_model=ApiResponse, responses=ERRORS, summary="Update a user profile")
async def update_user(
    user_id: str,
    body: ProfileUpdateRequest,
    actor: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    profile = await auth_service.update_user(actor, user_id, body.name, body.phone, body.bio)
    return ok({"user": profile}, "User updated successfully")


@router.delete("/{user_id}", response_model=ApiResponse, responses=ERRORS, summary="Delete a user")
async def delete_user(user_id: str, actor: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    await auth_service.delete_user(actor, user_id)
    return ok(message="User deleted successfully")
