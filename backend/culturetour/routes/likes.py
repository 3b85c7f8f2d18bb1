"""
CultureTour Backend — Like Routes
==================================

What:  Like toggling and like listings under /api/posts.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from culturetour.dependencies import get_current_user, get_optional_user
from culturetour.schemas.auth import CurrentUser
from culturetour.schemas.common import ApiResponse, ErrorResponse, ok
from culturetour.services.like_service import like_service

router = APIRouter(prefix="/api/posts", tags=["Likes"])


@router.get("/users/{user_id}/likes", response_model=ApiResponse, summary="Posts a user liked")
async def get_user_likes(
    user_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
) -> ApiResponse:
    return ok(await like_service.get_user_likes(user_id, page, limit))


@router.post(
    "/{post_id}/likes",
    response_model=ApiResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Like or unlike a post",
)
async def toggle_like(post_id: str, user: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    result = await like_service.toggle_like(post_id, user.id)
    return ok(result, "Post liked" if result["isLiked"] else "Post unliked")


@router.get("/{post_id}/likes/check", response_model=ApiResponse, summary="Has the caller liked a post")
async def check_like(
    post_id: str,
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
) -> ApiResponse:
    return ok(await like_service.check_user_like(post_id, viewer.id if viewer else None))


@router.get("/{post_id}/likes/stats", response_model=ApiResponse, summary="Like count and recent likers")
async def like_stats(post_id: str) -> ApiResponse:
    return ok(await like_service.get_like_stats(post_id))


@router.get(
    "/{post_id}/likes",
    response_model=ApiResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Users who liked a post",
)
async def get_post_likes(
    post_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
) -> ApiResponse:
    return ok(await like_service.get_post_likes(post_id, page, limit))
