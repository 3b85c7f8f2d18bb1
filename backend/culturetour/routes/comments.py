"""
CultureTour Backend — Comment Routes
=====================================

What:  Threaded comments under /api/posts/{post_id}/comments.
"""

from fastapi import APIRouter, Depends, Query, status

from culturetour.dependencies import get_current_user
from culturetour.schemas.auth import CurrentUser
from culturetour.schemas.common import ApiResponse, ErrorResponse, ok
from culturetour.schemas.post import CommentCreateRequest, CommentUpdateRequest
from culturetour.services.comment_service import comment_service

router = APIRouter(prefix="/api/posts/{post_id}/comments", tags=["Comments"])

OWNER_ERRORS = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Comment on a post or reply to a comment",
)
async def add_comment(
    post_id: str,
    body: CommentCreateRequest,
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    comment = await comment_service.add_comment(post_id, user.id, body.content, body.parent_comment_id)
    return ok({"comment": comment}, "Comment added successfully")


@router.get("", response_model=ApiResponse, responses={404: {"model": ErrorResponse}}, summary="Top-level comments")
async def get_comments(
    post_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
    include_replies: bool = Query(default=False, alias="includeReplies"),
) -> ApiResponse:
    return ok(await comment_service.get_post_comments(post_id, page, limit, include_replies))


@router.get(
    "/{comment_id}/replies",
    response_model=ApiResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Replies to a comment",
)
async def get_replies(
    post_id: str,
    comment_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=20),
) -> ApiResponse:
    return ok(await comment_service.get_comment_replies(post_id, comment_id, page, limit))


@router.put("/{comment_id}", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Edit a comment")
async def update_comment(
    post_id: str,
    comment_id: str,
    body: CommentUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    comment = await comment_service.update_comment(post_id, comment_id, user.id, body.content)
    return ok({"comment": comment}, "Comment updated successfully")


@router.delete("/{comment_id}", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Delete a comment thread")
async def delete_comment(
    post_id: str,
    comment_id: str,
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    result = await comment_service.delete_comment(post_id, comment_id, user.id)
    return ok(result, "Comment deleted successfully")
