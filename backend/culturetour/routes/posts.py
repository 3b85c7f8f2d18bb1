"""
CultureTour Backend — Post Routes
==================================

What:  /api/posts: create (multipart panorama), feed, per-user feed, search,
       detail, update and delete.
How:   Delegates to PostService. The literal paths (/search, /user/...) are
       registered before /{post_id} so they are not captured by it.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from culturetour.dependencies import get_current_user, get_optional_user
from culturetour.schemas.auth import CurrentUser
from culturetour.schemas.common import ApiResponse, ErrorResponse, ok
from culturetour.schemas.post import PostUpdateRequest
from culturetour.services.file_service import read_upload
from culturetour.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])

OWNER_ERRORS = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Publish a panorama post",
    description=(
        "Multipart upload of a 360° image (JPEG/PNG, max 10MB, at least 1024x512) "
        "with a caption, optional location JSON, tags and visibility."
    ),
)
async def create_post(
    image: Optional[UploadFile] = File(default=None, description="Equirectangular panorama"),
    caption: Optional[str] = Form(default=None),
    location: Optional[str] = Form(default=None, description='JSON object, e.g. {"name": "Louvre", "city": "Paris"}'),
    tags: Optional[str] = Form(default=None, description="JSON array or comma-separated list"),
    is_public: Optional[str] = Form(default=None, alias="isPublic"),
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    upload = await read_upload(image)
    post = await post_service.create_post(
        user_id=user.id,
        caption=caption,
        image_content=upload.content if upload else None,
        filename=upload.filename if upload else None,
        content_length=upload.content_length if upload else None,
        location=location,
        tags=tags,
        is_public=is_public,
    )
    return ok({"post": post}, "Post created successfully")


@router.get("", response_model=ApiResponse, summary="Feed of published posts")
async def get_feed(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
    user_id: Optional[str] = Query(default=None, alias="userId"),
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
) -> ApiResponse:
    result = await post_service.get_feed(
        viewer.id if viewer else None, page, limit, target_user_id=user_id
    )
    return ok(result)


@router.get(
    "/search",
    response_model=ApiResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Search posts by tags and location",
)
async def search_posts(
    tags: Optional[str] = Query(default=None, description="Comma list or JSON array"),
    location: Optional[str] = Query(default=None),
    city: Optional[str] = Query(default=None),
    country: Optional[str] = Query(default=None),
    sort_by: str = Query(default="newest", alias="sortBy"),
    page: int = Query(default=1),
    limit: int = Query(default=20),
    _: Optional[CurrentUser] = Depends(get_optional_user),
) -> ApiResponse:
    result = await post_service.search_posts(
        page=page,
        limit=limit,
        tags=tags,
        location=location,
        city=city,
        country=country,
        sort_by=sort_by,
    )
    return ok(result)


@router.get("/user/{user_id}", response_model=ApiResponse, summary="Posts by one author")
async def get_user_posts(
    user_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
) -> ApiResponse:
    result = await post_service.get_feed(
        viewer.id if viewer else None, page, limit, target_user_id=user_id
    )
    return ok(result)


@router.get(
    "/{post_id}",
    response_model=ApiResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Post detail with author and image variants",
)
async def get_post(
    post_id: str,
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
) -> ApiResponse:
    return ok(await post_service.get_post(post_id, viewer.id if viewer else None))


@router.put("/{post_id}", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Update a post")
async def update_post(
    post_id: str,
    body: PostUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    post = await post_service.update_post(post_id, user.id, body.model_dump(exclude_unset=True))
    return ok({"post": post}, "Post updated successfully")


@router.delete("/{post_id}", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Delete a post")
async def delete_post(post_id: str, user: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    await post_service.delete_post(post_id, user.id)
    return ok(message="Post deleted successfully")
