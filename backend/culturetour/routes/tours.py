"""
CultureTour Backend — Tour Routes
==================================

What:  /api/tours: list, detail (scenes + hotspots), create, update, delete,
       publish and unpublish. Create and update are multipart so a
       thumbnail can be sent with the fields.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from culturetour.dependencies import get_current_user, get_optional_user
from culturetour.schemas.auth import CurrentUser
from culturetour.schemas.common import ApiResponse, ErrorResponse, ok
from culturetour.services.file_service import read_upload
from culturetour.services.tour_service import tour_service

router = APIRouter(prefix="/api/tours", tags=["Tours"])

OWNER_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.get("", response_model=ApiResponse, summary="List tours")
async def list_tours(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    author_id: Optional[str] = Query(default=None, alias="authorId"),
    is_public: Optional[bool] = Query(default=None, alias="isPublic"),
    category: Optional[str] = Query(default=None),
    tour_status: Optional[str] = Query(default=None, alias="status"),
    search: Optional[str] = Query(default=None, description="Full-text search on title"),
    tags: Optional[str] = Query(default=None, description="Comma list or JSON array"),
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
) -> ApiResponse:
    result = await tour_service.list_tours(
        viewer.id if viewer else None,
        page=page,
        limit=limit,
        author_id=author_id,
        is_public=is_public,
        category=category,
        status=tour_status,
        search=search,
        tags=tags,
    )
    return ok(result)


@router.get(
    "/{tour_id}",
    response_model=ApiResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Tour with scenes and hotspots",
)
async def get_tour(
    tour_id: str,
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
) -> ApiResponse:
    tour = await tour_service.get_tour(tour_id, viewer.id if viewer else None)
    return ok({"tour": tour})


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Create a tour",
)
async def create_tour(
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    author: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None),
    is_public: Optional[str] = Form(default=None, alias="isPublic"),
    category: Optional[str] = Form(default=None),
    settings: Optional[str] = Form(default=None, description="JSON object merged over the viewer defaults"),
    estimated_duration: Optional[str] = Form(default=None, alias="estimatedDuration"),
    thumbnail: Optional[UploadFile] = File(default=None),
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    tour = await tour_service.create_tour(
        user.id,
        title,
        description,
        author=author,
        tags=tags,
        is_public=is_public,
        category=category,
        settings_json=settings,
        estimated_duration=estimated_duration,
        thumbnail=await read_upload(thumbnail),
    )
    return ok({"tour": tour}, "Tour created successfully")


@router.put("/{tour_id}", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Update a tour")
async def update_tour(
    tour_id: str,
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    start_scene_id: Optional[str] = Form(default=None, alias="startSceneId"),
    settings: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None),
    is_public: Optional[str] = Form(default=None, alias="isPublic"),
    category: Optional[str] = Form(default=None),
    estimated_duration: Optional[str] = Form(default=None, alias="estimatedDuration"),
    thumbnail: Optional[UploadFile] = File(default=None),
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    fields = {
        "title": title,
        "description": description,
        "start_scene_id": start_scene_id,
        "settings": settings,
        "tags": tags,
        "is_public": is_public,
        "category": category,
        "estimated_duration": estimated_duration,
    }
    tour = await tour_service.update_tour(tour_id, user.id, fields, await read_upload(thumbnail))
    return ok({"tour": tour}, "Tour updated successfully")


@router.delete("/{tour_id}", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Delete a tour")
async def delete_tour(tour_id: str, user: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    result = await tour_service.delete_tour(tour_id, user.id)
    return ok(result, "Tour deleted successfully")


@router.put("/{tour_id}/publish", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Publish a tour")
async def publish_tour(tour_id: str, user: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    tour = await tour_service.set_published(tour_id, user.id, True)
    return ok({"tour": tour}, "Tour published successfully")


@router.put("/{tour_id}/unpublish", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Unpublish a tour")
async def unpublish_tour(tour_id: str, user: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    tour = await tour_service.set_published(tour_id, user.id, False)
    return ok({"tour": tour}, "Tour unpublished successfully")
