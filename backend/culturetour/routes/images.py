"""
CultureTour Backend — Image Library Routes
===========================================

What:  /api/images: single and multiple uploads, listing, folder search,
       lookup, metadata update and deletion of Cloudinary images.
How:   /all and /by-folder are declared before the catch-all
       /{public_id:path} routes; public ids contain slashes.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from culturetour.dependencies import get_current_user
from culturetour.schemas.auth import CurrentUser
from culturetour.schemas.common import ApiResponse, ErrorResponse, ok
from culturetour.schemas.post import ImageMetadataUpdateRequest
from culturetour.services.file_service import read_upload
from culturetour.services.image_service import image_service

router = APIRouter(prefix="/api/images", tags=["Images"])

UPLOAD_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


@router.post(
    "/uploadImage",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    responses=UPLOAD_ERRORS,
    summary="Upload one image",
)
async def upload_image(
    image: Optional[UploadFile] = File(default=None),
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None, description="Comma-separated tags"),
    _: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    data = await image_service.upload_image(await read_upload(image), title, description, tags)
    return ok(data, "Image uploaded to Cloudinary successfully!")


@router.post(
    "/upload-multiple",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    responses=UPLOAD_ERRORS,
    summary="Upload up to five images",
)
async def upload_multiple(
    images: List[UploadFile] = File(default=[]),
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None),
    _: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    uploads = [upload for upload in [await read_upload(image) for image in images] if upload]
    data = await image_service.upload_multiple(uploads, title, description, tags)
    return ok(data, f"{len(data)} images uploaded to Cloudinary!")


@router.get("/all", response_model=ApiResponse, summary="List library images")
async def list_images(next_cursor: Optional[str] = Query(default=None, alias="nextCursor")) -> ApiResponse:
    return ok(await image_service.list_images(next_cursor))


@router.get("/by-folder", response_model=ApiResponse, responses={400: {"model": ErrorResponse}}, summary="Images one user uploaded for a resource type")
async def images_by_folder(
    resource_type: Optional[str] = Query(default=None, alias="resourceType"),
    user_id: Optional[str] = Query(default=None, alias="userId"),
) -> ApiResponse:
    return ok(await image_service.images_by_folder(resource_type, user_id))


@router.get(
    "/{public_id:path}",
    response_model=ApiResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Image details",
)
async def get_image(public_id: str) -> ApiResponse:
    return ok(await image_service.get_image(public_id))


@router.put(
    "/{public_id:path}",
    response_model=ApiResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update image title, description or tags",
)
async def update_image(
    public_id: str,
    body: ImageMetadataUpdateRequest,
    _: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    data = await image_service.update_image(public_id, body.title, body.description, body.tags)
    return ok(data, "Image updated successfully")


@router.delete(
    "/{public_id:path}",
    response_model=ApiResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Delete an image",
)
async def delete_image(public_id: str, _: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    await image_service.delete_image(public_id)
    return ok(message="Image deleted successfully from Cloudinary")
