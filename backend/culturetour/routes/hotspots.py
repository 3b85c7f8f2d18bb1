"""
CultureTour Backend — Hotspot Routes
=====================================

What:  /api/hotspots: create, read, update and delete scene hotspots.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from culturetour.dependencies import get_current_user
from culturetour.schemas.auth import CurrentUser
from culturetour.schemas.common import ApiResponse, ErrorResponse, ok
from culturetour.services.file_service import read_upload
from culturetour.services.hotspot_service import hotspot_service

router = APIRouter(prefix="/api/hotspots", tags=["Hotspots"])

OWNER_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    responses=OWNER_ERRORS,
    summary="Place a hotspot on a scene",
)
async def create_hotspot(
    scene_id: Optional[str] = Form(default=None, alias="sceneId"),
    tour_id: Optional[str] = Form(default=None, alias="tourId"),
    text: Optional[str] = Form(default=None),
    hotspot_type: Optional[str] = Form(default=None, alias="type", description="info, link, image or video"),
    pitch: Optional[str] = Form(default=None),
    yaw: Optional[str] = Form(default=None),
    info_content: Optional[str] = Form(default=None, alias="infoContent"),
    external_url: Optional[str] = Form(default=None, alias="externalUrl"),
    style: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    hotspot = await hotspot_service.create_hotspot(
        user.id,
        scene_id,
        tour_id,
        text=text,
        hotspot_type=hotspot_type,
        pitch=pitch,
        yaw=yaw,
        info_content=info_content,
        external_url=external_url,
        style=style,
        image=await read_upload(image),
    )
    return ok({"hotspot": hotspot}, "Hotspot created successfully")


@router.get(
    "/{hotspot_id}",
    response_model=ApiResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get a hotspot",
)
async def get_hotspot(hotspot_id: str) -> ApiResponse:
    return ok({"hotspot": await hotspot_service.get_hotspot(hotspot_id)})


@router.put("/{hotspot_id}", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Update a hotspot")
async def update_hotspot(
    hotspot_id: str,
    text: Optional[str] = Form(default=None),
    hotspot_type: Optional[str] = Form(default=None, alias="type"),
    pitch: Optional[str] = Form(default=None),
    yaw: Optional[str] = Form(default=None),
    info_content: Optional[str] = Form(default=None, alias="infoContent"),
    external_url: Optional[str] = Form(default=None, alias="externalUrl"),
    style: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    fields = {
        "text": text,
        "type": hotspot_type,
        "pitch": pitch,
        "yaw": yaw,
        "info_content": info_content,
        "external_url": external_url,
        "style": style,
    }
    hotspot = await hotspot_service.update_hotspot(hotspot_id, user.id, fields, await read_upload(image))
    return ok({"hotspot": hotspot}, "Hotspot updated successfully")


@router.delete("/{hotspot_id}", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Delete a hotspot")
async def delete_hotspot(hotspot_id: str, user: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    await hotspot_service.delete_hotspot(hotspot_id, user.id)
    return ok(message="Hotspot deleted successfully")
