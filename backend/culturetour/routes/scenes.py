"""
CultureTour Backend — Scene Routes
===================================

What:  /api/scenes: create, read, update and delete the scenes of a tour.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from culturetour.dependencies import get_current_user
from culturetour.schemas.auth import CurrentUser
from culturetour.schemas.common import ApiResponse, ErrorResponse, ok
from culturetour.services.file_service import read_upload
from culturetour.services.scene_service import scene_service

router = APIRouter(prefix="/api/scenes", tags=["Scenes"])

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
    summary="Add a scene to a tour",
)
async def create_scene(
    tour_id: Optional[str] = Form(default=None, alias="tourId"),
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    order: Optional[str] = Form(default=None),
    panorama_url: Optional[str] = Form(default=None, alias="panoramaUrl"),
    pitch: Optional[str] = Form(default=None),
    yaw: Optional[str] = Form(default=None),
    hfov: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    scene = await scene_service.create_scene(
        user.id,
        tour_id,
        title,
        description=description,
        order=order,
        panorama_url=panorama_url,
        pitch=pitch,
        yaw=yaw,
        hfov=hfov,
        image=await read_upload(image),
    )
    return ok({"scene": scene}, "Scene created successfully")


@router.get("/{scene_id}", response_model=ApiResponse, responses={404: {"model": ErrorResponse}}, summary="Get a scene")
async def get_scene(scene_id: str) -> ApiResponse:
    return ok({"scene": await scene_service.get_scene(scene_id)})


@router.put("/{scene_id}", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Update a scene")
async def update_scene(
    scene_id: str,
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    order: Optional[str] = Form(default=None),
    panorama_url: Optional[str] = Form(default=None, alias="panoramaUrl"),
    pitch: Optional[str] = Form(default=None),
    yaw: Optional[str] = Form(default=None),
    hfov: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    user: CurrentUser = Depends(get_current_user),
) -> ApiResponse:
    fields = {
        "title": title,
        "description": description,
        "order": order,
        "panorama_url": panorama_url,
        "pitch": pitch,
        "yaw": yaw,
        "hfov": hfov,
    }
    scene = await scene_service.update_scene(scene_id, user.id, fields, await read_upload(image))
    return ok({"scene": scene}, "Scene updated successfully")


@router.delete("/{scene_id}", response_model=ApiResponse, responses=OWNER_ERRORS, summary="Delete a scene")
async def delete_scene(scene_id: str, user: CurrentUser = Depends(get_current_user)) -> ApiResponse:
    result = await scene_service.delete_scene(scene_id, user.id)
    return ok(result, "Scene deleted successfully")
