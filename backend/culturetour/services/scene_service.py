"""
CultureTour Backend — Scene Service
====================================

What:  Scenes (one panorama each) inside a virtual tour.
How:   `scenes` documents {tourId, authorId, title, description, order,
       panoramaUrl, imagePublicId, pitch, yaw, hfov}. Ownership is decided by
       the parent tour's authorId, so a scene always follows its tour.
Who:   routes/scenes.py; HotspotService reuses parse_number().

The first scene added to a tour becomes its startSceneId; deleting that
scene clears it again.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from appwrite.query import Query

from culturetour.exceptions import PermissionDeniedError, ValidationError
from culturetour.services.appwrite_service import document_store
from culturetour.services.cloudinary_service import media_service
from culturetour.services.file_service import ImageUpload, file_service
from culturetour.services.tour_service import validate_description, validate_title

logger = logging.getLogger(__name__)

MAX_SCENE_DESCRIPTION_LENGTH = 1000
DEFAULT_HFOV = 100.0


def parse_number(raw: Optional[str], field: str, default: float) -> float:
    """Multipart numbers arrive as strings; empty means the default."""
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ValidationError(message=f"{field} must be a number", field=field)


def parse_order(raw: Optional[str]) -> int:
    if raw is None or raw == "":
        return 0
    try:
        order = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(message="order must be an integer", field="order")
    if order < 0:
        raise ValidationError(message="order cannot be negative", field="order")
    return order


def validate_panorama_url(raw: Optional[str]) -> str:
    if not raw:
        return ""
    parsed = urlparse(raw.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(message="panoramaUrl must be an http(s) URL", field="panoramaUrl")
    return raw.strip()


class SceneService:
    async def _check_tour_owner(self, tour_id: str, user_id: str, message: str) -> Dict[str, Any]:
        tour = await document_store.get_document("tours", tour_id)
        if tour.get("authorId") != user_id:
            raise PermissionDeniedError(message=message)
        return tour

    async def _get_owned_scene(self, scene_id: str, user_id: str, action: str) -> Dict[str, Any]:
        scene = await document_store.get_document("scenes", scene_id)
        await self._check_tour_owner(
            scene["tourId"], user_id, f"Unauthorized: You can only {action} your own scenes"
        )
        return scene

    async def _upload(self, user_id: str, image: ImageUpload) -> Dict[str, Any]:
        file_service.validate_image(image.filename, image.content, image.content_length, field="image")
        return await media_service.upload_image(image.content, "scene", user_id, image.filename)

    async def create_scene(
        self,
        user_id: str,
        tour_id: Optional[str],
        title: Optional[str],
        description: Optional[str] = None,
        order: Optional[str] = None,
        panorama_url: Optional[str] = None,
        pitch: Optional[str] = None,
        yaw: Optional[str] = None,
        hfov: Optional[str] = None,
        image: Optional[ImageUpload] = None,
    ) -> Dict[str, Any]:
        if not tour_id:
            raise ValidationError(message="tourId is required", field="tourId")
        data = {
            "tourId": tour_id,
            "authorId": user_id,
            "title": validate_title(title),
            "description": validate_description(description, MAX_SCENE_DESCRIPTION_LENGTH, required=False),
            "order": parse_order(order),
            "panoramaUrl": validate_panorama_url(panorama_url),
            "imagePublicId": "",
            "pitch": parse_number(pitch, "pitch", 0.0),
            "yaw": parse_number(yaw, "yaw", 0.0),
            "hfov": parse_number(hfov, "hfov", DEFAULT_HFOV),
        }
        tour = await self._check_tour_owner(
            tour_id, user_id, "Unauthorized: You can only add scenes to your own tours"
        )

        if image is not None:
            upload = await self._upload(user_id, image)
            data["panoramaUrl"] = upload["url"]
            data["imagePublicId"] = upload["publicId"]

        scene = await document_store.create_document("scenes", data)
        if not tour.get("startSceneId"):
            await document_store.update_document("tours", tour_id, {"startSceneId": scene["$id"]})

        logger.info("User %s added scene %s to tour %s", user_id, scene["$id"], tour_id)
        return scene

    async def get_scene(self, scene_id: str) -> Dict[str, Any]:
        return await document_store.get_document("scenes", scene_id)

    async def update_scene(
        self,
        scene_id: str,
        user_id: str,
        fields: Dict[str, Optional[str]],
        image: Optional[ImageUpload] = None,
    ) -> Dict[str, Any]:
        """
        Apply the multipart fields that were sent.

        Keys: title, description, order, panorama_url, pitch, yaw, hfov.
        """
        await self._get_owned_scene(scene_id, user_id, "update")
        sent = {key: value for key, value in fields.items() if value is not None}

        updates: Dict[str, Any] = {}
        if "title" in sent:
            updates["title"] = validate_title(sent["title"])
        if "description" in sent:
            updates["description"] = validate_description(
                sent["description"], MAX_SCENE_DESCRIPTION_LENGTH, required=False
            )
        if "order" in sent:
            updates["order"] = parse_order(sent["order"])
        if sent.get("panorama_url"):
            updates["panoramaUrl"] = validate_panorama_url(sent["panorama_url"])
        for key, default in (("pitch", 0.0), ("yaw", 0.0), ("hfov", DEFAULT_HFOV)):
            if key in sent:
                updates[key] = parse_number(sent[key], key, default)

        if image is not None:
            upload = await self._upload(user_id, image)
            updates["panoramaUrl"] = upload["url"]
            updates["imagePublicId"] = upload["publicId"]

        if not updates:
            raise ValidationError(message="No valid fields to update")

        scene = await document_store.update_document("scenes", scene_id, updates)
        logger.info("User %s updated scene %s (%s)", user_id, scene_id, ", ".join(sorted(updates)))
        return scene

    async def delete_scene(self, scene_id: str, user_id: str) -> Dict[str, int]:
        """Delete a scene and its hotspots."""
        scene = await self._get_owned_scene(scene_id, user_id, "delete")

        hotspots = await document_store.list_all_documents("hotspots", [Query.equal("sceneId", scene_id)])
        for hotspot in hotspots:
            await document_store.delete_document("hotspots", hotspot["$id"])
        await document_store.delete_document("scenes", scene_id)

        tour = await document_store.get_document("tours", scene["tourId"])
        if tour.get("startSceneId") == scene_id:
            await document_store.update_document("tours", tour["$id"], {"startSceneId": ""})

        logger.info("User %s deleted scene %s (%d hotspots)", user_id, scene_id, len(hotspots))
        return {"deletedHotspots": len(hotspots)}


# Singleton instance
scene_service = SceneService()
