"""
CultureTour Backend — Hotspot Service
======================================

What:  Clickable hotspots placed on a scene's panorama.
How:   `hotspots` documents {sceneId, tourId, authorId, text, type, pitch,
       yaw, infoContent, externalUrl, style}; infoContent and style are JSON
       strings decoded by serialize_hotspot(). Ownership follows the tour.
"""

import logging
from typing import Any, Dict, Optional

from culturetour.exceptions import PermissionDeniedError, ValidationError
from culturetour.services.appwrite_service import document_store
from culturetour.services.cloudinary_service import media_service
from culturetour.services.file_service import ImageUpload, file_service
from culturetour.services.scene_service import parse_number
from culturetour.services.serialization import dump_json_field, parse_json_field, parse_json_input
from culturetour.services.tour_service import serialize_hotspot

logger = logging.getLogger(__name__)

HOTSPOT_TYPES = ("info", "link", "image", "video")
IMAGE_HOTSPOT_TYPES = {"info", "image"}
MAX_TEXT_LENGTH = 255

DEFAULT_STYLE: Dict[str, Any] = {
    "backgroundColor": "#ffffff",
    "textColor": "#000000",
    "borderColor": "#cccccc",
    "borderWidth": 1,
    "borderRadius": 5,
    "padding": 10,
}


def validate_type(value: Optional[str]) -> str:
    hotspot_type = (value or "info").strip()
    if hotspot_type not in HOTSPOT_TYPES:
        raise ValidationError(
            message=f"type must be one of: {', '.join(HOTSPOT_TYPES)}",
            field="type",
        )
    return hotspot_type


def validate_text(value: Optional[str]) -> str:
    text = (value or "").strip()
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError(message=f"Text must be less than {MAX_TEXT_LENGTH} characters", field="text")
    return text


def parse_object(raw: Optional[str], field: str) -> Optional[Dict[str, Any]]:
    value = parse_json_input(raw, field)
    if value is not None and not isinstance(value, dict):
        raise ValidationError(message=f"{field} must be a JSON object", field=field)
    return value


class HotspotService:
    async def _check_tour_owner(self, tour_id: str, user_id: str, action: str) -> None:
        tour = await document_store.get_document("tours", tour_id)
        if tour.get("authorId") != user_id:
            raise PermissionDeniedError(message=f"Unauthorized: You can only {action} your own tours")

    async def _get_owned_hotspot(self, hotspot_id: str, user_id: str, action: str) -> Dict[str, Any]:
        hotspot = await document_store.get_document("hotspots", hotspot_id)
        await self._check_tour_owner(hotspot["tourId"], user_id, action)
        return hotspot

    async def _upload(self, user_id: str, image: ImageUpload) -> str:
        file_service.validate_image(image.filename, image.content, image.content_length, field="image")
        upload = await media_service.upload_image(image.content, "hotspot", user_id, image.filename)
        return upload["url"]

    async def create_hotspot(
        self,
        user_id: str,
        scene_id: Optional[str],
        tour_id: Optional[str],
        text: Optional[str] = None,
        hotspot_type: Optional[str] = None,
        pitch: Optional[str] = None,
        yaw: Optional[str] = None,
        info_content: Optional[str] = None,
        external_url: Optional[str] = None,
        style: Optional[str] = None,
        image: Optional[ImageUpload] = None,
    ) -> Dict[str, Any]:
        if not scene_id:
            raise ValidationError(message="sceneId is required", field="sceneId")
        if not tour_id:
            raise ValidationError(message="tourId is required", field="tourId")

        kind = validate_type(hotspot_type)
        content = parse_object(info_content, "infoContent")
        style_obj = {**DEFAULT_STYLE, **(parse_object(style, "style") or {})}

        scene = await document_store.get_document("scenes", scene_id)
        if scene.get("tourId") != tour_id:
            raise ValidationError(message="Scene does not belong to this tour", field="sceneId")
        await self._check_tour_owner(tour_id, user_id, "add hotspots to")

        if image is not None and kind in IMAGE_HOTSPOT_TYPES:
            content = {**(content or {}), "imageUrl": await self._upload(user_id, image)}

        doc = await document_store.create_document(
            "hotspots",
            {
                "sceneId": scene_id,
                "tourId": tour_id,
                "authorId": user_id,
                "text": validate_text(text),
                "type": kind,
                "pitch": parse_number(pitch, "pitch", 0.0),
                "yaw": parse_number(yaw, "yaw", 0.0),
                "infoContent": dump_json_field(content),
                "externalUrl": (external_url or "").strip(),
                "style": dump_json_field(style_obj),
            },
        )
        logger.info("User %s added %s hotspot %s to scene %s", user_id, kind, doc["$id"], scene_id)
        return serialize_hotspot(doc)

    async def get_hotspot(self, hotspot_id: str) -> Dict[str, Any]:
        return serialize_hotspot(await document_store.get_document("hotspots", hotspot_id))

    async def update_hotspot(
        self,
        hotspot_id: str,
        user_id: str,
        fields: Dict[str, Optional[str]],
        image: Optional[ImageUpload] = None,
    ) -> Dict[str, Any]:
        """
        Apply the multipart fields that were sent.

        Keys: text, type, pitch, yaw, info_content, external_url, style.
        A new style is merged over the stored one.
        """
        hotspot = await self._get_owned_hotspot(hotspot_id, user_id, "update hotspots in")
        sent = {key: value for key, value in fields.items() if value is not None}

        updates: Dict[str, Any] = {}
        if "text" in sent:
            updates["text"] = validate_text(sent["text"])
        if "type" in sent:
            updates["type"] = validate_type(sent["type"])
        for key in ("pitch", "yaw"):
            if key in sent:
                updates[key] = parse_number(sent[key], key, 0.0)
        if "external_url" in sent:
            updates["externalUrl"] = sent["external_url"].strip()
        if "style" in sent:
            current = parse_json_field(hotspot.get("style"), {}) or {}
            updates["style"] = dump_json_field({**current, **(parse_object(sent["style"], "style") or {})})

        content = None
        if "info_content" in sent:
            content = parse_object(sent["info_content"], "infoContent")
            updates["infoContent"] = dump_json_field(content)

        kind = updates.get("type", hotspot.get("type"))
        if image is not None and kind in IMAGE_HOTSPOT_TYPES:
            if content is None:
                content = parse_json_field(hotspot.get("infoContent"), {}) or {}
            content = {**content, "imageUrl": await self._upload(user_id, image)}
            updates["infoContent"] = dump_json_field(content)

        if not updates:
            raise ValidationError(message="No valid fields to update")

        doc = await document_store.update_document("hotspots", hotspot_id, updates)
        logger.info("User %s updated hotspot %s (%s)", user_id, hotspot_id, ", ".join(sorted(updates)))
        return serialize_hotspot(doc)

    async def delete_hotspot(self, hotspot_id: str, user_id: str) -> None:
        await self._get_owned_hotspot(hotspot_id, user_id, "delete hotspots in")
        await document_store.delete_document("hotspots", hotspot_id)
        logger.info("User %s deleted hotspot %s", user_id, hotspot_id)


# Singleton instance
hotspot_service = HotspotService()
