"""
CultureTour Backend — Virtual Tour Service
===========================================

What:  Tours: listing, full detail (scenes + hotspots), create, update,
       delete (cascading), publish/unpublish.
How:   Tour documents keep their viewer configuration in a JSON `settings`
       string merged over DEFAULT_SETTINGS. A tour's detail is assembled from
       two list queries (scenes by tourId, hotspots by tourId) grouped in
       memory rather than one hotspot query per scene.
Who:   routes/tours.py.

Visibility:
    Private tours (isPublic = false) are only listed for and readable by
    their author; everyone else gets public tours / a 404.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from appwrite.query import Query

from culturetour.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from culturetour.services.appwrite_service import document_store
from culturetour.services.cloudinary_service import media_service
from culturetour.services.file_service import ImageUpload, file_service
from culturetour.services.serialization import (
    dump_json_field,
    normalize_tags,
    offset_for,
    parse_form_bool,
    parse_json_field,
    parse_json_input,
    parse_tags_param,
)

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 2000

DEFAULT_SETTINGS: Dict[str, Any] = {
    "autoRotate": False,
    "autoRotateSpeed": 2,
    "showControls": True,
    "allowFullscreen": True,
    "showSceneList": True,
    "backgroundColor": "#000000",
    "loadingScreenText": "Loading virtual tour...",
}


def serialize_tour(doc: Dict[str, Any]) -> Dict[str, Any]:
    tour = dict(doc)
    tour["settings"] = {**DEFAULT_SETTINGS, **(parse_json_field(doc.get("settings"), {}) or {})}
    tour["tags"] = doc.get("tags") or []
    return tour


def serialize_hotspot(doc: Dict[str, Any]) -> Dict[str, Any]:
    hotspot = dict(doc)
    hotspot["infoContent"] = parse_json_field(doc.get("infoContent"), None)
    hotspot["style"] = parse_json_field(doc.get("style"), {})
    return hotspot


def validate_title(title: Any, max_length: int = MAX_TITLE_LENGTH) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError(message="Title is required", field="title")
    if len(title) > max_length:
        raise ValidationError(message=f"Title must be less than {max_length} characters", field="title")
    return title.strip()


def validate_description(description: Any, max_length: int, required: bool) -> str:
    if description is None or (isinstance(description, str) and not description.strip()):
        if required:
            raise ValidationError(message="Description is required", field="description")
        return ""
    if len(description) > max_length:
        raise ValidationError(
            message=f"Description must be less than {max_length} characters",
            field="description",
        )
    return description.strip()


def parse_settings(raw: Optional[str], base: Dict[str, Any]) -> Dict[str, Any]:
    supplied = parse_json_input(raw, "settings")
    if supplied is None:
        return dict(base)
    if not isinstance(supplied, dict):
        raise ValidationError(message="settings must be a JSON object", field="settings")
    return {**base, **supplied}


def parse_duration(raw: Optional[str]) -> int:
    if raw is None or raw == "":
        return 0
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(message="estimatedDuration must be a whole number of minutes", field="estimatedDuration")
    if value < 0:
        raise ValidationError(message="estimatedDuration cannot be negative", field="estimatedDuration")
    return value


class TourService:
    async def _get_owned_tour(self, tour_id: str, user_id: str, action: str) -> Dict[str, Any]:
        tour = await document_store.get_document("tours", tour_id)
        if tour.get("authorId") != user_id:
            raise PermissionDeniedError(message=f"Unauthorized: You can only {action} your own tours")
        return tour

    async def _upload_thumbnail(self, user_id: str, thumbnail: ImageUpload) -> str:
        file_service.validate_image(
            thumbnail.filename, thumbnail.content, thumbnail.content_length, field="thumbnail"
        )
        upload = await media_service.upload_image(thumbnail.content, "tour", user_id, thumbnail.filename)
        return upload["url"]

    # ── Read ──────────────────────────────────────────────────────────────

    async def list_tours(
        self,
        viewer_id: Optional[str],
        page: int = 1,
        limit: int = 10,
        author_id: Optional[str] = None,
        is_public: Optional[bool] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        tags: Optional[str] = None,
    ) -> Dict[str, Any]:
        offset = offset_for(page, limit)
        own_tours = author_id is not None and author_id == viewer_id

        if not own_tours and is_public is False:
            return {"tours": [], "total": 0, "page": page, "limit": limit, "hasMore": False}

        queries = [
            Query.order_desc("$createdAt"),
            Query.limit(limit),
            Query.offset(offset),
        ]
        if author_id:
            queries.append(Query.equal("authorId", author_id))
        if not own_tours:
            queries.append(Query.equal("isPublic", True))
        elif is_public is not None:
            queries.append(Query.equal("isPublic", is_public))
        if category:
            queries.append(Query.equal("category", category))
        if status:
            queries.append(Query.equal("status", status))
        if search:
            queries.append(Query.search("title", search))
        tag_list = parse_tags_param(tags)
        if tag_list:
            queries.append(Query.equal("tags", tag_list))

        result = await document_store.list_documents("tours", queries)
        tours = [serialize_tour(doc) for doc in result["documents"]]
        return {
            "tours": tours,
            "total": result["total"],
            "page": page,
            "limit": limit,
            "hasMore": offset + len(tours) < result["total"],
        }

    async def get_tour(self, tour_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """Tour with its scenes (by `order`) and each scene's hotspots."""
        tour = await document_store.get_document("tours", tour_id)
        if not tour.get("isPublic", False) and tour.get("authorId") != viewer_id:
            raise NotFoundError(resource="Tour", resource_id=tour_id, message="Tour not found")

        scenes = await document_store.list_all_documents(
            "scenes", [Query.equal("tourId", tour_id), Query.order_asc("order")]
        )
        hotspots = await document_store.list_all_documents(
            "hotspots", [Query.equal("tourId", tour_id)]
        )
        by_scene: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for hotspot in hotspots:
            by_scene[hotspot.get("sceneId")].append(serialize_hotspot(hotspot))

        result = serialize_tour(tour)
        result["scenes"] = [
            {**scene, "hotspots": by_scene.get(scene["$id"], [])} for scene in scenes
        ]
        return result

    # ── Create & update ───────────────────────────────────────────────────

    async def create_tour(
        self,
        user_id: str,
        title: Optional[str],
        description: Optional[str],
        author: Optional[str] = None,
        tags: Optional[str] = None,
        is_public: Optional[str] = None,
        category: Optional[str] = None,
        settings_json: Optional[str] = None,
        estimated_duration: Optional[str] = None,
        thumbnail: Optional[ImageUpload] = None,
    ) -> Dict[str, Any]:
        data = {
            "title": validate_title(title),
            "description": validate_description(description, MAX_DESCRIPTION_LENGTH, required=True),
            "author": (author or "").strip(),
            "authorId": user_id,
            "tags": normalize_tags(parse_tags_param(tags)),
            "isPublic": parse_form_bool(is_public, default=False),
            "category": (category or "general").strip(),
            "status": "draft",
            "viewCount": 0,
            "thumbnailUrl": "",
            "settings": dump_json_field(parse_settings(settings_json, DEFAULT_SETTINGS)),
            "startSceneId": "",
            "estimatedDuration": parse_duration(estimated_duration),
        }
        if thumbnail is not None:
            data["thumbnailUrl"] = await self._upload_thumbnail(user_id, thumbnail)

        doc = await document_store.create_document("tours", data)
        logger.info("User %s created tour %s", user_id, doc["$id"])
        return serialize_tour(doc)

    async def update_tour(
        self,
        tour_id: str,
        user_id: str,
        fields: Dict[str, Optional[str]],
        thumbnail: Optional[ImageUpload] = None,
    ) -> Dict[str, Any]:
        """
        Apply the multipart fields that were sent (None means "not sent").

        Keys: title, description, start_scene_id, settings, tags, is_public,
        category, estimated_duration.
        """
        tour = await self._get_owned_tour(tour_id, user_id, "update")
        sent = {key: value for key, value in fields.items() if value is not None}

        updates: Dict[str, Any] = {}
        if "title" in sent:
            updates["title"] = validate_title(sent["title"])
        if "description" in sent:
            updates["description"] = validate_description(
                sent["description"], MAX_DESCRIPTION_LENGTH, required=True
            )
        if "start_scene_id" in sent:
            updates["startSceneId"] = sent["start_scene_id"]
        if "settings" in sent:
            current = serialize_tour(tour)["settings"]
            updates["settings"] = dump_json_field(parse_settings(sent["settings"], current))
        if "tags" in sent:
            updates["tags"] = normalize_tags(parse_tags_param(sent["tags"]))
        if "is_public" in sent:
            updates["isPublic"] = parse_form_bool(sent["is_public"], default=tour.get("isPublic", False))
        if "category" in sent:
            updates["category"] = sent["category"].strip()
        if "estimated_duration" in sent:
            updates["estimatedDuration"] = parse_duration(sent["estimated_duration"])
        if thumbnail is not None:
            updates["thumbnailUrl"] = await self._upload_thumbnail(user_id, thumbnail)

        if not updates:
            raise ValidationError(message="No valid fields to update")

        doc = await document_store.update_document("tours", tour_id, updates)
        logger.info("User %s updated tour %s (%s)", user_id, tour_id, ", ".join(sorted(updates)))
        return serialize_tour(doc)

    async def set_published(self, tour_id: str, user_id: str, publish: bool) -> Dict[str, Any]:
        await self._get_owned_tour(tour_id, user_id, "publish" if publish else "unpublish")
        doc = await document_store.update_document(
            "tours",
            tour_id,
            {"isPublic": publish, "status": "published" if publish else "draft"},
        )
        logger.info("User %s %s tour %s", user_id, "published" if publish else "unpublished", tour_id)
        return serialize_tour(doc)

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_tour(self, tour_id: str, user_id: str) -> Dict[str, int]:
        """Delete the tour's hotspots, then its scenes, then the tour."""
        await self._get_owned_tour(tour_id, user_id, "delete")

        hotspots = await document_store.list_all_documents("hotspots", [Query.equal("tourId", tour_id)])
        for hotspot in hotspots:
            await document_store.delete_document("hotspots", hotspot["$id"])

        scenes = await document_store.list_all_documents("scenes", [Query.equal("tourId", tour_id)])
        for scene in scenes:
            await document_store.delete_document("scenes", scene["$id"])

        await document_store.delete_document("tours", tour_id)
        logger.info(
            "User %s deleted tour %s (%d scenes, %d hotspots)",
            user_id,
            tour_id,
            len(scenes),
            len(hotspots),
        )
        return {"deletedScenes": len(scenes), "deletedHotspots": len(hotspots)}


# Singleton instance
tour_service = TourService()
