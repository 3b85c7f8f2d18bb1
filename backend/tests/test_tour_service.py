"""
CultureTour Backend — Virtual Tour Service Tests
=================================================

What we test:
    ✅ Tours: create defaults, settings merge, visibility, detail assembly,
       publish toggle, cascading delete
    ✅ Scenes: ownership through the tour, startSceneId bookkeeping,
       panorama upload
    ✅ Hotspots: type validation, scene/tour consistency, style merge,
       image upload into infoContent
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from appwrite.query import Query

from culturetour.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from culturetour.services.file_service import ImageUpload
from culturetour.services.hotspot_service import HotspotService, validate_type
from culturetour.services.scene_service import SceneService, parse_number, validate_panorama_url
from culturetour.services.tour_service import (
    DEFAULT_SETTINGS,
    TourService,
    parse_duration,
    serialize_tour,
)

IMAGE = ImageUpload(filename="view.jpg", content=b"jpeg-bytes", content_length=10)


@pytest.fixture
def media():
    media = MagicMock()
    media.upload_image = AsyncMock(
        return_value={"url": "https://res.cloudinary.com/x/scene/user-1/view.jpg", "publicId": "scene/user-1/view"}
    )
    return media


@pytest.fixture
def patched(mock_store, media):
    targets = ("tour_service", "scene_service", "hotspot_service")
    patches = []
    for module in targets:
        patches.append(patch(f"culturetour.services.{module}.document_store", mock_store))
        patches.append(patch(f"culturetour.services.{module}.media_service", media))
        patches.append(patch(f"culturetour.services.{module}.file_service", MagicMock()))
    for p in patches:
        p.start()
    yield mock_store
    for p in reversed(patches):
        p.stop()


def tour(tour_id="tour-1", author="user-1", **overrides):
    doc = {
        "$id": tour_id,
        "title": "Prague Castle",
        "description": "Walk through the castle grounds",
        "authorId": author,
        "isPublic": True,
        "status": "published",
        "startSceneId": "",
        "settings": json.dumps({"autoRotate": True}),
        "tags": ["castle"],
    }
    doc.update(overrides)
    return doc


# ── Helpers ──────────────────────────────────────────────────────────────────


class TestHelpers:
    def test_settings_merged_over_defaults(self):
        result = serialize_tour(tour())
        assert result["settings"]["autoRotate"] is True
        assert result["settings"]["showControls"] is DEFAULT_SETTINGS["showControls"]

    def test_duration(self):
        assert parse_duration(None) == 0
        assert parse_duration("45") == 45
        with pytest.raises(ValidationError):
            parse_duration("-1")
        with pytest.raises(ValidationError):
            parse_duration("an hour")

    def test_number(self):
        assert parse_number("12.5", "pitch", 0.0) == 12.5
        assert parse_number("", "hfov", 100.0) == 100.0
        with pytest.raises(ValidationError) as exc_info:
            parse_number("north", "yaw", 0.0)
        assert exc_info.value.field == "yaw"

    def test_panorama_url(self):
        assert validate_panorama_url("https://cdn.example.com/p.jpg") == "https://cdn.example.com/p.jpg"
        with pytest.raises(ValidationError):
            validate_panorama_url("ftp://cdn.example.com/p.jpg")

    def test_hotspot_type(self):
        assert validate_type(None) == "info"
        assert validate_type("video") == "video"
        with pytest.raises(ValidationError):
            validate_type("audio")


# ── Tours ────────────────────────────────────────────────────────────────────


class TestTours:
    def setup_method(self):
        self.service = TourService()

    @pytest.mark.asyncio
    async def test_create_defaults(self, patched):
        patched.create_document.side_effect = lambda collection, data: {"$id": "tour-9", **data}

        result = await self.service.create_tour("user-1", "Prague Castle", "Castle grounds")

        data = patched.create_document.call_args[0][1]
        assert data["isPublic"] is False
        assert data["status"] == "draft"
        assert data["category"] == "general"
        assert data["startSceneId"] == ""
        assert json.loads(data["settings"]) == DEFAULT_SETTINGS
        assert result["settings"] == DEFAULT_SETTINGS

    @pytest.mark.asyncio
    async def test_create_requires_description(self, patched):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_tour("user-1", "Prague Castle", "  ")
        assert exc_info.value.message == "Description is required"

    @pytest.mark.asyncio
    async def test_create_with_thumbnail(self, patched, media):
        patched.create_document.side_effect = lambda collection, data: {"$id": "tour-9", **data}
        result = await self.service.create_tour("user-1", "Prague Castle", "Castle", thumbnail=IMAGE)
        assert result["thumbnailUrl"].endswith("view.jpg")
        assert media.upload_image.call_args[0][1] == "tour"

    @pytest.mark.asyncio
    async def test_list_other_users_private_tours_is_empty(self, patched):
        result = await self.service.list_tours("user-2", author_id="user-1", is_public=False)
        assert result == {"tours": [], "total": 0, "page": 1, "limit": 10, "hasMore": False}
        patched.list_documents.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_has_more(self, patched):
        patched.list_documents.return_value = {"total": 15, "documents": [tour(f"t-{i}") for i in range(10)]}
        result = await self.service.list_tours(None, page=1, limit=10, category="history")
        queries = patched.list_documents.call_args[0][1]
        assert Query.equal("isPublic", True) in queries
        assert Query.equal("category", "history") in queries
        assert result["hasMore"] is True

    @pytest.mark.asyncio
    async def test_detail_groups_hotspots(self, patched):
        patched.get_document.return_value = tour()
        patched.list_all_documents.side_effect = [
            [{"$id": "s-1", "order": 0}, {"$id": "s-2", "order": 1}],
            [
                {"$id": "h-1", "sceneId": "s-2", "infoContent": '{"title": "Gate"}', "style": "{}"},
                {"$id": "h-2", "sceneId": "s-2", "infoContent": None, "style": None},
            ],
        ]

        result = await self.service.get_tour("tour-1")

        first, second = result["scenes"]
        assert first["hotspots"] == []
        assert [h["$id"] for h in second["hotspots"]] == ["h-1", "h-2"]
        assert second["hotspots"][0]["infoContent"] == {"title": "Gate"}

    @pytest.mark.asyncio
    async def test_private_tour_hidden(self, patched):
        patched.get_document.return_value = tour(isPublic=False)
        with pytest.raises(NotFoundError):
            await self.service.get_tour("tour-1", viewer_id="user-2")

    @pytest.mark.asyncio
    async def test_update_merges_settings(self, patched):
        patched.get_document.return_value = tour()
        patched.update_document.side_effect = lambda c, i, data: {**tour(), **data}

        await self.service.update_tour(
            "tour-1", "user-1", {"settings": '{"backgroundColor": "#111111"}', "title": None}
        )

        updates = patched.update_document.call_args[0][2]
        assert set(updates) == {"settings"}
        settings = json.loads(updates["settings"])
        assert settings["autoRotate"] is True
        assert settings["backgroundColor"] == "#111111"

    @pytest.mark.asyncio
    async def test_update_by_other_user(self, patched):
        patched.get_document.return_value = tour(author="user-2")
        with pytest.raises(PermissionDeniedError) as exc_info:
            await self.service.update_tour("tour-1", "user-1", {"title": "Mine now"})
        assert exc_info.value.message == "Unauthorized: You can only update your own tours"

    @pytest.mark.asyncio
    async def test_publish(self, patched):
        patched.get_document.return_value = tour(isPublic=False, status="draft")
        patched.update_document.side_effect = lambda c, i, data: {**tour(), **data}
        result = await self.service.set_published("tour-1", "user-1", True)
        assert result["status"] == "published"
        assert result["isPublic"] is True

    @pytest.mark.asyncio
    async def test_delete_cascades(self, patched):
        patched.get_document.return_value = tour()
        patched.list_all_documents.side_effect = [
            [{"$id": "h-1"}, {"$id": "h-2"}],
            [{"$id": "s-1"}],
        ]

        result = await self.service.delete_tour("tour-1", "user-1")

        assert result == {"deletedScenes": 1, "deletedHotspots": 2}
        deleted = [c.args for c in patched.delete_document.await_args_list]
        assert deleted == [("hotspots", "h-1"), ("hotspots", "h-2"), ("scenes", "s-1"), ("tours", "tour-1")]


# ── Scenes ───────────────────────────────────────────────────────────────────


class TestScenes:
    def setup_method(self):
        self.service = SceneService()

    @pytest.mark.asyncio
    async def test_requires_tour_id(self, patched):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_scene("user-1", None, "Courtyard")
        assert exc_info.value.message == "tourId is required"

    @pytest.mark.asyncio
    async def test_first_scene_becomes_start(self, patched, media):
        patched.get_document.return_value = tour()
        patched.create_document.side_effect = lambda collection, data: {"$id": "s-1", **data}

        scene = await self.service.create_scene("user-1", "tour-1", "Courtyard", image=IMAGE)

        assert scene["panoramaUrl"].endswith("view.jpg")
        assert scene["imagePublicId"] == "scene/user-1/view"
        assert scene["hfov"] == 100.0
        patched.update_document.assert_awaited_once_with("tours", "tour-1", {"startSceneId": "s-1"})

    @pytest.mark.asyncio
    async def test_later_scene_keeps_start(self, patched):
        patched.get_document.return_value = tour(startSceneId="s-1")
        patched.create_document.side_effect = lambda collection, data: {"$id": "s-2", **data}
        await self.service.create_scene("user-1", "tour-1", "Chapel", order="1")
        patched.update_document.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_users_tour(self, patched):
        patched.get_document.return_value = tour(author="user-2")
        with pytest.raises(PermissionDeniedError) as exc_info:
            await self.service.create_scene("user-1", "tour-1", "Courtyard")
        assert exc_info.value.message == "Unauthorized: You can only add scenes to your own tours"
        patched.create_document.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_without_fields(self, patched):
        docs = {"scenes": {"$id": "s-1", "tourId": "tour-1"}, "tours": tour()}
        patched.get_document.side_effect = lambda collection, document_id: docs[collection]
        with pytest.raises(ValidationError):
            await self.service.update_scene("s-1", "user-1", {"title": None})

    @pytest.mark.asyncio
    async def test_delete_clears_start_scene(self, patched):
        docs = {"scenes": {"$id": "s-1", "tourId": "tour-1"}, "tours": tour(startSceneId="s-1")}
        patched.get_document.side_effect = lambda collection, document_id: docs[collection]
        patched.list_all_documents.return_value = [{"$id": "h-1"}]

        result = await self.service.delete_scene("s-1", "user-1")

        assert result == {"deletedHotspots": 1}
        patched.update_document.assert_awaited_once_with("tours", "tour-1", {"startSceneId": ""})


# ── Hotspots ─────────────────────────────────────────────────────────────────


class TestHotspots:
    def setup_method(self):
        self.service = HotspotService()

    @pytest.mark.asyncio
    async def test_scene_must_belong_to_tour(self, patched):
        patched.get_document.return_value = {"$id": "s-1", "tourId": "tour-2"}
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_hotspot("user-1", "s-1", "tour-1", text="Gate")
        assert exc_info.value.message == "Scene does not belong to this tour"

    @pytest.mark.asyncio
    async def test_create_with_image(self, patched):
        docs = {"scenes": {"$id": "s-1", "tourId": "tour-1"}, "tours": tour()}
        patched.get_document.side_effect = lambda collection, document_id: docs[collection]
        patched.create_document.side_effect = lambda collection, data: {"$id": "h-1", **data}

        hotspot = await self.service.create_hotspot(
            "user-1",
            "s-1",
            "tour-1",
            text="Gate",
            hotspot_type="image",
            pitch="-5",
            info_content='{"title": "Main gate"}',
            style='{"textColor": "#ff0000"}',
            image=IMAGE,
        )

        assert hotspot["type"] == "image"
        assert hotspot["pitch"] == -5.0
        assert hotspot["infoContent"]["title"] == "Main gate"
        assert hotspot["infoContent"]["imageUrl"].endswith("view.jpg")
        assert hotspot["style"]["textColor"] == "#ff0000"
        assert hotspot["style"]["padding"] == 10

    @pytest.mark.asyncio
    async def test_create_on_other_users_tour(self, patched):
        docs = {"scenes": {"$id": "s-1", "tourId": "tour-1"}, "tours": tour(author="user-2")}
        patched.get_document.side_effect = lambda collection, document_id: docs[collection]
        with pytest.raises(PermissionDeniedError):
            await self.service.create_hotspot("user-1", "s-1", "tour-1")

    @pytest.mark.asyncio
    async def test_update_merges_style(self, patched):
        docs = {
            "hotspots": {"$id": "h-1", "tourId": "tour-1", "type": "info", "style": '{"padding": 4, "textColor": "#000"}'},
            "tours": tour(),
        }
        patched.get_document.side_effect = lambda collection, document_id: docs[collection]
        patched.update_document.side_effect = lambda c, i, data: {**docs["hotspots"], **data}

        result = await self.service.update_hotspot("h-1", "user-1", {"style": '{"textColor": "#fff"}'})

        assert result["style"] == {"padding": 4, "textColor": "#fff"}

    @pytest.mark.asyncio
    async def test_delete_by_other_user(self, patched):
        docs = {"hotspots": {"$id": "h-1", "tourId": "tour-1"}, "tours": tour(author="user-2")}
        patched.get_document.side_effect = lambda collection, document_id: docs[collection]
        with pytest.raises(PermissionDeniedError) as exc_info:
            await self.service.delete_hotspot("h-1", "user-1")
        assert exc_info.value.message == "Unauthorized: You can only delete hotspots in your own tours"
