"""
CultureTour Backend — Cloudinary Gateway Tests
===============================================

What we test:
    ✅ upload_image folder/options and result shape
    ✅ upload_panorama: public id, size limit, equirectangular flag, variants
    ✅ "not found" on delete and NotFound on lookup become NotFoundError
    ✅ Other Cloudinary errors become MediaStorageError
    ✅ Responsive URLs
"""

from unittest.mock import patch

import pytest
from cloudinary.exceptions import Error as CloudinaryError
from cloudinary.exceptions import NotFound

from culturetour.exceptions import MediaStorageError, NotFoundError
from culturetour.services.cloudinary_service import (
    MediaService,
    is_equirectangular,
    safe_basename,
)

UPLOAD_RESULT = {
    "secure_url": "https://res.cloudinary.com/test-cloud/image/upload/v1/posts/user-1/louvre_1.jpg",
    "public_id": "posts/user-1/louvre_1",
    "format": "jpg",
    "width": 2048,
    "height": 1024,
    "bytes": 512000,
}


@pytest.fixture
def media():
    return MediaService()


class TestHelpers:
    def test_equirectangular(self):
        assert is_equirectangular(4096, 2048) is True
        assert is_equirectangular(4000, 2300) is False
        assert is_equirectangular(0, 0) is False

    @pytest.mark.parametrize(
        "width, expected",
        [(2090, True), (2110, False), (1910, True), (1890, False)],
    )
    def test_equirectangular_tolerance_edges(self, width, expected):
        assert is_equirectangular(width, 1000) is expected

    def test_safe_basename(self):
        assert safe_basename("My Photo (1).JPG") == "My_Photo_1"
        assert safe_basename(None, "panorama") == "panorama"


class TestUploads:
    @pytest.mark.asyncio
    async def test_upload_image(self, media):
        with patch("cloudinary.uploader.upload", return_value=UPLOAD_RESULT) as upload:
            result = await media.upload_image(b"bytes", "scene", "user-1", "hall.jpg")

        options = upload.call_args.kwargs
        assert options["folder"] == "scene/user-1"
        assert options["format"] == "jpg"
        assert options["quality"] == "auto:good"
        assert result["url"] == UPLOAD_RESULT["secure_url"]
        assert result["resourceType"] == "scene"
        assert result["userId"] == "user-1"

    @pytest.mark.asyncio
    async def test_upload_image_rejects_unknown_resource_type(self, media):
        with pytest.raises(MediaStorageError):
            await media.upload_image(b"bytes", "avatar", "user-1")

    @pytest.mark.asyncio
    async def test_upload_panorama(self, media):
        with patch("cloudinary.uploader.upload", return_value=UPLOAD_RESULT) as upload:
            result = await media.upload_panorama(b"bytes", "user-1", "louvre.jpg")

        options = upload.call_args.kwargs
        assert options["folder"] == "posts/user-1"
        assert options["public_id"].startswith("louvre_")
        assert options["transformation"] == [{"width": 2048, "height": 1024, "crop": "limit"}]
        assert result["aspectRatio"] == 2.0
        assert result["isEquirectangular"] is True
        assert "w_400" in result["thumbnailUrl"]
        assert "w_800" in result["mediumUrl"]

    @pytest.mark.asyncio
    async def test_upload_rejected_becomes_media_error(self, media):
        with patch("cloudinary.uploader.upload", side_effect=CloudinaryError("Invalid image file")):
            with pytest.raises(MediaStorageError) as exc_info:
                await media.upload_image(b"bytes", "tour", "user-1")
        assert "Invalid image file" in exc_info.value.message


class TestLookupAndDelete:
    @pytest.mark.asyncio
    async def test_delete_ok(self, media):
        with patch("cloudinary.uploader.destroy", return_value={"result": "ok"}):
            assert await media.delete_image("posts/user-1/louvre_1") is True

    @pytest.mark.asyncio
    async def test_delete_not_found(self, media):
        with patch("cloudinary.uploader.destroy", return_value={"result": "not found"}):
            with pytest.raises(NotFoundError) as exc_info:
                await media.delete_image("missing")
        assert exc_info.value.message == "Image not found"

    @pytest.mark.asyncio
    async def test_details_not_found(self, media):
        with patch("cloudinary.api.resource", side_effect=NotFound("Resource not found")):
            with pytest.raises(NotFoundError):
                await media.get_image_details("missing")

    @pytest.mark.asyncio
    async def test_list_images_cursor(self, media):
        with patch(
            "cloudinary.api.resources",
            return_value={"resources": [{"public_id": "a"}], "next_cursor": "abc"},
        ) as resources:
            result = await media.list_images(next_cursor="prev")
        assert result == {"resources": [{"public_id": "a"}], "nextCursor": "abc"}
        assert resources.call_args.kwargs["next_cursor"] == "prev"
        assert resources.call_args.kwargs["max_results"] == 500

    @pytest.mark.asyncio
    async def test_update_metadata_uses_context(self, media):
        with patch("cloudinary.uploader.explicit", return_value={"public_id": "a"}) as explicit:
            await media.update_image_metadata("a", title="Hall", description="Main hall", tags=["x"])
        options = explicit.call_args.kwargs
        assert options["context"] == {"caption": "Hall", "alt": "Main hall"}
        assert options["tags"] == ["x"]


def test_responsive_urls(media):
    urls = media.responsive_urls("posts/user-1/louvre_1")
    assert set(urls) == {"thumbnail", "small", "medium", "large", "original"}
    assert "w_1600" in urls["medium"]
    assert urls["original"].endswith("posts/user-1/louvre_1")
