"""
CultureTour Backend — Upload Validation Service
================================================

What:  Validates uploaded images before they are sent to Cloudinary.
How:   Extension, size, sniffed MIME type and (for panoramas) pixel
       dimensions are checked on the in-memory upload.
Who:   Called by the post, tour, scene, hotspot and image routes/services.
When:  After the multipart body is read, before any upstream call.

Validation Layers:
    1. Extension check:  cheap rejection of obviously wrong files
    2. Size check:       Content-Length first, then the actual byte count
    3. MIME check:       libmagic inspects the header bytes (renamed files fail)
    4. Dimensions:       Pillow reads the header to get width x height

Limits:
    generic images   jpeg, png, gif, webp   MAX_IMAGE_SIZE (5MB)
    panoramas        jpeg, png              MAX_PANORAMA_SIZE (10MB), >= 1024x512
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from culturetour.config import settings
from culturetour.exceptions import MediaStorageError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
IMAGE_MIME_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}
PANORAMA_MIME_TYPES = {"image/jpeg", "image/png"}

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
PANORAMA_EXTENSIONS = {".jpg", ".jpeg", ".png"}

MIN_PANORAMA_WIDTH = 1024
MIN_PANORAMA_HEIGHT = 512


@dataclass
class ImageUpload:
    """An uploaded file held in memory (bounded by the size checks)."""

    filename: Optional[str]
    content: bytes
    content_length: Optional[int] = None


async def read_upload(upload: Optional[UploadFile]) -> Optional[ImageUpload]:
    """Read a multipart file into memory and close it; None when absent or empty."""
    if upload is None:
        return None
    try:
        content = await upload.read()
    finally:
        await upload.close()
    if not content and not upload.filename:
        return None
    return ImageUpload(filename=upload.filename, content=content, content_length=upload.size)


class FileService:
    """
    Stateless validator for image uploads.

    Every check raises ValidationError with `field` set to the form field
    the client used, so the frontend can highlight the right input.
    """

    def validate_extension(
        self,
        filename: Optional[str],
        allowed: Iterable[str] = ALLOWED_EXTENSIONS,
        field: str = "image",
    ) -> str:
        """
        Reject a filename whose extension is not allowed.

        Browsers sometimes send blobs without a suffix ("blob"); those pass
        here and are judged by their content in validate_mime_type().
        """
        allowed = set(allowed)
        ext = Path(filename or "").suffix.lower()
        if ext and ext not in allowed:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(allowed))}"
                ),
                field=field,
                context={"extension": ext, "allowed": sorted(allowed)},
            )
        return ext

    def validate_size(
        self,
        content_length: Optional[int],
        actual_size: int,
        max_size: int,
        field: str = "image",
    ) -> None:
        """
        Validate file size against a per-purpose maximum.

        Args:
            content_length: Size reported by the client (may be None or wrong)
            actual_size: Byte count actually received
            max_size: Limit in bytes (settings.max_image_size / max_panorama_size)
        """
        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty", field=field)

        max_mb = max_size / (1024 * 1024)
        if content_length and content_length > max_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field=field,
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )
        if actual_size > max_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field=field,
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(
        self,
        content: bytes,
        allowed: Iterable[str] = IMAGE_MIME_TYPES,
        field: str = "image",
    ) -> str:
        """
        Detect the real MIME type from the file's magic bytes.

        Returns:
            Detected MIME type string (e.g., "image/jpeg")
        """
        import magic

        allowed = set(allowed)
        try:
            mime_type = magic.from_buffer(content[:4096], mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise MediaStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in allowed:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"Allowed: {', '.join(sorted(allowed))}"
                ),
                field=field,
                context={"detected_mime": mime_type, "allowed": sorted(allowed)},
            )
        return mime_type

    def read_dimensions(self, content: bytes, field: str = "image") -> Tuple[int, int]:
        """Width and height from the image header (no full decode)."""
        try:
            with Image.open(io.BytesIO(content)) as img:
                return img.size
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise ValidationError(
                message="Uploaded file is not a readable image",
                field=field,
                context={"error": type(e).__name__},
            )

    def validate_panorama_dimensions(
        self, width: int, height: int, field: str = "image"
    ) -> Dict[str, Any]:
        if width < MIN_PANORAMA_WIDTH or height < MIN_PANORAMA_HEIGHT:
            raise ValidationError(
                message=(
                    f"Panorama must be at least {MIN_PANORAMA_WIDTH}x{MIN_PANORAMA_HEIGHT} pixels "
                    f"(got {width}x{height})"
                ),
                field=field,
                context={"width": width, "height": height},
            )
        aspect_ratio = width / height
        return {
            "width": width,
            "height": height,
            "aspectRatio": aspect_ratio,
            "isEquirectangular": abs(aspect_ratio - 2.0) < 0.1,
        }

    # ── Composed checks ───────────────────────────────────────────────────

    def validate_image(
        self,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
        field: str = "image",
    ) -> str:
        """Generic image upload (jpeg/png/gif/webp, MAX_IMAGE_SIZE). Returns MIME type."""
        self.validate_extension(filename, ALLOWED_EXTENSIONS, field)
        self.validate_size(content_length, len(content), settings.max_image_size, field)
        return self.validate_mime_type(content, IMAGE_MIME_TYPES, field)

    def validate_panorama(
        self,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
        field: str = "image",
    ) -> Dict[str, Any]:
        """
        Post panorama upload (jpeg/png, MAX_PANORAMA_SIZE, >= 1024x512).

        Returns:
            {mimeType, width, height, aspectRatio, isEquirectangular}
        """
        self.validate_extension(filename, PANORAMA_EXTENSIONS, field)
        self.validate_size(content_length, len(content), settings.max_panorama_size, field)
        mime_type = self.validate_mime_type(content, PANORAMA_MIME_TYPES, field)
        width, height = self.read_dimensions(content, field)
        info = self.validate_panorama_dimensions(width, height, field)
        info["mimeType"] = mime_type
        return info


# Singleton instance
file_service = FileService()
