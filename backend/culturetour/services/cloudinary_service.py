"""
CultureTour Backend — Cloudinary Media Gateway
===============================================

What:  Uploads, deletes, lists and describes images on Cloudinary, and
       builds delivery URLs for the variants the frontend displays.
How:   Same resilience path as the Appwrite gateway: circuit breaker →
       worker thread → tenacity retry → error translation.
Who:   Post, tour, scene and hotspot services plus the images routes.

Folder layout on Cloudinary:
    posts/{userId}/{name}_{millis}      panorama posts
    tour/{userId}/...                   tour thumbnails
    scene/{userId}/...                  scene panoramas
    hotspot/{userId}/...                hotspot images
    uploads/upload_{millis}_{random}    generic image API

Panorama Variants:
    thumbnail  400x200   fill
    small      800x400   fill
    medium     1600x800  limit
    large      2048x1024 limit
    original   untouched
"""

import functools
import io
import logging
import re
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import cloudinary
import cloudinary.api
import cloudinary.uploader
import cloudinary.utils
from cloudinary.exceptions import Error as CloudinaryError
from cloudinary.exceptions import GeneralError, NotFound, RateLimited
from cloudinary.search import Search
from starlette.concurrency import run_in_threadpool
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from culturetour.config import settings
from culturetour.exceptions import CultureTourError, MediaStorageError, NotFoundError
from culturetour.services.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

ALLOWED_FORMATS = ["jpg", "jpeg", "png", "gif", "webp"]
RESOURCE_TYPES = {"post", "tour", "scene", "hotspot"}

PANORAMA_MAX_WIDTH = 2048
PANORAMA_MAX_HEIGHT = 1024
EQUIRECTANGULAR_RATIO = 2.0
EQUIRECTANGULAR_TOLERANCE = 0.1

TRANSIENT_ERRORS = (GeneralError, RateLimited, ConnectionError, TimeoutError)


def is_equirectangular(width: int, height: int) -> bool:
    """A 2:1 image (within tolerance) maps onto a full sphere."""
    if not width or not height:
        return False
    return abs(width / height - EQUIRECTANGULAR_RATIO) < EQUIRECTANGULAR_TOLERANCE


def safe_basename(filename: Optional[str], fallback: str = "image") -> str:
    """File stem reduced to characters Cloudinary accepts in a public id."""
    stem = Path(filename or "").stem
    cleaned = re.sub(r"[^A-Za-z0-9_-]+", "_", stem).strip("_")
    return cleaned or fallback


class MediaService:
    """Async facade over the Cloudinary uploader, admin API and URL helpers."""

    def __init__(self):
        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )
        self.circuit_breaker = CircuitBreaker(
            name="cloudinary",
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        logger.info(
            "MediaService initialized for cloud=%s",
            settings.cloudinary_cloud_name or "<unset>",
        )

    # ── Core call path ────────────────────────────────────────────────────

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _execute(self, call: Callable[[], Any]) -> Any:
        return await run_in_threadpool(call)

    async def _call(
        self,
        operation: str,
        call: Callable[[], Any],
        public_id: Optional[str] = None,
    ) -> Any:
        self.circuit_breaker.can_execute()

        try:
            result = await self._execute(call)
        except NotFound:
            self.circuit_breaker.record_success()
            raise NotFoundError(resource="Image", resource_id=public_id, message="Image not found")
        except TRANSIENT_ERRORS as exc:
            self.circuit_breaker.record_failure()
            logger.error("Cloudinary %s failed after retries: %s", operation, str(exc))
            raise MediaStorageError(
                message="Image service is temporarily unavailable. Please try again later.",
                context={"operation": operation},
            )
        except CloudinaryError as exc:
            self.circuit_breaker.record_success()
            logger.warning("Cloudinary %s rejected: %s", operation, str(exc))
            raise MediaStorageError(
                message=f"Image operation failed: {exc}",
                context={"operation": operation, "public_id": public_id},
            )

        self.circuit_breaker.record_success()
        return result

    async def _upload(self, content: bytes, operation: str, **options) -> Dict[str, Any]:
        # Fresh stream per attempt; a retried upload must start from byte 0
        return await self._call(
            operation,
            lambda: cloudinary.uploader.upload(io.BytesIO(content), **options),
        )

    # ── Uploads ───────────────────────────────────────────────────────────

    async def upload_image(
        self,
        content: bytes,
        resource_type: str,
        user_id: str,
        original_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Upload a tour/scene/hotspot/post image to `{resource_type}/{user_id}`.

        Returns:
            {url, publicId, format, width, height, bytes, resourceType, userId}
        """
        if resource_type not in RESOURCE_TYPES:
            raise MediaStorageError(
                message=f"Unsupported resource type '{resource_type}'",
                context={"allowed": sorted(RESOURCE_TYPES)},
            )

        result = await self._upload(
            content,
            "upload_image",
            folder=f"{resource_type}/{user_id}",
            resource_type="image",
            format="jpg",
            quality="auto:good",
            use_filename=bool(original_name),
            filename_override=safe_basename(original_name),
            unique_filename=True,
        )
        logger.info(
            "Uploaded %s image for user %s: %s (%s bytes)",
            resource_type,
            user_id,
            result.get("public_id"),
            result.get("bytes"),
        )
        return {
            "url": result.get("secure_url"),
            "publicId": result.get("public_id"),
            "format": result.get("format"),
            "width": result.get("width"),
            "height": result.get("height"),
            "bytes": result.get("bytes"),
            "resourceType": resource_type,
            "userId": user_id,
        }

    async def upload_panorama(
        self,
        content: bytes,
        user_id: str,
        original_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Upload a 360° post image, capped at 2048x1024.

        Returns the upload summary plus aspectRatio, isEquirectangular,
        thumbnailUrl and mediumUrl.
        """
        public_id = f"{safe_basename(original_name, 'panorama')}_{int(time.time() * 1000)}"
        result = await self._upload(
            content,
            "upload_panorama",
            public_id=public_id,
            folder=f"posts/{user_id}",
            resource_type="image",
            format="jpg",
            quality="auto:good",
            transformation=[
                {"width": PANORAMA_MAX_WIDTH, "height": PANORAMA_MAX_HEIGHT, "crop": "limit"}
            ],
        )

        width = result.get("width") or 0
        height = result.get("height") or 0
        full_public_id = result.get("public_id", public_id)
        logger.info(
            "Uploaded panorama %s (%dx%d) for user %s",
            full_public_id,
            width,
            height,
            user_id,
        )
        return {
            "url": result.get("secure_url"),
            "publicId": full_public_id,
            "format": result.get("format"),
            "width": width,
            "height": height,
            "bytes": result.get("bytes"),
            "aspectRatio": (width / height) if height else None,
            "isEquirectangular": is_equirectangular(width, height),
            "thumbnailUrl": self.transformation_url(full_public_id, width=400, height=200, crop="fill"),
            "mediumUrl": self.transformation_url(full_public_id, width=800, height=400, crop="fill"),
        }

    async def upload_generic(
        self,
        content: bytes,
        public_id: str,
        folder: str,
        tags: Optional[List[str]] = None,
        context: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Raw Cloudinary upload result for the /api/images endpoints."""
        options: Dict[str, Any] = {
            "public_id": public_id,
            "folder": folder,
            "resource_type": "image",
            "allowed_formats": ALLOWED_FORMATS,
        }
        if tags:
            options["tags"] = tags
        if context:
            options["context"] = context
        return await self._upload(content, "upload_generic", **options)

    # ── Lookup & maintenance ──────────────────────────────────────────────

    async def delete_image(self, public_id: str) -> bool:
        """Destroy an image. Raises NotFoundError when Cloudinary reports 'not found'."""
        result = await self._call(
            "delete_image",
            functools.partial(cloudinary.uploader.destroy, public_id, resource_type="image"),
            public_id,
        )
        outcome = result.get("result")
        if outcome == "not found":
            raise NotFoundError(resource="Image", resource_id=public_id, message="Image not found")
        logger.info("Deleted image %s: %s", public_id, outcome)
        return outcome == "ok"

    async def get_image_details(self, public_id: str) -> Dict[str, Any]:
        return await self._call(
            "get_image_details",
            functools.partial(cloudinary.api.resource, public_id),
            public_id,
        )

    async def list_images(
        self, max_results: int = 500, next_cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "type": "upload",
            "resource_type": "image",
            "max_results": max_results,
        }
        if next_cursor:
            options["next_cursor"] = next_cursor
        result = await self._call(
            "list_images", functools.partial(cloudinary.api.resources, **options)
        )
        return {
            "resources": result.get("resources", []),
            "nextCursor": result.get("next_cursor"),
        }

    async def images_by_folder(
        self, resource_type: str, user_id: str, max_results: int = 50
    ) -> List[Dict[str, Any]]:
        """Newest-first images a user uploaded for one resource type."""

        def search():
            return (
                Search()
                .expression(f"folder:{resource_type}/{user_id}")
                .sort_by("created_at", "desc")
                .max_results(max_results)
                .execute()
            )

        result = await self._call("images_by_folder", search)
        return result.get("resources", [])

    async def update_image_metadata(
        self,
        public_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        context = {}
        if title is not None:
            context["caption"] = title
        if description is not None:
            context["alt"] = description
        options: Dict[str, Any] = {"type": "upload"}
        if context:
            options["context"] = context
        if tags is not None:
            options["tags"] = tags
        return await self._call(
            "update_image_metadata",
            functools.partial(cloudinary.uploader.explicit, public_id, **options),
            public_id,
        )

    # ── URLs ──────────────────────────────────────────────────────────────

    def transformation_url(self, public_id: str, **options) -> str:
        """Delivery URL for a public id; defaults to auto:good JPEG."""
        options.setdefault("quality", "auto:good")
        options.setdefault("format", "jpg")
        url, _ = cloudinary.utils.cloudinary_url(public_id, secure=True, **options)
        return url

    def responsive_urls(self, public_id: str) -> Dict[str, str]:
        return {
            "thumbnail": self.transformation_url(public_id, width=400, height=200, crop="fill"),
            "small": self.transformation_url(public_id, width=800, height=400, crop="fill"),
            "medium": self.transformation_url(public_id, width=1600, height=800, crop="limit"),
            "large": self.transformation_url(
                public_id, width=PANORAMA_MAX_WIDTH, height=PANORAMA_MAX_HEIGHT, crop="limit"
            ),
            "original": cloudinary.utils.cloudinary_url(public_id, secure=True)[0],
        }

    # ── Health ────────────────────────────────────────────────────────────

    async def health_check(self) -> bool:
        try:
            await self._call("ping", cloudinary.api.ping)
            return True
        except CultureTourError as e:
            logger.warning("Cloudinary health check failed: %s", e.message)
            return False


# Singleton instance
media_service = MediaService()
