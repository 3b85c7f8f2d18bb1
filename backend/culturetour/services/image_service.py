"""
CultureTour Backend — Image Library Service
============================================

What:  Generic image uploads and Cloudinary library management for
       /api/images (single and multi upload, listing, lookup, metadata,
       deletion).
How:   Uploads land in settings.cloudinary_upload_folder with a generated
       public id `upload_{millis}_{random}`; title and description are kept
       in the Cloudinary context (caption / alt).
"""

import asyncio
import logging
import secrets
import time
from typing import Any, Dict, List, Optional

from culturetour.config import settings
from culturetour.exceptions import ValidationError
from culturetour.services.cloudinary_service import media_service
from culturetour.services.file_service import ImageUpload, file_service

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Image"


def generate_public_id() -> str:
    return f"upload_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def split_tags(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [tag.strip() for tag in value.split(",") if tag.strip()]


class ImageService:
    async def upload_image(
        self,
        image: Optional[ImageUpload],
        title: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[str] = None,
    ) -> Dict[str, Any]:
        if image is None:
            raise ValidationError(message="No image file provided.", field="image")
        file_service.validate_image(image.filename, image.content, image.content_length, field="image")

        title = title or DEFAULT_TITLE
        description = description or ""
        tag_list = split_tags(tags)
        context = {"caption": title}
        if description:
            context["alt"] = description

        result = await media_service.upload_generic(
            image.content,
            public_id=generate_public_id(),
            folder=settings.cloudinary_upload_folder,
            tags=tag_list,
            context=context,
        )
        logger.info("Uploaded library image %s (%s bytes)", result.get("public_id"), result.get("bytes"))
        return {
            "public_id": result.get("public_id"),
            "secure_url": result.get("secure_url"),
            "original_filename": image.filename,
            "format": result.get("format"),
            "bytes": result.get("bytes"),
            "width": result.get("width"),
            "height": result.get("height"),
            "title": title,
            "description": description,
            "tags": tag_list,
        }

    async def upload_multiple(
        self,
        images: List[ImageUpload],
        title: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        if not images:
            raise ValidationError(message="No image files provided.", field="images")
        if len(images) > settings.max_multi_upload:
            raise ValidationError(
                message=f"You can upload at most {settings.max_multi_upload} images at once",
                field="images",
            )
        # Validate everything before the first upload so a bad file uploads nothing
        for image in images:
            file_service.validate_image(image.filename, image.content, image.content_length, field="images")
        return list(
            await asyncio.gather(
                *(self.upload_image(image, title, description, tags) for image in images)
            )
        )

    async def list_images(self, next_cursor: Optional[str] = None) -> Dict[str, Any]:
        return await media_service.list_images(max_results=500, next_cursor=next_cursor)

    async def images_by_folder(self, resource_type: str, user_id: str) -> List[Dict[str, Any]]:
        if not resource_type or not user_id:
            raise ValidationError(message="resourceType and userId are required")
        return await media_service.images_by_folder(resource_type, user_id)

    async def get_image(self, public_id: str) -> Dict[str, Any]:
        return await media_service.get_image_details(public_id)

    async def update_image(
        self,
        public_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[str] = None,
    ) -> Dict[str, Any]:
        if title is None and description is None and tags is None:
            raise ValidationError(message="No valid fields to update")
        return await media_service.update_image_metadata(
            public_id,
            title=title,
            description=description,
            tags=split_tags(tags) if tags is not None else None,
        )

    async def delete_image(self, public_id: str) -> None:
        await media_service.delete_image(public_id)


# Singleton instance
image_service = ImageService()
