"""
CultureTour Backend — Post Service
===================================

What:  Panorama posts: create, feed, search, detail, update, delete.
How:   Validates the upload (FileService), pushes it to Cloudinary
       (MediaService), stores the post in Appwrite (DocumentStore) and
       joins author profiles (ProfileService) for list responses.
Who:   routes/posts.py; LikeService reuses serialize_post().

Stored post document:
    authorId, caption, imageUrl, imagePublicId,
    location        JSON string or null  ({name, city, country, lat, lng})
    tags            string[] (<= 10 tags, 1..50 chars each)
    isPublic, status ("published"),
    likesCount, commentsCount, viewsCount,
    imageMetadata   JSON string {width, height, format, size, aspectRatio,
                                 isEquirectangular, thumbnailUrl, mediumUrl}
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from appwrite.query import Query

from culturetour.exceptions import (
    CultureTourError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from culturetour.services.appwrite_service import document_store
from culturetour.services.cloudinary_service import media_service
from culturetour.services.file_service import file_service
from culturetour.services.profile_service import profile_service
from culturetour.services.serialization import (
    build_pagination,
    dump_json_field,
    normalize_tags,
    offset_for,
    parse_form_bool,
    parse_json_field,
    parse_json_input,
    parse_tags_param,
)

logger = logging.getLogger(__name__)

MAX_CAPTION_LENGTH = 2000
MAX_SEARCH_LIMIT = 50
SORT_OPTIONS = {"newest", "oldest", "popular"}
LOCATION_FILTERS = ("location", "city", "country")


def serialize_post(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a post document with its JSON string attributes decoded."""
    post = dict(doc)
    post["location"] = parse_json_field(doc.get("location"), None)
    post["imageMetadata"] = parse_json_field(doc.get("imageMetadata"), {})
    post["tags"] = doc.get("tags") or []
    return post


def validate_caption(caption: Any) -> str:
    if not isinstance(caption, str) or not caption.strip():
        raise ValidationError(message="Caption is required", field="caption")
    if len(caption) > MAX_CAPTION_LENGTH:
        raise ValidationError(
            message=f"Caption must be less than {MAX_CAPTION_LENGTH} characters",
            field="caption",
        )
    return caption.strip()


def location_matches(location: Any, filters: Dict[str, Optional[str]]) -> bool:
    """
    Case-insensitive substring match of the post location against the
    requested location (name), city and country.
    """
    active = {key: value for key, value in filters.items() if value}
    if not active:
        return True
    if not isinstance(location, dict):
        return False

    fields = {"location": "name", "city": "city", "country": "country"}
    for key, wanted in active.items():
        actual = location.get(fields[key])
        if not isinstance(actual, str) or wanted.casefold() not in actual.casefold():
            return False
    return True


class PostService:
    # ── Create ────────────────────────────────────────────────────────────

    async def create_post(
        self,
        user_id: str,
        caption: Optional[str],
        image_content: Optional[bytes],
        filename: Optional[str] = None,
        content_length: Optional[int] = None,
        location: Optional[str] = None,
        tags: Optional[str] = None,
        is_public: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Validate, upload and persist a panorama post.

        Args:
            location: JSON object string from the multipart form
            tags: JSON array or comma-separated list
            is_public: form boolean; defaults to public

        If the document write fails the uploaded image is destroyed again.
        """
        if not image_content:
            raise ValidationError(message="Panoramic image is required", field="image")
        caption_text = validate_caption(caption)

        location_obj = parse_json_input(location, "location")
        if location_obj is not None and not isinstance(location_obj, dict):
            raise ValidationError(message="Location must be a JSON object", field="location")
        tag_list = normalize_tags(parse_tags_param(tags))
        public = parse_form_bool(is_public, default=True)

        file_service.validate_panorama(filename, image_content, content_length, field="image")
        upload = await media_service.upload_panorama(image_content, user_id, filename)

        metadata = {
            "width": upload["width"],
            "height": upload["height"],
            "format": upload["format"],
            "size": upload["bytes"],
            "aspectRatio": upload["aspectRatio"],
            "isEquirectangular": upload["isEquirectangular"],
            "thumbnailUrl": upload["thumbnailUrl"],
            "mediumUrl": upload["mediumUrl"],
        }
        data = {
            "authorId": user_id,
            "caption": caption_text,
            "imageUrl": upload["url"],
            "imagePublicId": upload["publicId"],
            "location": dump_json_field(location_obj),
            "tags": tag_list,
            "isPublic": public,
            "status": "published",
            "likesCount": 0,
            "commentsCount": 0,
            "viewsCount": 0,
            "imageMetadata": dump_json_field(metadata),
        }

        try:
            doc = await document_store.create_document("posts", data)
        except CultureTourError:
            logger.error("Post write failed; removing uploaded image %s", upload["publicId"])
            try:
                await media_service.delete_image(upload["publicId"])
            except CultureTourError as cleanup_error:
                logger.warning("Image cleanup failed: %s", cleanup_error.message)
            raise

        logger.info("User %s created post %s", user_id, doc["$id"])
        return serialize_post(doc)

    # ── Read ──────────────────────────────────────────────────────────────

    async def _attach_authors(self, posts: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        authors = await profile_service.get_authors(post.get("authorId") for post in posts)
        for post in posts:
            post["author"] = authors.get(post.get("authorId"))
        return posts

    async def get_feed(
        self,
        viewer_id: Optional[str],
        page: int = 1,
        limit: int = 20,
        target_user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Newest published posts. With `target_user_id` the feed is that
        author's posts; private posts only appear on the author's own feed.
        """
        queries = [
            Query.equal("status", "published"),
            Query.order_desc("$createdAt"),
            Query.limit(limit),
            Query.offset(offset_for(page, limit)),
        ]
        if target_user_id:
            queries.append(Query.equal("authorId", target_user_id))
            if target_user_id != viewer_id:
                queries.append(Query.equal("isPublic", True))
        else:
            queries.append(Query.equal("isPublic", True))

        result = await document_store.list_documents("posts", queries)
        posts = await self._attach_authors([serialize_post(doc) for doc in result["documents"]])
        return {
            "posts": posts,
            "pagination": build_pagination(page, limit, result["total"]),
        }

    async def search_posts(
        self,
        page: int = 1,
        limit: int = 20,
        tags: Optional[str] = None,
        location: Optional[str] = None,
        city: Optional[str] = None,
        country: Optional[str] = None,
        sort_by: str = "newest",
    ) -> Dict[str, Any]:
        if sort_by not in SORT_OPTIONS:
            raise ValidationError(message="Sort by must be newest, oldest, or popular", field="sortBy")
        if limit < 1 or limit > MAX_SEARCH_LIMIT:
            raise ValidationError(message=f"Limit must be between 1 and {MAX_SEARCH_LIMIT}", field="limit")
        if page < 1:
            raise ValidationError(message="Page must be greater than 0", field="page")

        tag_list = parse_tags_param(tags)
        location_filters = {"location": location, "city": city, "country": country}
        if not tag_list and not any(location_filters.values()):
            raise ValidationError(
                message="At least one search parameter (tags, location, city, or country) is required"
            )

        queries = [
            Query.equal("status", "published"),
            Query.equal("isPublic", True),
            Query.limit(limit),
            Query.offset(offset_for(page, limit)),
        ]
        for tag in tag_list:
            queries.append(Query.contains("tags", tag))
        if sort_by == "oldest":
            queries.append(Query.order_asc("$createdAt"))
        elif sort_by == "popular":
            queries.append(Query.order_desc("likesCount"))
            queries.append(Query.order_desc("$createdAt"))
        else:
            queries.append(Query.order_desc("$createdAt"))

        result = await document_store.list_documents("posts", queries)
        posts = [serialize_post(doc) for doc in result["documents"]]

        total = result["total"]
        if any(location_filters.values()):
            # Location lives in a JSON string attribute, so it is filtered here
            posts = [post for post in posts if location_matches(post["location"], location_filters)]
            total = len(posts)

        posts = await self._attach_authors(posts)
        return {
            "posts": posts,
            "pagination": build_pagination(page, limit, total),
            "searchParams": {
                "tags": tag_list,
                "location": location,
                "city": city,
                "country": country,
                "sortBy": sort_by,
            },
        }

    async def get_post(self, post_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Post detail with author (including bio) and responsive image URLs.

        Private posts are reported as missing to anyone but their author.
        Each read increments viewsCount; a failed increment is only logged.
        """
        not_accessible = NotFoundError(
            resource="Post", resource_id=post_id, message="Post not found or not accessible"
        )
        try:
            doc = await document_store.get_document("posts", post_id)
        except NotFoundError:
            raise not_accessible
        if not doc.get("isPublic", True) and doc.get("authorId") != viewer_id:
            raise not_accessible

        views = (doc.get("viewsCount") or 0) + 1
        try:
            doc = await document_store.update_document("posts", post_id, {"viewsCount": views})
        except CultureTourError as e:
            logger.warning("Could not increment views for post %s: %s", post_id, e.message)

        author = await profile_service.get_author(doc["authorId"], include_bio=True)
        public_id = doc.get("imagePublicId")
        return {
            "post": serialize_post(doc),
            "author": author,
            "imageVariants": media_service.responsive_urls(public_id) if public_id else None,
        }

    # ── Update & delete ───────────────────────────────────────────────────

    async def _get_owned_post(self, post_id: str, user_id: str, action: str) -> Dict[str, Any]:
        post = await document_store.get_document("posts", post_id)
        if post.get("authorId") != user_id:
            raise PermissionDeniedError(
                message=f"Unauthorized: You can only {action} your own posts"
            )
        return post

    async def update_post(
        self, post_id: str, user_id: str, fields: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Apply the fields present in `fields` (caption, location, tags,
        is_public). Absent keys are left untouched.
        """
        await self._get_owned_post(post_id, user_id, "update")

        updates: Dict[str, Any] = {}
        if "caption" in fields:
            updates["caption"] = validate_caption(fields["caption"])
        if "location" in fields:
            updates["location"] = dump_json_field(fields["location"])
        if "tags" in fields:
            updates["tags"] = normalize_tags(fields["tags"] or [])
        if fields.get("is_public") is not None:
            updates["isPublic"] = bool(fields["is_public"])
        if not updates:
            raise ValidationError(message="No valid fields to update")

        doc = await document_store.update_document("posts", post_id, updates)
        logger.info("User %s updated post %s (%s)", user_id, post_id, ", ".join(sorted(updates)))
        return serialize_post(doc)

    async def delete_post(self, post_id: str, user_id: str) -> None:
        """Delete a post with its likes and comments, then its image."""
        post = await self._get_owned_post(post_id, user_id, "delete")

        likes, comments = await asyncio.gather(
            document_store.list_all_documents("post_likes", [Query.equal("postId", post_id)]),
            document_store.list_all_documents("post_comments", [Query.equal("postId", post_id)]),
        )
        await asyncio.gather(
            *(document_store.delete_document("post_likes", like["$id"]) for like in likes),
            *(document_store.delete_document("post_comments", c["$id"]) for c in comments),
        )
        await document_store.delete_document("posts", post_id)

        public_id = post.get("imagePublicId")
        if public_id:
            try:
                await media_service.delete_image(public_id)
            except CultureTourError as e:
                logger.warning("Could not delete image %s for post %s: %s", public_id, post_id, e.message)

        logger.info(
            "User %s deleted post %s (%d likes, %d comments)",
            user_id,
            post_id,
            len(likes),
            len(comments),
        )


# Singleton instance
post_service = PostService()
