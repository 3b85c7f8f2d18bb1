"""
CultureTour Backend — Comment Service
======================================

What:  Threaded comments on posts.
How:   `post_comments` documents {postId, authorId, content, isEdited,
       parentCommentId, repliesCount}. Top-level comments have a null
       parentCommentId. The post keeps commentsCount and every comment keeps
       repliesCount; both are adjusted on create/delete and floored at 0.

Deleting a comment removes its whole reply thread.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from appwrite.query import Query

from culturetour.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from culturetour.services.appwrite_service import document_store
from culturetour.services.profile_service import profile_service
from culturetour.services.serialization import build_pagination, offset_for

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 1000
EMBEDDED_REPLIES = 5


def validate_content(content: Any) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError(message="Comment content is required", field="content")
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            message=f"Comment must be less than {MAX_CONTENT_LENGTH} characters",
            field="content",
        )
    return content.strip()


class CommentService:
    async def _with_authors(self, comments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        authors = await profile_service.get_authors(c.get("authorId") for c in comments)
        result = []
        for comment in comments:
            item = dict(comment)
            item["author"] = authors.get(comment.get("authorId"))
            result.append(item)
        return result

    async def _get_post_comment(self, post_id: str, comment_id: str) -> Dict[str, Any]:
        comment = await document_store.get_document("post_comments", comment_id)
        if comment.get("postId") != post_id:
            raise NotFoundError(resource="Comment", resource_id=comment_id, message="Comment not found")
        return comment

    async def _adjust_counter(self, collection: str, document_id: str, field: str, delta: int) -> None:
        try:
            doc = await document_store.get_document(collection, document_id)
        except NotFoundError:
            logger.warning("Cannot adjust %s on missing %s %s", field, collection, document_id)
            return
        value = max(0, (doc.get(field) or 0) + delta)
        await document_store.update_document(collection, document_id, {field: value})

    # ── Create ────────────────────────────────────────────────────────────

    async def add_comment(
        self,
        post_id: str,
        user_id: str,
        content: Optional[str],
        parent_comment_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        text = validate_content(content)
        post = await document_store.get_document("posts", post_id)

        parent = None
        if parent_comment_id:
            try:
                parent = await document_store.get_document("post_comments", parent_comment_id)
            except NotFoundError:
                raise NotFoundError(
                    resource="Comment",
                    resource_id=parent_comment_id,
                    message="Parent comment not found",
                )
            if parent.get("postId") != post_id:
                raise ValidationError(
                    message="Parent comment does not belong to this post",
                    field="parentCommentId",
                )

        comment = await document_store.create_document(
            "post_comments",
            {
                "postId": post_id,
                "authorId": user_id,
                "content": text,
                "isEdited": False,
                "parentCommentId": parent_comment_id or None,
                "repliesCount": 0,
            },
        )

        await document_store.update_document(
            "posts", post_id, {"commentsCount": (post.get("commentsCount") or 0) + 1}
        )
        if parent is not None:
            await document_store.update_document(
                "post_comments",
                parent["$id"],
                {"repliesCount": (parent.get("repliesCount") or 0) + 1},
            )

        logger.info("User %s commented on post %s (%s)", user_id, post_id, comment["$id"])
        result = dict(comment)
        result["author"] = await profile_service.get_author(user_id)
        return result

    # ── Read ──────────────────────────────────────────────────────────────

    async def _replies(
        self, comment_id: str, limit: int, offset: int = 0
    ) -> Dict[str, Any]:
        return await document_store.list_documents(
            "post_comments",
            [
                Query.equal("parentCommentId", comment_id),
                Query.order_asc("$createdAt"),
                Query.limit(limit),
                Query.offset(offset),
            ],
        )

    async def get_post_comments(
        self,
        post_id: str,
        page: int = 1,
        limit: int = 20,
        include_replies: bool = False,
    ) -> Dict[str, Any]:
        """
        Top-level comments, oldest first. With include_replies every comment
        that has replies embeds its first few replies under "replies".
        """
        await document_store.get_document("posts", post_id)
        result = await document_store.list_documents(
            "post_comments",
            [
                Query.equal("postId", post_id),
                Query.is_null("parentCommentId"),
                Query.order_asc("$createdAt"),
                Query.limit(limit),
                Query.offset(offset_for(page, limit)),
            ],
        )
        comments = await self._with_authors(result["documents"])

        if include_replies:
            threaded = [c for c in comments if (c.get("repliesCount") or 0) > 0]
            pages = await asyncio.gather(
                *(self._replies(c["$id"], EMBEDDED_REPLIES) for c in threaded)
            )
            for comment, replies in zip(threaded, pages):
                comment["replies"] = await self._with_authors(replies["documents"])

        return {
            "comments": comments,
            "pagination": build_pagination(page, limit, result["total"]),
        }

    async def get_comment_replies(
        self, post_id: str, comment_id: str, page: int = 1, limit: int = 10
    ) -> Dict[str, Any]:
        await self._get_post_comment(post_id, comment_id)
        result = await self._replies(comment_id, limit, offset_for(page, limit))
        return {
            "replies": await self._with_authors(result["documents"]),
            "pagination": build_pagination(page, limit, result["total"]),
        }

    # ── Update & delete ───────────────────────────────────────────────────

    async def update_comment(
        self, post_id: str, comment_id: str, user_id: str, content: Optional[str]
    ) -> Dict[str, Any]:
        comment = await self._get_post_comment(post_id, comment_id)
        if comment.get("authorId") != user_id:
            raise PermissionDeniedError(message="Unauthorized: You can only update your own comments")

        text = validate_content(content)
        updated = await document_store.update_document(
            "post_comments", comment_id, {"content": text, "isEdited": True}
        )
        result = dict(updated)
        result["author"] = await profile_service.get_author(user_id)
        return result

    async def _collect_thread(self, comment_id: str) -> List[str]:
        """Ids of every reply below a comment, depth first."""
        replies = await document_store.list_all_documents(
            "post_comments", [Query.equal("parentCommentId", comment_id)]
        )
        ids: List[str] = []
        for reply in replies:
            ids.append(reply["$id"])
            if (reply.get("repliesCount") or 0) > 0:
                ids.extend(await self._collect_thread(reply["$id"]))
        return ids

    async def delete_comment(self, post_id: str, comment_id: str, user_id: str) -> Dict[str, Any]:
        comment = await self._get_post_comment(post_id, comment_id)
        if comment.get("authorId") != user_id:
            raise PermissionDeniedError(message="Unauthorized: You can only delete your own comments")

        thread = await self._collect_thread(comment_id)
        await asyncio.gather(
            *(document_store.delete_document("post_comments", reply_id) for reply_id in thread)
        )
        await document_store.delete_document("post_comments", comment_id)

        removed = 1 + len(thread)
        await self._adjust_counter("posts", post_id, "commentsCount", -removed)
        parent_id = comment.get("parentCommentId")
        if parent_id:
            await self._adjust_counter("post_comments", parent_id, "repliesCount", -1)

        logger.info("User %s deleted comment %s (%d documents)", user_id, comment_id, removed)
        return {"deletedCount": removed}


# Singleton instance
comment_service = CommentService()
