"""
CultureTour Backend — Like Service
===================================

What:  Like toggling, like lookups and like statistics for posts.
How:   One `post_likes` document {postId, userId} per like; the post keeps
       a denormalized likesCount that is adjusted on every toggle and
       never drops below zero.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from appwrite.query import Query

from culturetour.exceptions import NotFoundError
from culturetour.services.appwrite_service import document_store
from culturetour.services.post_service import serialize_post
from culturetour.services.profile_service import profile_service
from culturetour.services.serialization import build_pagination, offset_for

logger = logging.getLogger(__name__)

RECENT_LIKES = 5


class LikeService:
    async def _find_like(self, post_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return await document_store.find_one(
            "post_likes",
            [Query.equal("postId", post_id), Query.equal("userId", user_id)],
        )

    async def toggle_like(self, post_id: str, user_id: str) -> Dict[str, Any]:
        post = await document_store.get_document("posts", post_id)
        existing = await self._find_like(post_id, user_id)
        likes_count = post.get("likesCount") or 0

        if existing:
            await document_store.delete_document("post_likes", existing["$id"])
            likes_count = max(0, likes_count - 1)
            is_liked = False
        else:
            await document_store.create_document("post_likes", {"postId": post_id, "userId": user_id})
            likes_count += 1
            is_liked = True

        await document_store.update_document("posts", post_id, {"likesCount": likes_count})
        logger.info("User %s %s post %s", user_id, "liked" if is_liked else "unliked", post_id)
        return {
            "isLiked": is_liked,
            "likesCount": likes_count,
            "postId": post_id,
            "userId": user_id,
        }

    async def check_user_like(self, post_id: str, user_id: Optional[str]) -> Dict[str, Any]:
        is_liked = False
        if user_id:
            is_liked = await self._find_like(post_id, user_id) is not None
        return {"isLiked": is_liked, "postId": post_id, "userId": user_id}

    async def get_post_likes(self, post_id: str, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        await document_store.get_document("posts", post_id)
        result = await document_store.list_documents(
            "post_likes",
            [
                Query.equal("postId", post_id),
                Query.order_desc("$createdAt"),
                Query.limit(limit),
                Query.offset(offset_for(page, limit)),
            ],
        )
        likes = result["documents"]
        users = await profile_service.get_authors(like["userId"] for like in likes)
        return {
            "likes": [
                {
                    "likeId": like["$id"],
                    "likedAt": like.get("$createdAt"),
                    "user": users.get(like["userId"]),
                }
                for like in likes
            ],
            "pagination": build_pagination(page, limit, result["total"]),
        }

    async def _liked_post(self, like: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            doc = await document_store.get_document("posts", like["postId"])
        except NotFoundError:
            return None
        return serialize_post(doc)

    async def get_user_likes(self, user_id: str, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """Posts a user liked, newest like first; deleted posts are skipped."""
        result = await document_store.list_documents(
            "post_likes",
            [
                Query.equal("userId", user_id),
                Query.order_desc("$createdAt"),
                Query.limit(limit),
                Query.offset(offset_for(page, limit)),
            ],
        )
        likes = result["documents"]
        posts = await asyncio.gather(*(self._liked_post(like) for like in likes))
        authors = await profile_service.get_authors(
            post["authorId"] for post in posts if post is not None
        )

        liked_posts = []
        for like, post in zip(likes, posts):
            if post is None:
                continue
            post["author"] = authors.get(post["authorId"])
            liked_posts.append({"likedAt": like.get("$createdAt"), "post": post})

        return {
            "likedPosts": liked_posts,
            "pagination": build_pagination(page, limit, result["total"]),
        }

    async def get_like_stats(self, post_id: str) -> Dict[str, Any]:
        result = await document_store.list_documents(
            "post_likes",
            [
                Query.equal("postId", post_id),
                Query.order_desc("$createdAt"),
                Query.limit(RECENT_LIKES),
            ],
        )
        recent = result["documents"]
        users = await profile_service.get_authors(
            (like["userId"] for like in recent), include_email=False
        )
        return {
            "postId": post_id,
            "totalLikes": result["total"],
            "recentLikes": [
                {"likedAt": like.get("$createdAt"), "user": users.get(like["userId"])}
                for like in recent
            ],
        }


# Singleton instance
like_service = LikeService()
