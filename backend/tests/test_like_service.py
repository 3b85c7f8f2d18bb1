"""
CultureTour Backend — Like Service Tests
=========================================

What we test:
    ✅ Toggle creates/removes the like and adjusts likesCount
    ✅ likesCount never drops below zero
    ✅ Anonymous like check is always false
    ✅ Liked-posts list skips deleted posts
    ✅ Stats report total and recent likers without emails
"""

from unittest.mock import AsyncMock, patch

import pytest

from culturetour.exceptions import NotFoundError
from culturetour.services.like_service import LikeService


@pytest.fixture
def profiles():
    profiles = AsyncMock()
    profiles.get_authors.return_value = {
        "user-1": {"id": "user-1", "name": "Ada"},
        "user-2": {"id": "user-2", "name": "Grace"},
    }
    return profiles


@pytest.fixture
def service(mock_store, profiles):
    with patch("culturetour.services.like_service.document_store", mock_store), \
         patch("culturetour.services.like_service.profile_service", profiles):
        yield LikeService()


class TestToggleLike:
    @pytest.mark.asyncio
    async def test_like(self, service, mock_store):
        mock_store.get_document.return_value = {"$id": "post-1", "likesCount": 2}

        result = await service.toggle_like("post-1", "user-1")

        assert result == {"isLiked": True, "likesCount": 3, "postId": "post-1", "userId": "user-1"}
        mock_store.create_document.assert_awaited_once_with(
            "post_likes", {"postId": "post-1", "userId": "user-1"}
        )
        mock_store.update_document.assert_awaited_once_with("posts", "post-1", {"likesCount": 3})

    @pytest.mark.asyncio
    async def test_unlike(self, service, mock_store):
        mock_store.get_document.return_value = {"$id": "post-1", "likesCount": 3}
        mock_store.find_one.return_value = {"$id": "like-7", "postId": "post-1", "userId": "user-1"}

        result = await service.toggle_like("post-1", "user-1")

        assert result["isLiked"] is False
        assert result["likesCount"] == 2
        mock_store.delete_document.assert_awaited_once_with("post_likes", "like-7")

    @pytest.mark.asyncio
    async def test_count_never_negative(self, service, mock_store):
        mock_store.get_document.return_value = {"$id": "post-1", "likesCount": 0}
        mock_store.find_one.return_value = {"$id": "like-7"}

        result = await service.toggle_like("post-1", "user-1")

        assert result["likesCount"] == 0

    @pytest.mark.asyncio
    async def test_missing_post(self, service, mock_store):
        mock_store.get_document.side_effect = NotFoundError(resource="Document", resource_id="post-1")
        with pytest.raises(NotFoundError):
            await service.toggle_like("post-1", "user-1")
        mock_store.create_document.assert_not_awaited()


class TestLookups:
    @pytest.mark.asyncio
    async def test_anonymous_check(self, service, mock_store):
        result = await service.check_user_like("post-1", None)
        assert result == {"isLiked": False, "postId": "post-1", "userId": None}
        mock_store.find_one.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_check_existing_like(self, service, mock_store):
        mock_store.find_one.return_value = {"$id": "like-7"}
        result = await service.check_user_like("post-1", "user-1")
        assert result["isLiked"] is True

    @pytest.mark.asyncio
    async def test_post_likes_join_users(self, service, mock_store):
        mock_store.get_document.return_value = {"$id": "post-1"}
        mock_store.list_documents.return_value = {
            "total": 1,
            "documents": [{"$id": "like-1", "userId": "user-2", "$createdAt": "2026-01-01T00:00:00Z"}],
        }

        result = await service.get_post_likes("post-1")

        assert result["likes"] == [
            {"likeId": "like-1", "likedAt": "2026-01-01T00:00:00Z", "user": {"id": "user-2", "name": "Grace"}}
        ]
        assert result["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_user_likes_skip_deleted_posts(self, service, mock_store):
        mock_store.list_documents.return_value = {
            "total": 2,
            "documents": [
                {"$id": "like-1", "postId": "post-1", "userId": "user-2"},
                {"$id": "like-2", "postId": "gone", "userId": "user-2"},
            ],
        }

        async def get_document(collection, document_id):
            if document_id == "gone":
                raise NotFoundError(resource="Document", resource_id=document_id)
            return {"$id": document_id, "authorId": "user-1", "location": None}

        mock_store.get_document.side_effect = get_document

        result = await service.get_user_likes("user-2")

        assert len(result["likedPosts"]) == 1
        liked = result["likedPosts"][0]["post"]
        assert liked["$id"] == "post-1"
        assert liked["author"] == {"id": "user-1", "name": "Ada"}

    @pytest.mark.asyncio
    async def test_stats(self, service, mock_store, profiles):
        mock_store.list_documents.return_value = {
            "total": 12,
            "documents": [{"$id": "like-1", "userId": "user-1", "$createdAt": "2026-01-01T00:00:00Z"}],
        }

        result = await service.get_like_stats("post-1")

        assert result["totalLikes"] == 12
        assert result["recentLikes"][0]["user"]["name"] == "Ada"
        assert profiles.get_authors.call_args.kwargs == {"include_email": False}
