"""
CultureTour Backend — Comment Service Tests
============================================

What we test:
    ✅ Content validation (required, <= 1000 chars)
    ✅ Replies bump the parent's repliesCount and the post's commentsCount
    ✅ Parent comment must belong to the same post
    ✅ Listing embeds replies only when asked
    ✅ Ownership on update/delete; delete removes the whole thread
"""

from unittest.mock import AsyncMock, patch

import pytest
from appwrite.query import Query

from culturetour.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from culturetour.services.comment_service import CommentService, validate_content

AUTHOR = {"id": "user-1", "name": "Ada", "email": "ada@example.com"}


@pytest.fixture
def profiles():
    profiles = AsyncMock()
    profiles.get_author.return_value = AUTHOR
    profiles.get_authors.return_value = {"user-1": AUTHOR}
    return profiles


@pytest.fixture
def service(mock_store, profiles):
    with patch("culturetour.services.comment_service.document_store", mock_store), \
         patch("culturetour.services.comment_service.profile_service", profiles):
        yield CommentService()


def comment(comment_id, post_id="post-1", author="user-1", parent=None, replies=0):
    return {
        "$id": comment_id,
        "postId": post_id,
        "authorId": author,
        "content": f"comment {comment_id}",
        "isEdited": False,
        "parentCommentId": parent,
        "repliesCount": replies,
    }


class TestValidateContent:
    def test_strips(self):
        assert validate_content("  Lovely light  ") == "Lovely light"

    def test_empty(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_content("   ")
        assert exc_info.value.message == "Comment content is required"

    def test_too_long(self):
        with pytest.raises(ValidationError):
            validate_content("x" * 1001)


class TestAddComment:
    @pytest.mark.asyncio
    async def test_top_level(self, service, mock_store):
        mock_store.get_document.return_value = {"$id": "post-1", "commentsCount": 4}
        mock_store.create_document.return_value = comment("c-1")

        result = await service.add_comment("post-1", "user-1", "Lovely light")

        data = mock_store.create_document.call_args[0][1]
        assert data["parentCommentId"] is None
        assert data["content"] == "Lovely light"
        mock_store.update_document.assert_awaited_once_with("posts", "post-1", {"commentsCount": 5})
        assert result["author"] == AUTHOR

    @pytest.mark.asyncio
    async def test_reply_updates_parent(self, service, mock_store):
        async def get_document(collection, document_id):
            if collection == "posts":
                return {"$id": "post-1", "commentsCount": 1}
            return comment("c-1", replies=2)

        mock_store.get_document.side_effect = get_document
        mock_store.create_document.return_value = comment("c-2", parent="c-1")

        await service.add_comment("post-1", "user-1", "Agreed", parent_comment_id="c-1")

        mock_store.update_document.assert_any_await("post_comments", "c-1", {"repliesCount": 3})

    @pytest.mark.asyncio
    async def test_parent_on_other_post(self, service, mock_store):
        async def get_document(collection, document_id):
            if collection == "posts":
                return {"$id": "post-1"}
            return comment("c-1", post_id="post-2")

        mock_store.get_document.side_effect = get_document
        with pytest.raises(ValidationError) as exc_info:
            await service.add_comment("post-1", "user-1", "Agreed", parent_comment_id="c-1")
        assert exc_info.value.message == "Parent comment does not belong to this post"

    @pytest.mark.asyncio
    async def test_missing_parent(self, service, mock_store):
        async def get_document(collection, document_id):
            if collection == "posts":
                return {"$id": "post-1"}
            raise NotFoundError(resource="Document", resource_id=document_id)

        mock_store.get_document.side_effect = get_document
        with pytest.raises(NotFoundError) as exc_info:
            await service.add_comment("post-1", "user-1", "Agreed", parent_comment_id="nope")
        assert exc_info.value.message == "Parent comment not found"


class TestListComments:
    @pytest.mark.asyncio
    async def test_top_level_only(self, service, mock_store):
        mock_store.get_document.return_value = {"$id": "post-1"}
        mock_store.list_documents.return_value = {"total": 1, "documents": [comment("c-1", replies=2)]}

        result = await service.get_post_comments("post-1")

        queries = mock_store.list_documents.call_args[0][1]
        assert Query.is_null("parentCommentId") in queries
        assert "replies" not in result["comments"][0]
        assert result["comments"][0]["author"] == AUTHOR

    @pytest.mark.asyncio
    async def test_include_replies(self, service, mock_store):
        mock_store.get_document.return_value = {"$id": "post-1"}
        mock_store.list_documents.side_effect = [
            {"total": 2, "documents": [comment("c-1", replies=1), comment("c-2")]},
            {"total": 1, "documents": [comment("c-3", parent="c-1")]},
        ]

        result = await service.get_post_comments("post-1", include_replies=True)

        first, second = result["comments"]
        assert [reply["$id"] for reply in first["replies"]] == ["c-3"]
        assert "replies" not in second

    @pytest.mark.asyncio
    async def test_replies_of_comment_on_other_post(self, service, mock_store):
        mock_store.get_document.return_value = comment("c-1", post_id="post-2")
        with pytest.raises(NotFoundError):
            await service.get_comment_replies("post-1", "c-1")


class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_update_marks_edited(self, service, mock_store):
        mock_store.get_document.return_value = comment("c-1")
        mock_store.update_document.return_value = {**comment("c-1"), "content": "Edited", "isEdited": True}

        result = await service.update_comment("post-1", "c-1", "user-1", "Edited")

        mock_store.update_document.assert_awaited_once_with(
            "post_comments", "c-1", {"content": "Edited", "isEdited": True}
        )
        assert result["isEdited"] is True

    @pytest.mark.asyncio
    async def test_update_other_users_comment(self, service, mock_store):
        mock_store.get_document.return_value = comment("c-1", author="user-2")
        with pytest.raises(PermissionDeniedError):
            await service.update_comment("post-1", "c-1", "user-1", "Edited")

    @pytest.mark.asyncio
    async def test_delete_thread(self, service, mock_store):
        docs = {
            ("post_comments", "c-1"): comment("c-1", replies=1),
            ("posts", "post-1"): {"$id": "post-1", "commentsCount": 5},
        }
        mock_store.get_document.side_effect = lambda collection, document_id: docs[(collection, document_id)]
        mock_store.list_all_documents.side_effect = [
            [comment("c-2", parent="c-1", replies=1)],
            [comment("c-3", parent="c-2")],
        ]

        result = await service.delete_comment("post-1", "c-1", "user-1")

        assert result == {"deletedCount": 3}
        deleted = {c.args[1] for c in mock_store.delete_document.await_args_list}
        assert deleted == {"c-1", "c-2", "c-3"}
        mock_store.update_document.assert_awaited_once_with("posts", "post-1", {"commentsCount": 2})

    @pytest.mark.asyncio
    async def test_delete_reply_decrements_parent(self, service, mock_store):
        docs = {
            ("post_comments", "c-2"): comment("c-2", parent="c-1"),
            ("post_comments", "c-1"): comment("c-1", replies=1),
            ("posts", "post-1"): {"$id": "post-1", "commentsCount": 2},
        }
        mock_store.get_document.side_effect = lambda collection, document_id: docs[(collection, document_id)]

        await service.delete_comment("post-1", "c-2", "user-1")

        mock_store.update_document.assert_any_await("posts", "post-1", {"commentsCount": 1})
        mock_store.update_document.assert_any_await("post_comments", "c-1", {"repliesCount": 0})
