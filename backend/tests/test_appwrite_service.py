"""
CultureTour Backend — Appwrite Gateway Tests
=============================================

What we test:
    ✅ Appwrite error codes become our exceptions (404/409/401/400)
    ✅ 5xx and transport errors become UpstreamServiceError and trip the breaker
    ✅ Client errors never trip the breaker
    ✅ list_all_documents pages until a short page
    ✅ Logical collection names resolve to configured IDs
    ✅ A create retried after a lost response returns the committed record

The SDK service objects are replaced by MagicMocks on a fresh DocumentStore.
"""

from unittest.mock import MagicMock

import pytest
from appwrite.exception import AppwriteException
from appwrite.query import Query

from culturetour.config import settings
from culturetour.exceptions import (
    AuthenticationError,
    CircuitBreakerOpenError,
    ConflictError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from culturetour.services.appwrite_service import DocumentStore, is_transient


@pytest.fixture
def store():
    store = DocumentStore(client=MagicMock(), guest_client=MagicMock(), database_id="db-test")
    store.databases = MagicMock()
    store.users = MagicMock()
    store.account = MagicMock()
    return store


class TestTransientClassification:
    @pytest.mark.parametrize("code", [None, 0, 429, 500, 503])
    def test_transient_codes(self, code):
        assert is_transient(AppwriteException("boom", code)) is True

    @pytest.mark.parametrize("code", [400, 401, 404, 409])
    def test_client_codes_not_transient(self, code):
        assert is_transient(AppwriteException("nope", code)) is False

    def test_connection_error_is_transient(self):
        assert is_transient(ConnectionError("reset")) is True


class TestErrorTranslation:
    @pytest.mark.asyncio
    async def test_missing_document(self, store):
        store.databases.get_document.side_effect = AppwriteException("Document not found", 404)
        with pytest.raises(NotFoundError) as exc_info:
            await store.get_document("posts", "post-404")
        assert exc_info.value.message == "Post not found"
        assert exc_info.value.context["resource_id"] == "post-404"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code, expected",
        [(409, ConflictError), (401, AuthenticationError), (400, ValidationError)],
    )
    async def test_client_errors(self, store, code, expected):
        store.databases.create_document.side_effect = AppwriteException("rejected", code)
        store.databases.get_document.side_effect = AppwriteException("Document not found", 404)
        with pytest.raises(expected):
            await store.create_document("posts", {"caption": "x"})
        assert store.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_server_error_becomes_upstream_error(self, store):
        store.databases.list_documents.side_effect = AppwriteException("Internal error", 500)
        with pytest.raises(UpstreamServiceError):
            await store.list_documents("posts", [])
        assert store.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_breaker_opens_after_repeated_failures(self, store):
        store.databases.get_document.side_effect = ConnectionError("unreachable")
        for _ in range(settings.cb_failure_threshold):
            with pytest.raises(UpstreamServiceError):
                await store.get_document("tours", "tour-1")
        with pytest.raises(CircuitBreakerOpenError):
            await store.get_document("tours", "tour-1")
        assert store.databases.get_document.call_count == settings.cb_failure_threshold


class TestDocuments:
    @pytest.mark.asyncio
    async def test_collection_id_resolved(self, store):
        store.databases.get_document.return_value = {"$id": "tour-1"}
        await store.get_document("tours", "tour-1")
        store.databases.get_document.assert_called_once_with(
            "db-test", settings.tours_collection_id, "tour-1"
        )

    @pytest.mark.asyncio
    async def test_list_documents_shape(self, store):
        store.databases.list_documents.return_value = {"total": 7, "documents": [{"$id": "a"}]}
        result = await store.list_documents("posts", [Query.limit(1)])
        assert result == {"total": 7, "documents": [{"$id": "a"}]}

    @pytest.mark.asyncio
    async def test_list_all_documents_pages_through(self, store):
        first = [{"$id": f"like-{i}"} for i in range(100)]
        second = [{"$id": f"like-{i}"} for i in range(100, 120)]
        store.databases.list_documents.side_effect = [
            {"total": 120, "documents": first},
            {"total": 120, "documents": second},
        ]
        documents = await store.list_all_documents("post_likes", [Query.equal("postId", "post-1")])

        assert len(documents) == 120
        assert store.databases.list_documents.call_count == 2
        second_queries = store.databases.list_documents.call_args_list[1][0][2]
        assert Query.offset(100) in second_queries
        assert Query.equal("postId", "post-1") in second_queries

    @pytest.mark.asyncio
    async def test_find_one_none_when_empty(self, store):
        store.databases.list_documents.return_value = {"total": 0, "documents": []}
        assert await store.find_one("users", [Query.equal("userId", "u")]) is None

    @pytest.mark.asyncio
    async def test_list_sessions_unwraps(self, store):
        store.users.list_sessions.return_value = {"total": 1, "sessions": [{"$id": "s1"}]}
        assert await store.list_sessions("user-1") == [{"$id": "s1"}]

    @pytest.mark.asyncio
    async def test_health_check_false_on_failure(self, store):
        store.databases.get.side_effect = AppwriteException("down", 503)
        assert await store.health_check() is False


class TestCreateAfterLostResponse:
    """
    A create whose first response was lost is retried with the same id and
    answered with 409; the earlier commit is returned instead of a conflict.
    """

    @pytest.mark.asyncio
    async def test_document_already_committed(self, store):
        store.databases.create_document.side_effect = AppwriteException(
            "Document with the requested ID already exists", 409
        )
        store.databases.get_document.side_effect = lambda db, collection, doc_id: {
            "$id": doc_id,
            "caption": "x",
        }

        doc = await store.create_document("posts", {"caption": "x"})

        created_id = store.databases.create_document.call_args[0][2]
        assert doc == {"$id": created_id, "caption": "x"}
        store.databases.get_document.assert_called_once_with(
            "db-test", settings.posts_collection_id, created_id
        )

    @pytest.mark.asyncio
    async def test_explicit_id_conflict_is_raised(self, store):
        store.databases.create_document.side_effect = AppwriteException("exists", 409)
        with pytest.raises(ConflictError):
            await store.create_document("posts", {"caption": "x"}, document_id="post-1")
        store.databases.get_document.assert_not_called()

    @pytest.mark.asyncio
    async def test_user_already_committed(self, store):
        store.users.create.side_effect = AppwriteException("A user with the same id already exists", 409)
        store.users.get.side_effect = lambda user_id: {"$id": user_id, "email": "ada@example.com"}

        user = await store.create_user("ada@example.com", "s3cret-pass", "Ada")

        assert user["$id"] == store.users.create.call_args[0][0]

    @pytest.mark.asyncio
    async def test_duplicate_email_still_conflicts(self, store):
        store.users.create.side_effect = AppwriteException("A user with the same email already exists", 409)
        store.users.get.side_effect = AppwriteException("User not found", 404)
        with pytest.raises(ConflictError):
            await store.create_user("ada@example.com", "s3cret-pass", "Ada")


def test_unknown_collection_name():
    with pytest.raises(KeyError):
        settings.collection_id("notes")
