"""
CultureTour Backend — Appwrite Document Store Gateway
======================================================

What:  The only module that talks to Appwrite (documents, users, sessions,
       account recovery).
How:   Wraps the synchronous Appwrite SDK. Every call
         1. passes the circuit breaker,
         2. runs in a worker thread (run_in_threadpool),
         3. is retried by tenacity on transient failures,
         4. has AppwriteException translated into our exception hierarchy.
Who:   Services import the `document_store` singleton; tests patch it.

Collections are addressed by logical name ("posts", "post_likes", ...) and
resolved to Appwrite IDs through `settings.collection_id()`.

Error Translation:
    AppwriteException.code  →  raised as
    ─────────────────────────────────────────
    404                     →  NotFoundError
    409                     →  ConflictError
    401                     →  AuthenticationError
    400                     →  ValidationError
    429, 5xx, no code       →  UpstreamServiceError (after retries; trips breaker)
"""

import functools
import logging
from typing import Any, Callable, Dict, List, Optional

from appwrite.client import Client
from appwrite.exception import AppwriteException
from appwrite.id import ID
from appwrite.query import Query
from appwrite.services.account import Account
from appwrite.services.databases import Databases
from appwrite.services.users import Users
from starlette.concurrency import run_in_threadpool
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from culturetour.config import settings
from culturetour.exceptions import (
    AuthenticationError,
    ConflictError,
    CultureTourError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from culturetour.services.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

RESOURCE_LABELS = {
    "users": "User",
    "posts": "Post",
    "post_likes": "Like",
    "post_comments": "Comment",
    "tours": "Tour",
    "scenes": "Scene",
    "hotspots": "Hotspot",
}


def is_transient(exc: BaseException) -> bool:
    """True for failures worth retrying: transport errors, throttling and 5xx."""
    if isinstance(exc, AppwriteException):
        code = exc.code or 0
        return code == 0 or code == 429 or code >= 500
    return isinstance(exc, (ConnectionError, TimeoutError))


def build_client(with_key: bool = True) -> Client:
    """Appwrite client from settings; the guest client carries no API key."""
    client = Client()
    client.set_endpoint(settings.appwrite_endpoint)
    client.set_project(settings.appwrite_project_id)
    if with_key and settings.appwrite_api_key:
        client.set_key(settings.appwrite_api_key)
    return client


class DocumentStore:
    """
    Async facade over the Appwrite Databases, Users and Account services.

    Documents come back as plain dicts exactly as Appwrite returns them
    (`$id`, `$createdAt`, `$updatedAt` plus the collection attributes).
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        guest_client: Optional[Client] = None,
        database_id: Optional[str] = None,
    ):
        self.client = client or build_client()
        self.databases = Databases(self.client)
        self.users = Users(self.client)
        # Account endpoints act as a guest (login, recovery, verification)
        self.account = Account(guest_client or build_client(with_key=False))
        self.database_id = database_id or settings.appwrite_database_id
        self.circuit_breaker = CircuitBreaker(
            name="appwrite",
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        logger.info(
            "DocumentStore initialized for database=%s at %s",
            self.database_id,
            settings.appwrite_endpoint,
        )

    # ── Core call path ────────────────────────────────────────────────────

    @retry(
        retry=retry_if_exception(is_transient),
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
        collection: Optional[str] = None,
        document_id: Optional[str] = None,
    ) -> Any:
        self.circuit_breaker.can_execute()

        try:
            result = await self._execute(call)
        except AppwriteException as exc:
            if is_transient(exc):
                self.circuit_breaker.record_failure()
                logger.error(
                    "Appwrite %s failed after retries (code=%s): %s",
                    operation,
                    exc.code,
                    exc.message,
                )
                raise UpstreamServiceError(
                    context={"operation": operation, "code": exc.code},
                )
            # Appwrite answered; a client-side error says nothing about its health
            self.circuit_breaker.record_success()
            raise self._translate(exc, operation, collection, document_id)
        except (ConnectionError, TimeoutError) as exc:
            self.circuit_breaker.record_failure()
            logger.error("Appwrite %s unreachable: %s", operation, str(exc))
            raise UpstreamServiceError(context={"operation": operation})

        self.circuit_breaker.record_success()
        return result

    def _translate(
        self,
        exc: AppwriteException,
        operation: str,
        collection: Optional[str],
        document_id: Optional[str],
    ) -> CultureTourError:
        code = exc.code
        label = RESOURCE_LABELS.get(collection or "", "Resource")
        logger.debug("Appwrite %s returned %s: %s", operation, code, exc.message)

        if code == 404:
            return NotFoundError(
                resource=label,
                resource_id=document_id,
                message=f"{label} not found",
            )
        if code == 409:
            return ConflictError(message=exc.message or "Resource already exists")
        if code == 401:
            return AuthenticationError(message=exc.message or "Not authorized")
        if code == 400:
            return ValidationError(message=exc.message or "Invalid request")
        return UpstreamServiceError(
            message=exc.message or "The data service rejected the request",
            context={"operation": operation, "code": code, "type": exc.type},
        )

    async def _created_by_earlier_attempt(
        self,
        operation: str,
        call: Callable[[], Any],
        collection: str,
        created_id: str,
    ) -> Optional[Dict[str, Any]]:
        """
        Look up the id a create call generated after that call returned 409.

        Ids come from ID.unique(), so the only earlier holder of the id is a
        previous attempt of the same call whose response was lost.
        """
        try:
            existing = await self._call(operation, call, collection, created_id)
        except NotFoundError:
            return None
        logger.warning(
            "Appwrite %s for %s already committed by an earlier attempt", operation, created_id
        )
        return existing

    # ── Documents ─────────────────────────────────────────────────────────

    async def get_document(self, collection: str, document_id: str) -> Dict[str, Any]:
        call = functools.partial(
            self.databases.get_document,
            self.database_id,
            settings.collection_id(collection),
            document_id,
        )
        return await self._call("get_document", call, collection, document_id)

    async def list_documents(
        self, collection: str, queries: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Returns {"total": <all matches>, "documents": [<this page>]}."""
        call = functools.partial(
            self.databases.list_documents,
            self.database_id,
            settings.collection_id(collection),
            list(queries or []),
        )
        result = await self._call("list_documents", call, collection)
        return {
            "total": result.get("total", 0),
            "documents": result.get("documents", []),
        }

    async def list_all_documents(
        self,
        collection: str,
        queries: Optional[List[str]] = None,
        page_size: int = 100,
    ) -> List[Dict[str, Any]]:
        """Every matching document, paging with limit/offset until exhausted."""
        documents: List[Dict[str, Any]] = []
        offset = 0
        while True:
            page = await self.list_documents(
                collection,
                list(queries or []) + [Query.limit(page_size), Query.offset(offset)],
            )
            batch = page["documents"]
            documents.extend(batch)
            if len(batch) < page_size:
                return documents
            offset += page_size

    async def find_one(
        self, collection: str, queries: List[str]
    ) -> Optional[Dict[str, Any]]:
        page = await self.list_documents(collection, list(queries) + [Query.limit(1)])
        documents = page["documents"]
        return documents[0] if documents else None

    async def create_document(
        self,
        collection: str,
        data: Dict[str, Any],
        document_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        new_id = document_id or ID.unique()
        call = functools.partial(
            self.databases.create_document,
            self.database_id,
            settings.collection_id(collection),
            new_id,
            data,
        )
        try:
            return await self._call("create_document", call, collection)
        except ConflictError:
            if document_id:
                raise
            # A retried create collides with its own first attempt
            existing = await self._created_by_earlier_attempt(
                "get_document",
                functools.partial(
                    self.databases.get_document,
                    self.database_id,
                    settings.collection_id(collection),
                    new_id,
                ),
                collection,
                new_id,
            )
            if existing is None:
                raise
            return existing

    async def update_document(
        self, collection: str, document_id: str, data: Dict[str, Any]
    ) -> Dict[str, Any]:
        call = functools.partial(
            self.databases.update_document,
            self.database_id,
            settings.collection_id(collection),
            document_id,
            data,
        )
        return await self._call("update_document", call, collection, document_id)

    async def delete_document(self, collection: str, document_id: str) -> None:
        call = functools.partial(
            self.databases.delete_document,
            self.database_id,
            settings.collection_id(collection),
            document_id,
        )
        await self._call("delete_document", call, collection, document_id)

    # ── Users & sessions ──────────────────────────────────────────────────

    async def create_user(
        self, email: str, password: str, name: str, phone: Optional[str] = None
    ) -> Dict[str, Any]:
        user_id = ID.unique()
        call = functools.partial(self.users.create, user_id, email, phone, password, name)
        try:
            return await self._call("create_user", call, "users")
        except ConflictError:
            existing = await self._created_by_earlier_attempt(
                "get_user", functools.partial(self.users.get, user_id), "users", user_id
            )
            if existing is None or existing.get("email") != email:
                raise
            return existing

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        call = functools.partial(self.users.get, user_id)
        return await self._call("get_user", call, "users", user_id)

    async def delete_user(self, user_id: str) -> None:
        call = functools.partial(self.users.delete, user_id)
        await self._call("delete_user", call, "users", user_id)

    async def create_email_session(self, email: str, password: str) -> Dict[str, Any]:
        call = functools.partial(
            self.account.create_email_password_session, email, password
        )
        return await self._call("create_email_session", call)

    async def list_sessions(self, user_id: str) -> List[Dict[str, Any]]:
        call = functools.partial(self.users.list_sessions, user_id)
        result = await self._call("list_sessions", call, "users", user_id)
        return result.get("sessions", [])

    async def delete_session(self, user_id: str, session_id: str) -> None:
        call = functools.partial(self.users.delete_session, user_id, session_id)
        await self._call("delete_session", call)

    # ── Account recovery & verification ───────────────────────────────────

    async def create_recovery(self, email: str, url: str) -> Dict[str, Any]:
        call = functools.partial(self.account.create_recovery, email, url)
        return await self._call("create_recovery", call)

    async def update_recovery(
        self, user_id: str, secret: str, password: str
    ) -> Dict[str, Any]:
        call = functools.partial(self.account.update_recovery, user_id, secret, password)
        return await self._call("update_recovery", call)

    async def update_verification(self, user_id: str, secret: str) -> Dict[str, Any]:
        call = functools.partial(self.account.update_verification, user_id, secret)
        return await self._call("update_verification", call)

    # ── Health ────────────────────────────────────────────────────────────

    async def health_check(self) -> bool:
        """Lightweight check: fetch the database descriptor."""
        try:
            await self._call(
                "health_check",
                functools.partial(self.databases.get, self.database_id),
            )
            return True
        except CultureTourError as e:
            logger.warning("Appwrite health check failed: %s", e.message)
            return False


# Singleton instance
document_store = DocumentStore()
