"""
CultureTour Backend — Auth & User Service
==========================================

What:  Registration, login/logout, profile management, password recovery,
       email verification and profile administration.
How:   Accounts and sessions live in Appwrite (Users/Account APIs); the
       public profile (name, phone, role, bio) lives in the `users`
       collection. Login returns our own JWT bound to the Appwrite session.
Who:   routes/auth.py and routes/users.py.

Registration flow:
    1. create Appwrite account (409 → "User with this email already exists")
    2. create profile document {userId, email, name, phone, role, bio, createdAt}
    3. if step 2 fails, the account from step 1 is removed again
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from appwrite.query import Query

from culturetour.config import settings
from culturetour.exceptions import (
    AuthenticationError,
    ConflictError,
    CultureTourError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from culturetour.schemas.auth import CurrentUser
from culturetour.security import create_access_token
from culturetour.services.appwrite_service import document_store
from culturetour.services.profile_service import profile_service, public_profile
from culturetour.services.serialization import build_pagination, offset_for

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthService:
    """Stateless orchestrator over DocumentStore and ProfileService."""

    # ── Registration & sessions ───────────────────────────────────────────

    async def register(
        self,
        email: Optional[str],
        password: Optional[str],
        name: Optional[str],
        phone: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not email or not password or not name:
            raise ValidationError(message="Please provide email, password and name")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="password",
            )

        try:
            user = await document_store.create_user(email, password, name, phone or None)
        except ConflictError:
            raise ConflictError(message="User with this email already exists")

        try:
            await document_store.create_document(
                "users",
                {
                    "userId": user["$id"],
                    "email": email,
                    "name": name,
                    "phone": phone or "",
                    "role": "user",
                    "bio": "",
                    "createdAt": datetime.now(timezone.utc).isoformat(),
                },
            )
        except CultureTourError:
            logger.error("Profile creation failed for %s; removing account", user["$id"])
            try:
                await document_store.delete_user(user["$id"])
            except CultureTourError as cleanup_error:
                logger.error("Could not remove orphaned account %s: %s", user["$id"], cleanup_error.message)
            raise

        logger.info("Registered user %s", user["$id"])
        return {"user": {"id": user["$id"], "email": email, "name": name}}

    async def login(self, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        if not email or not password:
            raise ValidationError(message="Please provide email and password")

        try:
            session = await document_store.create_email_session(email, password)
        except AuthenticationError:
            raise AuthenticationError(message="Invalid credentials")

        user = await document_store.get_user(session["userId"])
        profile = await profile_service.get_profile(user["$id"])
        role = (profile or {}).get("role", "user")
        token = create_access_token(
            user_id=user["$id"],
            email=user.get("email", email),
            role=role,
            session_id=session["$id"],
        )

        logger.info("User %s logged in (session %s)", user["$id"], session["$id"])
        return {
            "user": {
                "id": user["$id"],
                "email": user.get("email", email),
                "name": (profile or {}).get("name") or user.get("name"),
                "role": role,
            },
            "token": token,
            "sessionId": session["$id"],
        }

    async def logout(self, current_user: CurrentUser, session_id: Optional[str] = None) -> None:
        target = session_id or current_user.session_id
        if not target:
            raise ValidationError(message="Session ID is required", field="sessionId")
        await document_store.delete_session(current_user.id, target)
        logger.info("User %s ended session %s", current_user.id, target)

    # ── Own profile ───────────────────────────────────────────────────────

    async def get_me(self, current_user: CurrentUser) -> Dict[str, Any]:
        user = await document_store.get_user(current_user.id)
        profile = await profile_service.get_profile(current_user.id) or {}
        return {
            "id": user["$id"],
            "email": user.get("email"),
            "name": profile.get("name") or user.get("name"),
            "phone": profile.get("phone", ""),
            "role": profile.get("role", "user"),
            "bio": profile.get("bio", ""),
            "emailVerification": user.get("emailVerification", False),
        }

    async def update_profile(
        self,
        user_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> Dict[str, Any]:
        profile = await profile_service.get_profile(user_id)
        if profile is None:
            raise NotFoundError(resource="User", resource_id=user_id, message="User profile not found")

        data = {
            "name": name if name is not None else profile.get("name"),
            "phone": phone if phone is not None else profile.get("phone", ""),
            "bio": bio if bio is not None else profile.get("bio", ""),
        }
        updated = await document_store.update_document("users", profile["$id"], data)
        return public_profile(updated)

    # ── Recovery & verification ───────────────────────────────────────────

    async def request_password_reset(self, email: Optional[str]) -> None:
        if not email:
            raise ValidationError(message="Please provide email", field="email")
        url = f"{settings.app_url.rstrip('/')}/reset-password"
        await document_store.create_recovery(email, url)
        logger.info("Password recovery requested")

    async def complete_password_reset(
        self,
        user_id: Optional[str],
        secret: Optional[str],
        password: Optional[str],
        password_again: Optional[str],
    ) -> None:
        if not user_id or not secret or not password or not password_again:
            raise ValidationError(
                message="Please provide userId, secret, password and passwordAgain"
            )
        if password != password_again:
            raise ValidationError(message="Passwords do not match", field="passwordAgain")
        await document_store.update_recovery(user_id, secret, password)
        logger.info("Password reset completed for user %s", user_id)

    async def verify_email(self, user_id: Optional[str], secret: Optional[str]) -> None:
        if not user_id or not secret:
            raise ValidationError(message="Please provide userId and secret")
        await document_store.update_verification(user_id, secret)

    # ── Profile administration (/api/users) ───────────────────────────────

    async def list_users(self, page: int, limit: int) -> Dict[str, Any]:
        result = await document_store.list_documents(
            "users",
            [
                Query.order_desc("$createdAt"),
                Query.limit(limit),
                Query.offset(offset_for(page, limit)),
            ],
        )
        return {
            "users": [public_profile(doc) for doc in result["documents"]],
            "pagination": build_pagination(page, limit, result["total"]),
        }

    async def get_user_profile(self, user_id: str) -> Dict[str, Any]:
        profile = await profile_service.get_profile(user_id)
        if profile is None:
            raise NotFoundError(resource="User", resource_id=user_id, message="User not found")
        return public_profile(profile)

    def _require_self_or_admin(self, actor: CurrentUser, user_id: str) -> None:
        if actor.id != user_id and actor.role != "admin":
            raise PermissionDeniedError(message="Not authorized, insufficient permissions")

    async def update_user(
        self,
        actor: CurrentUser,
        user_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._require_self_or_admin(actor, user_id)
        return await self.update_profile(user_id, name=name, phone=phone, bio=bio)

    async def delete_user(self, actor: CurrentUser, user_id: str) -> None:
        self._require_self_or_admin(actor, user_id)
        profile = await profile_service.get_profile(user_id)
        if profile is None:
            raise NotFoundError(resource="User", resource_id=user_id, message="User not found")

        await document_store.delete_document("users", profile["$id"])
        try:
            await document_store.delete_user(user_id)
        except NotFoundError:
            logger.warning("Account %s already removed; profile deleted", user_id)
        logger.info("User %s deleted by %s", user_id, actor.id)


# Singleton instance
auth_service = AuthService()
