"""
CultureTour Backend — Authentication Dependencies
==================================================

What:  FastAPI dependencies that turn the Authorization header into a
       CurrentUser.
Who:   Injected into route handlers with Depends().

    get_current_user   required auth; 401 when missing/invalid/expired
    get_optional_user  never blocks; None for anonymous or bad tokens
    require_roles(...) required auth plus a role whitelist; 403 otherwise

Session check:
    Tokens embed the Appwrite session id. With AUTH_VERIFY_SESSION on, a
    token is only honoured while that session is still listed for the user,
    so logging out (or an admin revoking the session) invalidates it.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from culturetour.config import settings
from culturetour.exceptions import (
    AuthenticationError,
    CultureTourError,
    NotFoundError,
    PermissionDeniedError,
)
from culturetour.schemas.auth import CurrentUser
from culturetour.security import decode_access_token
from culturetour.services.appwrite_service import document_store

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def _resolve_user(token: str) -> CurrentUser:
    claims = decode_access_token(token)
    user_id = claims["userId"]
    session_id = claims.get("sid")

    if settings.auth_verify_session and session_id:
        try:
            sessions = await document_store.list_sessions(user_id)
        except NotFoundError:
            logger.info("Rejected token for user %s: account no longer exists", user_id)
            raise AuthenticationError(message="Not authorized, session expired")
        if not any(session.get("$id") == session_id for session in sessions):
            logger.info("Rejected token for user %s: session %s no longer active", user_id, session_id)
            raise AuthenticationError(message="Not authorized, session expired")

    return CurrentUser(
        id=user_id,
        email=claims.get("email", ""),
        role=claims.get("role", "user"),
        session_id=session_id,
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Not authorized, no token provided")
    return await _resolve_user(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[CurrentUser]:
    if credentials is None or not credentials.credentials:
        return None
    try:
        return await _resolve_user(credentials.credentials)
    except CultureTourError as e:
        logger.debug("Optional auth ignored bad credentials: %s", e.message)
        return None


def require_roles(*roles: str) -> Callable:
    """Dependency factory: only callers whose role is in `roles` pass."""

    async def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise PermissionDeniedError(message="Not authorized, insufficient permissions")
        return user

    return checker
