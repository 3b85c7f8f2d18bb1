"""
CultureTour Backend — Access Tokens
====================================

What:  Issues and verifies the bearer JWT returned by POST /api/auth/login.
How:   python-jose HS256 tokens carrying the Appwrite user id, email, role
       and the Appwrite session id (`sid`) the token was minted for.
Who:   AuthService (issue) and the auth dependencies (verify).

Claims:
    userId  Appwrite user $id
    email   account email
    role    profile role ("user", "admin")
    sid     Appwrite session $id; lets logout/expiry revoke the token
    iat/exp issued-at and expiry (JWT_EXPIRES_HOURS)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError
from jose import jwt as jose_jwt

from culturetour.config import settings
from culturetour.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def create_access_token(
    user_id: str,
    email: str,
    role: str = "user",
    session_id: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.jwt_expires_hours))
    claims: Dict[str, Any] = {
        "userId": user_id,
        "email": email,
        "role": role,
        "iat": now,
        "exp": expire,
    }
    if session_id:
        claims["sid"] = session_id
    return jose_jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        AuthenticationError("Not authorized, token failed") for any bad token.
    """
    try:
        claims = jose_jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.warning("JWT verification failed: %s", str(e))
        raise AuthenticationError(message="Not authorized, token failed")

    if not claims.get("userId"):
        raise AuthenticationError(message="Not authorized, token failed")
    return claims
