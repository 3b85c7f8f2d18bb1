"""
CultureTour Backend — Profile Lookups
======================================

What:  Reads user profile documents (the `users` collection, keyed by the
       Appwrite account id in `userId`) and builds the compact author
       objects embedded in posts, likes and comments.
How:   Lookups for a page of documents are de-duplicated and fanned out
       concurrently with asyncio.gather.

A failed author lookup never fails the page: the author becomes null
and the failure is logged.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

from appwrite.query import Query

from culturetour.exceptions import CultureTourError
from culturetour.services.appwrite_service import document_store

logger = logging.getLogger(__name__)


class ProfileService:
    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await document_store.find_one("users", [Query.equal("userId", user_id)])

    async def get_author(
        self,
        user_id: str,
        include_email: bool = True,
        include_bio: bool = False,
    ) -> Optional[Dict[str, Any]]:
        try:
            profile = await self.get_profile(user_id)
        except CultureTourError as e:
            logger.warning("Author lookup failed for %s: %s", user_id, e.message)
            return None
        if profile is None:
            return None

        author = {"id": user_id, "name": profile.get("name")}
        if include_email:
            author["email"] = profile.get("email")
        if include_bio:
            author["bio"] = profile.get("bio", "")
        return author

    async def get_authors(
        self,
        user_ids: Iterable[str],
        include_email: bool = True,
    ) -> Dict[str, Optional[Dict[str, Any]]]:
        """Map of user id → author (or None), one lookup per distinct id."""
        unique_ids = [uid for uid in dict.fromkeys(user_ids) if uid]
        authors = await asyncio.gather(
            *(self.get_author(uid, include_email=include_email) for uid in unique_ids)
        )
        return dict(zip(unique_ids, authors))


def public_profile(profile: Dict[str, Any]) -> Dict[str, Any]:
    """Profile document reduced to the fields the API exposes."""
    return {
        "id": profile.get("userId"),
        "email": profile.get("email"),
        "name": profile.get("name"),
        "phone": profile.get("phone"),
        "role": profile.get("role", "user"),
        "bio": profile.get("bio", ""),
        "createdAt": profile.get("createdAt") or profile.get("$createdAt"),
    }


# Singleton instance
profile_service = ProfileService()
