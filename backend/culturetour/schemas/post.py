"""
CultureTour Backend — Post, Comment & Image Schemas
====================================================

JSON request bodies. Post creation is multipart (image + form fields) and
is declared with Form()/File() parameters in routes/posts.py instead.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field

from culturetour.schemas.common import CamelModel


class PostUpdateRequest(CamelModel):
    """
    Partial post update. Only fields present in the body are applied;
    `location: null` explicitly clears the location.
    """

    caption: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
    tags: Optional[List[Any]] = None
    is_public: Optional[bool] = None


class CommentCreateRequest(CamelModel):
    content: Optional[str] = None
    parent_comment_id: Optional[str] = None


class CommentUpdateRequest(CamelModel):
    content: Optional[str] = None


class ImageMetadataUpdateRequest(CamelModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    tags: Optional[str] = Field(default=None, description="Comma-separated tags")
