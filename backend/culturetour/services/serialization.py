"""
CultureTour Backend — Document Field Helpers
=============================================

What:  Shared helpers for the denormalized fields Appwrite stores as strings
       (location, imageMetadata, settings, infoContent, style), for tag
       normalization and for offset pagination.
Who:   Every resource service.
"""

import json
import logging
import math
from typing import Any, Dict, List, Optional

from culturetour.exceptions import ValidationError

logger = logging.getLogger(__name__)

MAX_TAGS = 10
MAX_TAG_LENGTH = 50


def parse_json_field(value: Any, default: Any = None) -> Any:
    """
    Decode a JSON string stored in a document attribute.

    Already-decoded values pass through; empty or malformed strings yield
    `default` (a broken attribute must not fail the whole response).
    """
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        logger.warning("Could not decode stored JSON attribute: %.60s", value)
        return default


def dump_json_field(value: Any) -> Optional[str]:
    """Encode a value for a string attribute; None stays None."""
    if value is None:
        return None
    return json.dumps(value, separators=(",", ":"))


def parse_json_input(value: Optional[str], field: str) -> Any:
    """Decode JSON sent by a client in a form field; bad JSON is a 400."""
    if value is None or value == "":
        return None
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        raise ValidationError(message=f"{field} must be valid JSON", field=field)


def normalize_tags(
    tags: Any, limit: int = MAX_TAGS, max_length: int = MAX_TAG_LENGTH
) -> List[str]:
    """First `limit` entries, keeping only strings of 1..max_length characters."""
    if not isinstance(tags, list):
        return []
    return [
        tag for tag in tags[:limit]
        if isinstance(tag, str) and 0 < len(tag) <= max_length
    ]


def parse_tags_param(value: Optional[str]) -> List[str]:
    """Tags sent as a JSON array or a comma-separated list."""
    if not value:
        return []
    stripped = value.strip()
    if stripped.startswith("["):
        try:
            decoded = json.loads(stripped)
        except ValueError:
            raise ValidationError(message="tags must be a JSON array or a comma-separated list", field="tags")
        if not isinstance(decoded, list):
            raise ValidationError(message="tags must be a JSON array or a comma-separated list", field="tags")
        return [str(tag).strip() for tag in decoded if str(tag).strip()]
    return [tag.strip() for tag in stripped.split(",") if tag.strip()]


def parse_form_bool(value: Optional[str], default: bool) -> bool:
    """Multipart booleans arrive as strings ("true", "false", "1", "0")."""
    if value is None or value == "":
        return default
    return value.strip().lower() in {"true", "1", "yes", "on"}


def offset_for(page: int, limit: int) -> int:
    return (page - 1) * limit


def build_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }
