"""
CultureTour Backend — Application Configuration
================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads environment variables (or a .env file),
       validates types and ranges, and exposes a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; checked again in the app lifespan.

Every microservice profile (auth, posts, likes, comments, tours, images)
shares this one settings class; `SERVICE_NAME` selects which routers the
app factory mounts.
"""

from typing import Dict, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Logical collection name → settings attribute holding its Appwrite ID
COLLECTION_FIELDS: Dict[str, str] = {
    "users": "users_collection_id",
    "posts": "posts_collection_id",
    "post_likes": "post_likes_collection_id",
    "post_comments": "post_comments_collection_id",
    "tours": "tours_collection_id",
    "scenes": "scenes_collection_id",
    "hotspots": "hotspots_collection_id",
}

SERVICE_PROFILES = {"gateway", "auth", "posts", "likes", "comments", "tours", "images"}

DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults. Production deployments MUST
    override the credentials (APPWRITE_*, CLOUDINARY_*, JWT_SECRET).
    """

    # ── Appwrite ──────────────────────────────────────────────────────────
    appwrite_endpoint: str = Field(default="https://cloud.appwrite.io/v1")
    appwrite_project_id: str = Field(default="")
    # Server key with databases.*, users.* and sessions.* scopes
    appwrite_api_key: str = Field(default="")
    appwrite_database_id: str = Field(default="culturetour")

    # ── Collections ───────────────────────────────────────────────────────
    users_collection_id: str = Field(default="users")
    posts_collection_id: str = Field(default="posts")
    post_likes_collection_id: str = Field(default="post_likes")
    post_comments_collection_id: str = Field(default="post_comments")
    tours_collection_id: str = Field(default="tours")
    scenes_collection_id: str = Field(default="scenes")
    hotspots_collection_id: str = Field(default="hotspots")

    def collection_id(self, name: str) -> str:
        """Resolve a logical collection name ("posts") to its configured ID."""
        return getattr(self, COLLECTION_FIELDS[name])

    # ── Cloudinary ────────────────────────────────────────────────────────
    cloudinary_cloud_name: str = Field(default="")
    cloudinary_api_key: str = Field(default="")
    cloudinary_api_secret: str = Field(default="")
    cloudinary_upload_folder: str = Field(default="uploads")

    # ── Authentication ────────────────────────────────────────────────────
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET)
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_hours: int = Field(default=24, ge=1, le=720)
    # When set, a token is only accepted while its Appwrite session exists
    auth_verify_session: bool = Field(default=True)

    # Frontend base URL; recovery emails link to {app_url}/reset-password
    app_url: str = Field(default="http://localhost:3000")

    # ── Uploads ───────────────────────────────────────────────────────────
    # 5MB for generic images, 10MB for panoramas
    max_image_size: int = Field(default=5_242_880, ge=1_048_576, le=52_428_800)
    max_panorama_size: int = Field(default=10_485_760, ge=1_048_576, le=104_857_600)
    max_multi_upload: int = Field(default=5, ge=1, le=20)

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:5173")

    @property
    def cors_origins_list(self) -> List[str]:
        """Comma-separated CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    service_name: str = Field(default="gateway")
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("service_name")
    @classmethod
    def validate_service_name(cls, v: str) -> str:
        lower = v.lower()
        if lower not in SERVICE_PROFILES:
            raise ValueError(
                f"Invalid service_name '{v}'. Must be one of: {sorted(SERVICE_PROFILES)}"
            )
        return lower

    # ── Retry Configuration ───────────────────────────────────────────────
    # Tenacity settings for Appwrite and Cloudinary calls
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: int = Field(default=1, ge=0, le=30)
    retry_max_wait: int = Field(default=8, ge=1, le=120)

    # ── Circuit Breaker ───────────────────────────────────────────────────
    cb_failure_threshold: int = Field(default=5, ge=2, le=20)
    cb_recovery_timeout: int = Field(default=30, ge=5, le=300)

    # ── Rate Limiting ─────────────────────────────────────────────────────
    rate_limit_requests: int = Field(default=1000, ge=10, le=100000)
    rate_limit_window: int = Field(default=3600, ge=60, le=86400)  # seconds

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that platform credentials are configured.
        When:  Called during app startup (lifespan).
        Raises ValueError listing every missing value.
        """
        errors = []
        if not self.appwrite_project_id:
            errors.append("APPWRITE_PROJECT_ID is not set.")
        if not self.appwrite_api_key:
            errors.append("APPWRITE_API_KEY is not set (server key with databases/users scopes).")
        if not (
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        ):
            errors.append(
                "CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET must all be set."
            )
        if self.jwt_secret == DEFAULT_JWT_SECRET:
            errors.append("JWT_SECRET is still the development default.")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance, imported throughout the application
settings = Settings()
