# backend/storerating/config.py
from __future__ import annotations
import os
from dataclasses import dataclass
from datetime import timedelta


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storerating.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storerating.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Comma separated list of browser origins allowed to call the API
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")

    # Uploads are read fully into memory before being handed to the media host
    MAX_CONTENT_LENGTH = _env_int("MEDIA_MAX_FILE_SIZE", 10 * 1024 * 1024) + 64 * 1024

    # Flask-Limiter: per-IP budget for the whole API (see Settings.rate_limit)
    RATELIMIT_ENABLED = os.environ.get("RATELIMIT_ENABLED", "true").lower() != "false"
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True


DEFAULT_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
DEFAULT_VIDEO_TYPES = ("video/mp4", "video/avi", "video/mov", "video/wmv")


@dataclass(frozen=True)
class Settings:
    """
    Business settings for the service layer.

    Built once in create_app() and handed to services explicitly, so the
    rating/admin/identity code never reads os.environ or current_app.config.
    """
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_ttl: timedelta = timedelta(hours=24)
    bcrypt_rounds: int = 12

    login_max_failed_attempts: int = 10
    login_lockout_window: timedelta = timedelta(minutes=15)

    rate_limit_max: int = 100
    rate_limit_window: timedelta = timedelta(minutes=15)

    cloudinary_cloud_name: str | None = None
    cloudinary_api_key: str | None = None
    cloudinary_api_secret: str | None = None
    media_folder: str = "store-rating"
    media_max_file_size: int = 10 * 1024 * 1024
    allowed_image_types: tuple[str, ...] = DEFAULT_IMAGE_TYPES
    allowed_video_types: tuple[str, ...] = DEFAULT_VIDEO_TYPES

    expose_internal_errors: bool = False

    @classmethod
    def from_env(cls, *, secret_fallback: str) -> "Settings":
        return cls(
            jwt_secret=os.environ.get("JWT_SECRET") or secret_fallback,
            token_ttl=timedelta(minutes=_env_int("JWT_EXPIRES_MINUTES", 24 * 60)),
            bcrypt_rounds=_env_int("BCRYPT_ROUNDS", 12),
            login_max_failed_attempts=_env_int("LOGIN_MAX_FAILED_ATTEMPTS", 10),
            login_lockout_window=timedelta(minutes=_env_int("LOGIN_LOCKOUT_MINUTES", 15)),
            rate_limit_max=_env_int("RATE_LIMIT_MAX", 100),
            rate_limit_window=timedelta(minutes=_env_int("RATE_LIMIT_WINDOW", 15)),
            cloudinary_cloud_name=os.environ.get("CLOUDINARY_CLOUD_NAME"),
            cloudinary_api_key=os.environ.get("CLOUDINARY_API_KEY"),
            cloudinary_api_secret=os.environ.get("CLOUDINARY_API_SECRET"),
            media_max_file_size=_env_int("MEDIA_MAX_FILE_SIZE", 10 * 1024 * 1024),
        )

    @property
    def rate_limit(self) -> str:
        """Flask-Limiter limit string, e.g. "100 per 900 second"."""
        return f"{self.rate_limit_max} per {int(self.rate_limit_window.total_seconds())} second"

    @property
    def allowed_media_types(self) -> tuple[str, ...]:
        return self.allowed_image_types + self.allowed_video_types
