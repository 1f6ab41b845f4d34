# Overview: Service-layer operations for store media; binaries live on an external media host.

"""
Store Media Service

WHY: Images and videos are stored on Cloudinary; the database keeps only
the URL, the host's public id and some file metadata. All calls to the host
go through a MediaHost adapter so the rest of the service (and the tests)
never touch the SDK directly.

FAILURE MODEL:
- Upload: host failure -> ExternalServiceError, nothing persisted. If the
  row insert fails after a successful upload, the orphaned asset is
  destroyed before the error propagates
- Delete: host failure -> ExternalServiceError, row kept so the delete can
  be retried
- Cascade cleanup (user deletion): best effort, failures only logged,
  since the rows are already gone
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable

import cloudinary
import cloudinary.uploader
from flask import current_app

from ..config import Settings
from ..errors import ExternalServiceError, MediaNotFound, StoreNotFound, ValidationError
from ..extensions import db
from ..models import Store, StoreMedia, User
from ..permissions import MANAGE_STORE_MEDIA
from . import permission_service

logger = logging.getLogger(__name__)

MEDIA_HOST_EXTENSION = "storerating.media_host"
FILE_TYPES = ("image", "video")

_TRANSFORMATIONS = {
    "image": [{"width": 800, "height": 600, "crop": "limit"}, {"quality": "auto"}],
    "video": [{"width": 1280, "height": 720, "crop": "limit"}, {"quality": "auto"}],
}


@dataclass(frozen=True)
class MediaAsset:
    """A stored asset to remove from the host."""
    public_id: str
    file_type: str


class MediaHost:
    """Interface of the external asset store."""

    def upload(self, data: bytes, *, resource_type: str, folder: str, public_id: str) -> dict:
        """Store `data`; returns {"url": ..., "public_id": ...}."""
        raise NotImplementedError

    def destroy(self, public_id: str, resource_type: str) -> None:
        raise NotImplementedError


class CloudinaryMediaHost(MediaHost):
    def __init__(self, settings: Settings):
        if not all([settings.cloudinary_cloud_name, settings.cloudinary_api_key, settings.cloudinary_api_secret]):
            raise ExternalServiceError(
                "Media storage is not configured. Set CLOUDINARY_CLOUD_NAME, "
                "CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET"
            )
        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )

    def upload(self, data: bytes, *, resource_type: str, folder: str, public_id: str) -> dict:
        try:
            result = cloudinary.uploader.upload(
                data,
                resource_type=resource_type,
                folder=folder,
                public_id=public_id,
                transformation=_TRANSFORMATIONS.get(resource_type),
            )
        except Exception as exc:
            raise ExternalServiceError(f"Media upload failed: {exc}") from exc
        return {"url": result["secure_url"], "public_id": result["public_id"]}

    def destroy(self, public_id: str, resource_type: str) -> None:
        try:
            result = cloudinary.uploader.destroy(public_id, resource_type=resource_type)
        except Exception as exc:
            raise ExternalServiceError(f"Media delete failed: {exc}") from exc
        # "not found" means the asset is already gone
        if result.get("result") not in ("ok", "not found"):
            raise ExternalServiceError(f"Media delete failed: {result.get('result')}")


def get_media_host(settings: Settings) -> MediaHost:
    """
    The app's media host. Tests install a fake under
    app.extensions["storerating.media_host"]; otherwise Cloudinary is
    configured on first use.
    """
    host = current_app.extensions.get(MEDIA_HOST_EXTENSION)
    if host is None:
        host = CloudinaryMediaHost(settings)
        current_app.extensions[MEDIA_HOST_EXTENSION] = host
    return host


def classify_file_type(mimetype: str | None, settings: Settings) -> str:
    if mimetype in settings.allowed_image_types:
        return "image"
    if mimetype in settings.allowed_video_types:
        return "video"
    raise ValidationError(
        f"File type {mimetype} not allowed. Allowed types: {', '.join(settings.allowed_media_types)}",
        errors=[{"field": "file", "message": "Unsupported file type"}],
    )


def _get_store(store_id: int) -> Store:
    store = db.session.get(Store, store_id)
    if store is None:
        raise StoreNotFound()
    return store


def upload_media(
    actor: User,
    store_id: int,
    *,
    data: bytes,
    filename: str,
    mimetype: str | None,
    settings: Settings,
    host: MediaHost | None = None,
) -> StoreMedia:
    """
    Upload one file for a store and record it.

    The app's media host is resolved only after the store, ownership and
    file checks pass, unless `host` is given.

    Raises StoreNotFound, Forbidden (not the owner and not admin),
    ValidationError (type/size/empty), ExternalServiceError.
    """
    store = _get_store(store_id)
    permission_service.check(MANAGE_STORE_MEDIA, actor, owner_id=store.owner_id)

    if not data:
        raise ValidationError("No file provided", errors=[{"field": "file", "message": "File is empty"}])
    file_type = classify_file_type(mimetype, settings)
    if len(data) > settings.media_max_file_size:
        max_mb = settings.media_max_file_size / 1024 / 1024
        raise ValidationError(
            f"File too large. Maximum size is {max_mb:g}MB",
            errors=[{"field": "file", "message": "File too large"}],
        )

    if host is None:
        host = get_media_host(settings)
    uploaded = host.upload(
        data,
        resource_type=file_type,
        folder=f"{settings.media_folder}/{file_type}s",
        public_id=f"store_{store_id}_{int(time.time() * 1000)}",
    )

    media = StoreMedia(
        store_id=store_id,
        file_url=uploaded["url"],
        file_name=filename or "upload",
        file_type=file_type,
        external_media_id=uploaded["public_id"],
        file_size=len(data),
    )
    db.session.add(media)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        destroy_assets_best_effort([MediaAsset(uploaded["public_id"], file_type)], host)
        raise

    logger.info("Uploaded %s %s for store %s", file_type, media.external_media_id, store_id)
    return media


def list_store_media(store_id: int, file_type: str | None = None) -> tuple[Store, list[StoreMedia]]:
    """Media of a store, oldest first. Unknown file_type values are ignored."""
    store = _get_store(store_id)
    query = db.session.query(StoreMedia).filter(StoreMedia.store_id == store_id)
    if file_type in FILE_TYPES:
        query = query.filter(StoreMedia.file_type == file_type)
    return store, query.order_by(StoreMedia.created_at.asc(), StoreMedia.id.asc()).all()


def group_media(media: Iterable[StoreMedia]) -> dict:
    media = list(media)
    return {
        "images": [m.to_dict() for m in media if m.file_type == "image"],
        "videos": [m.to_dict() for m in media if m.file_type == "video"],
        "total": len(media),
    }


def delete_media(
    actor: User,
    media_id: int,
    *,
    host: MediaHost | None = None,
    settings: Settings | None = None,
) -> None:
    """
    Remove a media file from the host and the database.

    Without `host`, the app's media host is resolved from `settings` once
    the media exists and the caller may manage it.

    Raises MediaNotFound, Forbidden, ExternalServiceError.
    """
    media = db.session.get(StoreMedia, media_id)
    if media is None:
        raise MediaNotFound()

    store = _get_store(media.store_id)
    permission_service.check(MANAGE_STORE_MEDIA, actor, owner_id=store.owner_id)

    if media.external_media_id:
        if host is None:
            host = get_media_host(settings)
        host.destroy(media.external_media_id, media.file_type)

    db.session.delete(media)
    db.session.commit()
    logger.info("Deleted media %s of store %s", media_id, store.id)


def destroy_assets_best_effort(assets: Iterable[MediaAsset], host: MediaHost) -> int:
    """
    Destroy assets whose rows are already gone. Returns how many succeeded.

    Failures are logged and skipped.
    """
    destroyed = 0
    for asset in assets:
        try:
            host.destroy(asset.public_id, asset.file_type)
            destroyed += 1
        except ExternalServiceError:
            logger.warning("Could not remove media asset %s from host", asset.public_id, exc_info=True)
    return destroyed
