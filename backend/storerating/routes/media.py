# Overview: Flask API routes for store media; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import get_settings, optional_auth, require_auth, require_permission
from ..errors import ValidationError
from ..permissions import BROWSE_STORES, MANAGE_STORE_MEDIA
from ..responses import success
from ..services import media_service
from ..validation import require_int

media_bp = Blueprint("media", __name__, url_prefix="/api/media")


@media_bp.post("/upload")
@require_auth
@require_permission(MANAGE_STORE_MEDIA)
def upload_media_route():
    """
    Multipart form:
    - file: the image or video
    - store_id: target store (must be the caller's own unless admin)
    """
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationError("No file provided", errors=[{"field": "file", "message": "File is required"}])

    raw_store_id = request.form.get("store_id") or request.form.get("storeId")
    if not raw_store_id:
        raise ValidationError("Store ID is required", errors=[{"field": "store_id", "message": "store_id is required"}])
    store_id = require_int(raw_store_id, "store_id")

    media = media_service.upload_media(
        g.current_user,
        store_id,
        data=upload.read(),
        filename=upload.filename,
        mimetype=upload.mimetype,
        settings=get_settings(),
    )
    return success("Media uploaded successfully", {"media": media.to_dict()}, 201)


@media_bp.get("/store/<int:store_id>")
@optional_auth
@require_permission(BROWSE_STORES)
def store_media_route(store_id: int):
    """Optional query param `type`: image | video."""
    store, media = media_service.list_store_media(store_id, request.args.get("type"))
    return success(
        "Store media retrieved successfully",
        {
            "store": {"id": store.id, "name": store.name},
            "media": media_service.group_media(media),
        },
    )


@media_bp.delete("/<int:media_id>")
@require_auth
@require_permission(MANAGE_STORE_MEDIA)
def delete_media_route(media_id: int):
    media_service.delete_media(
        g.current_user,
        media_id,
        settings=get_settings(),
    )
    return success("Media file deleted successfully")
