# Overview: Pytest coverage for store media upload, listing and deletion against a fake host.

import io

import pytest

from storerating.errors import ExternalServiceError, Forbidden, MediaNotFound, ValidationError
from storerating.models import StoreMedia
from storerating.services import media_service

from conftest import TEST_SETTINGS


def upload(user, store, media_host, *, data=b"\x89PNG fake image", mimetype="image/png", filename="front.png"):
    return media_service.upload_media(
        user,
        store.id,
        data=data,
        filename=filename,
        mimetype=mimetype,
        settings=TEST_SETTINGS,
        host=media_host,
    )


class TestClassify:

    @pytest.mark.parametrize(
        "mimetype,expected",
        [("image/jpeg", "image"), ("image/webp", "image"), ("video/mp4", "video")],
    )
    def test_allowed(self, mimetype, expected):
        assert media_service.classify_file_type(mimetype, TEST_SETTINGS) == expected

    @pytest.mark.parametrize("mimetype", ["application/pdf", "text/html", None])
    def test_rejected(self, mimetype):
        with pytest.raises(ValidationError):
            media_service.classify_file_type(mimetype, TEST_SETTINGS)


class TestUpload:

    def test_owner_uploads_image(self, db_session, store, owner, media_host):
        media = upload(owner, store, media_host)
        assert media.file_type == "image"
        assert media.file_size == len(b"\x89PNG fake image")
        assert media.external_media_id.startswith("store-rating/images/store_")
        assert media_host.uploaded == [media.external_media_id]

    def test_admin_uploads_for_any_store(self, db_session, store, admin, media_host):
        media = upload(admin, store, media_host, mimetype="video/mp4", filename="tour.mp4")
        assert media.file_type == "video"

    def test_other_owner_forbidden(self, db_session, store, other_owner, media_host):
        with pytest.raises(Forbidden):
            upload(other_owner, store, media_host)
        assert media_host.uploaded == []

    def test_wrong_type(self, db_session, store, owner, media_host):
        with pytest.raises(ValidationError):
            upload(owner, store, media_host, mimetype="application/pdf")
        assert db_session.query(StoreMedia).count() == 0

    def test_too_large(self, db_session, store, owner, media_host):
        with pytest.raises(ValidationError) as exc:
            upload(owner, store, media_host, data=b"x" * (TEST_SETTINGS.media_max_file_size + 1))
        assert "too large" in exc.value.message
        assert media_host.uploaded == []

    def test_empty_file(self, db_session, store, owner, media_host):
        with pytest.raises(ValidationError):
            upload(owner, store, media_host, data=b"")

    def test_host_failure_persists_nothing(self, db_session, store, owner, media_host):
        media_host.fail_upload = True
        with pytest.raises(ExternalServiceError):
            upload(owner, store, media_host)
        assert db_session.query(StoreMedia).count() == 0


class TestListAndDelete:

    def test_grouped_listing(self, db_session, store, owner, media_host):
        upload(owner, store, media_host)
        upload(owner, store, media_host, mimetype="video/mp4", filename="tour.mp4")

        found, media = media_service.list_store_media(store.id)
        grouped = media_service.group_media(media)
        assert found.id == store.id
        assert grouped["total"] == 2
        assert len(grouped["images"]) == 1
        assert len(grouped["videos"]) == 1

        _, videos = media_service.list_store_media(store.id, "video")
        assert [m.file_type for m in videos] == ["video"]
        # Unknown type filters are ignored
        _, everything = media_service.list_store_media(store.id, "audio")
        assert len(everything) == 2

    def test_delete(self, db_session, store, owner, media_host):
        media = upload(owner, store, media_host)
        public_id = media.external_media_id
        media_service.delete_media(owner, media.id, host=media_host)
        assert media_host.destroyed == [public_id]
        assert db_session.query(StoreMedia).count() == 0

    def test_delete_keeps_row_when_host_fails(self, db_session, store, owner, media_host):
        media = upload(owner, store, media_host)
        media_host.fail_destroy = True
        with pytest.raises(ExternalServiceError):
            media_service.delete_media(owner, media.id, host=media_host)
        assert db_session.query(StoreMedia).count() == 1

    def test_delete_forbidden_for_other_owner(self, db_session, store, owner, other_owner, media_host):
        media = upload(owner, store, media_host)
        with pytest.raises(Forbidden):
            media_service.delete_media(other_owner, media.id, host=media_host)

    def test_delete_missing(self, db_session, owner, media_host):
        with pytest.raises(MediaNotFound):
            media_service.delete_media(owner, 9999, host=media_host)

    def test_best_effort_cleanup_counts_successes(self, media_host):
        assets = [media_service.MediaAsset("a", "image"), media_service.MediaAsset("b", "video")]
        assert media_service.destroy_assets_best_effort(assets, media_host) == 2
        media_host.fail_destroy = True
        assert media_service.destroy_assets_best_effort(assets, media_host) == 0


class TestCloudinaryHost:

    def test_unconfigured_host_is_external_error(self):
        with pytest.raises(ExternalServiceError):
            media_service.CloudinaryMediaHost(TEST_SETTINGS)


class TestMediaEndpoints:

    def test_upload_list_delete(self, client, store, owner_headers, media_host):
        resp = client.post(
            "/api/media/upload",
            data={"store_id": str(store.id), "file": (io.BytesIO(b"GIF89a fake"), "logo.gif", "image/gif")},
            headers=owner_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        media_id = resp.get_json()["data"]["media"]["id"]

        listing = client.get(f"/api/media/store/{store.id}").get_json()["data"]
        assert listing["media"]["total"] == 1
        assert listing["media"]["images"][0]["file_name"] == "logo.gif"

        resp = client.delete(f"/api/media/{media_id}", headers=owner_headers)
        assert resp.status_code == 200
        assert len(media_host.destroyed) == 1

    def test_upload_requires_file(self, client, store, owner_headers, media_host):
        resp = client.post(
            "/api/media/upload",
            data={"store_id": str(store.id)},
            headers=owner_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400

    def test_upload_host_failure_is_502(self, client, store, owner_headers, media_host):
        media_host.fail_upload = True
        resp = client.post(
            "/api/media/upload",
            data={"storeId": str(store.id), "file": (io.BytesIO(b"GIF89a fake"), "logo.gif", "image/gif")},
            headers=owner_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 502
        assert resp.get_json()["success"] is False

    def test_checks_run_before_unconfigured_host(self, app, client, store, owner, other_owner, auth_for,
                                                 media_host, monkeypatch):
        media = upload(owner, store, media_host)
        monkeypatch.delitem(app.extensions, media_service.MEDIA_HOST_EXTENSION)

        assert client.delete("/api/media/9999", headers=auth_for(owner)).status_code == 404
        assert client.delete(f"/api/media/{media.id}", headers=auth_for(other_owner)).status_code == 403
        resp = client.post(
            "/api/media/upload",
            data={"store_id": str(store.id), "file": (io.BytesIO(b"GIF89a fake"), "logo.gif", "image/gif")},
            headers=auth_for(other_owner),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 403

        # Once the caller may act, the missing Cloudinary configuration surfaces
        resp = client.delete(f"/api/media/{media.id}", headers=auth_for(owner))
        assert resp.status_code == 502
        assert "not configured" in resp.get_json()["message"]
