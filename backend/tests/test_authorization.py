"""
Authorization tests for the StoreRating API.

Verifies:
- Unauthenticated requests to protected endpoints return 401
- Authenticated callers without the role get 403
- Ownership is enforced on ratings, stores and media
- Browsing stays public
"""

import pytest

from storerating.models import SecurityEvent


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/users/profile"),
            ("PUT", "/api/users/profile"),
            ("PUT", "/api/users/password"),
            ("POST", "/api/ratings"),
            ("PUT", "/api/ratings/1"),
            ("DELETE", "/api/ratings/1"),
            ("GET", "/api/ratings/user/1"),
            ("PUT", "/api/stores/1"),
            ("GET", "/api/stores/owner/dashboard"),
            ("GET", "/api/stores/owner/ratings"),
            ("POST", "/api/media/upload"),
            ("DELETE", "/api/media/1"),
            ("GET", "/api/admin/dashboard"),
            ("GET", "/api/admin/users"),
            ("POST", "/api/admin/users"),
            ("PUT", "/api/admin/users/1"),
            ("DELETE", "/api/admin/users/1"),
            ("PUT", "/api/admin/users/1/role"),
            ("POST", "/api/admin/stores"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        body = resp.get_json()
        assert body["success"] is False
        assert body["message"]

    def test_garbage_token_is_401(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401

    def test_non_bearer_scheme_is_401(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Basic Zm9vOmJhcg=="})
        assert resp.status_code == 401


# =============================================================================
# USER DENIED ADMIN AND OWNER OPERATIONS - 403
# =============================================================================


class TestUserDeniedPrivileged:
    """Role `user` cannot reach admin or store-owner operations."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/admin/dashboard"),
            ("GET", "/api/admin/users"),
            ("GET", "/api/admin/users/search"),
            ("POST", "/api/admin/users"),
            ("POST", "/api/admin/stores"),
            ("GET", "/api/stores/owner/dashboard"),
            ("GET", "/api/stores/owner/ratings"),
            ("POST", "/api/media/upload"),
        ],
    )
    def test_forbidden(self, client, user_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=user_headers, json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["success"] is False

    def test_denial_is_audited(self, client, db_session, normal_user, user_headers):
        client.get("/api/admin/dashboard", headers=user_headers)

        event = db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert event.user_id == normal_user.id
        assert event.action == "ADMIN_MANAGE"
        assert event.resource == "/api/admin/dashboard"
        assert event.success is False

    def test_cannot_update_someone_elses_store(self, client, store, user_headers):
        resp = client.put(f"/api/stores/{store.id}", json={"name": "Hijacked"}, headers=user_headers)
        assert resp.status_code == 403


class TestStoreOwnerRestrictions:

    def test_owner_cannot_rate(self, client, store, other_store, owner_headers):
        resp = client.post(
            "/api/ratings",
            json={"store_id": other_store.id, "rating": 5},
            headers=owner_headers,
        )
        assert resp.status_code == 403

    def test_owner_cannot_manage_users(self, client, owner_headers):
        resp = client.get("/api/admin/users", headers=owner_headers)
        assert resp.status_code == 403

    def test_owner_cannot_edit_other_store(self, client, store, other_store, owner_headers):
        resp = client.put(
            f"/api/stores/{other_store.id}",
            json={"name": "Not Yours"},
            headers=owner_headers,
        )
        assert resp.status_code == 403

    def test_owner_can_edit_own_store(self, client, store, owner_headers):
        resp = client.put(
            f"/api/stores/{store.id}",
            json={"name": "Corner Coffee House Deluxe"},
            headers=owner_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["store"]["name"] == "Corner Coffee House Deluxe"


class TestRatingOwnership:

    def test_cannot_list_other_users_ratings(self, client, normal_user, other_user, user_headers):
        resp = client.get(f"/api/ratings/user/{other_user.id}", headers=user_headers)
        assert resp.status_code == 403

    def test_can_list_own_ratings(self, client, normal_user, user_headers):
        resp = client.get(f"/api/ratings/user/{normal_user.id}", headers=user_headers)
        assert resp.status_code == 200

    def test_admin_can_list_any_users_ratings(self, client, normal_user, admin_headers):
        resp = client.get(f"/api/ratings/user/{normal_user.id}", headers=admin_headers)
        assert resp.status_code == 200


# =============================================================================
# ADMIN CAN PERFORM PRIVILEGED OPERATIONS - 200
# =============================================================================


class TestAdminAccess:
    """Admin role can perform privileged operations."""

    def test_can_view_dashboard(self, client, admin_headers):
        resp = client.get("/api/admin/dashboard", headers=admin_headers)
        assert resp.status_code == 200

    def test_can_list_users(self, client, admin_headers):
        resp = client.get("/api/admin/users", headers=admin_headers)
        assert resp.status_code == 200
        assert len(resp.get_json()["data"]["users"]) == 1

    def test_can_list_stores(self, client, admin_headers):
        resp = client.get("/api/stores", headers=admin_headers)
        assert resp.status_code == 200

    def test_admin_cannot_open_owner_dashboard(self, client, admin_headers):
        resp = client.get("/api/stores/owner/dashboard", headers=admin_headers)
        assert resp.status_code == 403


# =============================================================================
# PUBLIC ENDPOINTS - NO AUTH REQUIRED
# =============================================================================


class TestPublicEndpoints:
    """Browsing, health and version endpoints are public."""

    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["success"] is True

    def test_version(self, client, db_session):
        resp = client.get("/api/version")
        assert resp.status_code == 200

    def test_list_stores(self, client, store):
        resp = client.get("/api/stores")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["stores"][0]["user_rating"] is None

    def test_store_detail(self, client, store):
        resp = client.get(f"/api/stores/{store.id}")
        assert resp.status_code == 200

    def test_store_ratings(self, client, store):
        resp = client.get(f"/api/ratings/store/{store.id}")
        assert resp.status_code == 200

    def test_store_media(self, client, store):
        resp = client.get(f"/api/media/store/{store.id}")
        assert resp.status_code == 200

    def test_invalid_token_on_public_route_is_ignored(self, client, store):
        resp = client.get("/api/stores", headers={"Authorization": "Bearer broken"})
        assert resp.status_code == 200
