# Overview: Pytest coverage for registration, login, tokens, throttling and own-profile updates.

from dataclasses import replace
from datetime import timedelta

import pytest

from storerating.errors import (
    DuplicateEmail,
    InvalidCredentials,
    TokenExpired,
    TokenInvalid,
    TokenRevoked,
    TooManyAttempts,
    ValidationError,
)
from storerating.models import RevokedToken, Role, SecurityEvent, User
from storerating.services import admin_service, auth_service, login_throttle_service, token_service

from conftest import PASSWORD, auth_headers, get_auth_token


REGISTRATION = {
    "name": "Registered Customer Account",
    "email": "New.Customer@Example.com",
    "password": PASSWORD,
    "address": "7 Registration Road",
}


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = auth_service.hash_password(PASSWORD, rounds=4)
        assert hashed != PASSWORD
        assert auth_service.verify_password(PASSWORD, hashed)
        assert not auth_service.verify_password("Password2!", hashed)

    def test_malformed_hash_is_a_mismatch(self):
        assert auth_service.verify_password(PASSWORD, "not-a-bcrypt-hash") is False

    @pytest.mark.parametrize("password", ["Short1!", "password1!", "Password123", "Password1!TooLong12"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(ValidationError):
            auth_service.hash_password(password, rounds=4)


class TestRegistration:

    def test_register_returns_user_and_token(self, db_session, settings):
        user, token = auth_service.register(
            REGISTRATION["name"], REGISTRATION["email"], PASSWORD, settings=settings
        )
        assert user.role == Role.USER
        assert user.email == "new.customer@example.com"
        assert auth_service.verify_token(token, settings).id == user.id

    def test_duplicate_email_is_case_insensitive(self, db_session, settings):
        auth_service.register(REGISTRATION["name"], "dup@example.com", PASSWORD, settings=settings)
        with pytest.raises(DuplicateEmail):
            auth_service.register(REGISTRATION["name"], "DUP@example.com", PASSWORD, settings=settings)
        assert db_session.query(User).count() == 1

    def test_register_endpoint(self, client, db_session):
        resp = client.post("/api/auth/register", json=REGISTRATION)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        assert body["data"]["user"]["role"] == "user"
        assert "password_hash" not in body["data"]["user"]
        assert body["data"]["token"]

    def test_register_twice_is_409(self, client, db_session):
        assert client.post("/api/auth/register", json=REGISTRATION).status_code == 201
        resp = client.post("/api/auth/register", json=REGISTRATION)
        assert resp.status_code == 409
        assert resp.get_json()["success"] is False
        assert db_session.query(User).count() == 1

    def test_register_cannot_choose_role(self, client, db_session):
        resp = client.post("/api/auth/register", json={**REGISTRATION, "role": "admin"})
        assert resp.status_code == 400
        assert db_session.query(User).count() == 0

    def test_register_validation_errors(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "Too short",
            "email": "not-an-email",
            "password": "weak",
        })
        assert resp.status_code == 400
        fields = {error["field"] for error in resp.get_json()["errors"]}
        assert {"name", "email", "password"} <= fields


class TestLogin:

    def test_login_success(self, db_session, normal_user, settings):
        user, token = auth_service.login("USER1@example.com", PASSWORD, settings=settings)
        assert user.id == normal_user.id
        assert token_service.user_id_from_claims(token_service.decode_token(token, settings)) == user.id

    def test_unknown_email_and_wrong_password_look_the_same(self, db_session, normal_user, settings):
        with pytest.raises(InvalidCredentials) as unknown:
            auth_service.login("nobody@example.com", PASSWORD, settings=settings)
        with pytest.raises(InvalidCredentials) as wrong:
            auth_service.login(normal_user.email, "Wrong1!pass", settings=settings)
        assert unknown.value.message == wrong.value.message

    def test_login_endpoint(self, client, normal_user):
        token = get_auth_token(client, normal_user.email)
        assert token
        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["user"]["email"] == normal_user.email

    def test_failed_login_is_audited(self, client, db_session, normal_user):
        resp = client.post("/api/auth/login", json={"email": normal_user.email, "password": "Wrong1!pass"})
        assert resp.status_code == 401
        event = db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").one()
        assert event.action == normal_user.email
        assert event.user_id == normal_user.id


class TestLoginThrottling:

    def test_lockout_after_max_failures(self, db_session, normal_user, settings):
        for _ in range(settings.login_max_failed_attempts):
            with pytest.raises(InvalidCredentials):
                auth_service.login(normal_user.email, "Wrong1!pass", settings=settings)

        # Even the right password is refused while locked
        with pytest.raises(TooManyAttempts) as exc:
            auth_service.login(normal_user.email, PASSWORD, settings=settings)
        assert exc.value.retry_after_seconds > 0

    def test_success_resets_the_count(self, db_session, normal_user, settings):
        for _ in range(settings.login_max_failed_attempts - 1):
            with pytest.raises(InvalidCredentials):
                auth_service.login(normal_user.email, "Wrong1!pass", settings=settings)
        auth_service.login(normal_user.email, PASSWORD, settings=settings)

        assert login_throttle_service.get_recent_failed_attempts(normal_user.email, settings) == 0
        with pytest.raises(InvalidCredentials):
            auth_service.login(normal_user.email, "Wrong1!pass", settings=settings)
        assert login_throttle_service.is_account_locked(normal_user.email, settings) == (False, None)

    def test_locked_login_endpoint_is_429(self, client, normal_user, settings):
        for _ in range(settings.login_max_failed_attempts):
            client.post("/api/auth/login", json={"email": normal_user.email, "password": "Wrong1!pass"})

        resp = client.post("/api/auth/login", json={"email": normal_user.email, "password": PASSWORD})
        assert resp.status_code == 429
        assert int(resp.headers["Retry-After"]) > 0

        status = client.get(f"/api/auth/lockout-status/{normal_user.email}").get_json()["data"]
        assert status["locked"] is True
        assert status["failed_attempts"] == settings.login_max_failed_attempts
        assert status["max_attempts"] == settings.login_max_failed_attempts

    def test_unknown_emails_are_throttled_too(self, db_session, settings):
        for _ in range(settings.login_max_failed_attempts):
            with pytest.raises(InvalidCredentials):
                auth_service.login("ghost@example.com", PASSWORD, settings=settings)
        locked, seconds = login_throttle_service.is_account_locked("ghost@example.com", settings)
        assert locked
        assert seconds > 0


class TestTokens:

    def test_tampered_token_is_invalid(self, db_session, normal_user, settings):
        token = token_service.issue_token(normal_user.id, settings)
        with pytest.raises(TokenInvalid):
            auth_service.verify_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"), settings)

    def test_wrong_secret_is_invalid(self, db_session, normal_user, settings):
        token = token_service.issue_token(normal_user.id, replace(settings, jwt_secret="another-secret"))
        with pytest.raises(TokenInvalid):
            auth_service.verify_token(token, settings)

    def test_expired_token(self, db_session, normal_user, settings):
        token = token_service.issue_token(normal_user.id, replace(settings, token_ttl=timedelta(seconds=-60)))
        with pytest.raises(TokenExpired):
            auth_service.verify_token(token, settings)

    def test_deleted_user_token_is_invalid(self, db_session, admin, normal_user, settings):
        token = token_service.issue_token(normal_user.id, settings)
        admin_service.delete_user(admin, normal_user.id)
        with pytest.raises(TokenInvalid):
            auth_service.verify_token(token, settings)

    def test_role_is_read_from_database(self, db_session, admin, normal_user, settings):
        token = token_service.issue_token(normal_user.id, settings)
        admin_service.change_user_role_by_admin(admin, normal_user.id, Role.STORE_OWNER)
        assert auth_service.verify_token(token, settings).role == Role.STORE_OWNER

    def test_logout_revokes_token(self, db_session, normal_user, settings):
        token = token_service.issue_token(normal_user.id, settings)
        assert auth_service.logout(token, settings) is True
        assert auth_service.logout(token, settings) is True
        assert db_session.query(RevokedToken).count() == 1
        with pytest.raises(TokenRevoked):
            auth_service.verify_token(token, settings)

    def test_logout_invalid_token_is_noop(self, db_session, settings):
        assert auth_service.logout("garbage", settings) is False
        assert db_session.query(RevokedToken).count() == 0

    def test_logout_endpoint(self, client, normal_user):
        token = get_auth_token(client, normal_user.email)
        headers = auth_headers(token)
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_other_tokens_survive_logout(self, client, normal_user):
        first = auth_headers(get_auth_token(client, normal_user.email))
        second = auth_headers(get_auth_token(client, normal_user.email))
        client.post("/api/auth/logout", headers=first)
        assert client.get("/api/auth/me", headers=second).status_code == 200


class TestOwnProfile:

    def test_change_password(self, db_session, normal_user, settings):
        auth_service.change_password(normal_user.id, PASSWORD, "NewPass1!", settings=settings)
        auth_service.login(normal_user.email, "NewPass1!", settings=settings)
        with pytest.raises(InvalidCredentials):
            auth_service.login(normal_user.email, PASSWORD, settings=settings)

    def test_change_password_wrong_current(self, db_session, normal_user, settings):
        with pytest.raises(ValidationError) as exc:
            auth_service.change_password(normal_user.id, "Wrong1!pass", "NewPass1!", settings=settings)
        assert exc.value.errors[0]["field"] == "current_password"

    def test_password_endpoint(self, client, normal_user, user_headers):
        resp = client.put(
            "/api/users/password",
            json={"current_password": PASSWORD, "new_password": "NewPass1!"},
            headers=user_headers,
        )
        assert resp.status_code == 200
        assert get_auth_token(client, normal_user.email, "NewPass1!")

    def test_password_endpoint_rejects_weak_password(self, client, normal_user, user_headers):
        resp = client.put(
            "/api/users/password",
            json={"current_password": PASSWORD, "new_password": "weak"},
            headers=user_headers,
        )
        assert resp.status_code == 400

    def test_update_profile(self, client, normal_user, user_headers):
        resp = client.put(
            "/api/users/profile",
            json={"name": "Renamed Customer Account", "address": "New address 5"},
            headers=user_headers,
        )
        assert resp.status_code == 200
        user = resp.get_json()["data"]["user"]
        assert user["name"] == "Renamed Customer Account"
        assert user["address"] == "New address 5"

    @pytest.mark.parametrize("field,value", [("email", "other@example.com"), ("role", "admin")])
    def test_profile_cannot_change_email_or_role(self, client, db_session, normal_user, user_headers, field, value):
        resp = client.put("/api/users/profile", json={field: value}, headers=user_headers)
        assert resp.status_code == 400
        db_session.expire_all()
        user = db_session.get(User, normal_user.id)
        assert user.email == "user1@example.com"
        assert user.role == Role.USER

    def test_get_profile(self, client, normal_user, user_headers):
        resp = client.get("/api/users/profile", headers=user_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["user"]["id"] == normal_user.id
