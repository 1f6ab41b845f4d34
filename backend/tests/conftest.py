"""
Pytest fixtures for StoreRating backend tests.

Provides test database setup, role fixtures (admin / user / store owner),
a store, a fake media host and the test client.
"""

from datetime import timedelta

import pytest

from storerating import create_app
from storerating.config import Settings
from storerating.errors import ExternalServiceError
from storerating.extensions import db
from storerating.models import Role
from storerating.services import admin_service, auth_service, token_service
from storerating.services.media_service import MEDIA_HOST_EXTENSION, MediaHost


PASSWORD = "Password1!"

TEST_SETTINGS = Settings(
    jwt_secret="test-secret",
    token_ttl=timedelta(hours=1),
    bcrypt_rounds=4,
    login_max_failed_attempts=3,
    login_lockout_window=timedelta(minutes=15),
    media_max_file_size=1024,
)


class FakeMediaHost(MediaHost):
    """In-memory media host; records uploads and destroys."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.uploaded = []
        self.destroyed = []
        self.fail_upload = False
        self.fail_destroy = False

    def upload(self, data, *, resource_type, folder, public_id):
        if self.fail_upload:
            raise ExternalServiceError("Media upload failed: host unavailable")
        full_id = f"{folder}/{public_id}"
        self.uploaded.append(full_id)
        return {"url": f"https://media.test/{resource_type}/{full_id}", "public_id": full_id}

    def destroy(self, public_id, resource_type):
        if self.fail_destroy:
            raise ExternalServiceError("Media delete failed: host unavailable")
        self.destroyed.append(public_id)


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    db_path = tmp_path_factory.mktemp("db") / "storerating-test.sqlite3"
    app = create_app(
        {
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
            'SQLALCHEMY_TRACK_MODIFICATIONS': False,
            'RATELIMIT_ENABLED': False,
        },
        settings=TEST_SETTINGS,
    )
    app.extensions[MEDIA_HOST_EXTENSION] = FakeMediaHost()

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def settings(app):
    return TEST_SETTINGS


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def media_host(app):
    host = app.extensions[MEDIA_HOST_EXTENSION]
    host.reset()
    return host


def make_user(name, email, role=Role.USER, address="12 Test Street, Testville"):
    return auth_service.create_user(
        name,
        email,
        PASSWORD,
        settings=TEST_SETTINGS,
        address=address,
        role=role,
    )


@pytest.fixture(scope='function')
def admin(db_session):
    """Create the system administrator."""
    return make_user("System Administrator Account", "admin@example.com", Role.ADMIN)


@pytest.fixture(scope='function')
def normal_user(db_session):
    return make_user("Normal User Number One Here", "user1@example.com")


@pytest.fixture(scope='function')
def other_user(db_session):
    return make_user("Normal User Number Two Here", "user2@example.com")


@pytest.fixture(scope='function')
def owner(db_session):
    """Create a store owner without a store."""
    return make_user("Store Owner Number One Here", "owner1@example.com", Role.STORE_OWNER)


@pytest.fixture(scope='function')
def other_owner(db_session):
    return make_user("Store Owner Number Two Here", "owner2@example.com", Role.STORE_OWNER)


@pytest.fixture(scope='function')
def store(admin, owner):
    """Create a store owned by `owner`."""
    return admin_service.create_store_by_admin(admin, {
        "name": "Corner Coffee House",
        "email": "coffee@example.com",
        "address": "1 Main Street, Springfield",
        "owner_id": owner.id,
    })


@pytest.fixture(scope='function')
def other_store(admin, other_owner):
    return admin_service.create_store_by_admin(admin, {
        "name": "Bakery On The Hill",
        "email": "bakery@example.com",
        "address": "99 Hill Road, Shelbyville",
        "owner_id": other_owner.id,
    })


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['token']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user) -> dict:
    """Authorization headers for a user without going through /login."""
    return auth_headers(token_service.issue_token(user.id, TEST_SETTINGS))


@pytest.fixture(scope='function')
def auth_for(db_session):
    """Factory fixture: auth_for(user) -> Authorization headers."""
    return headers_for


@pytest.fixture(scope='function')
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture(scope='function')
def user_headers(normal_user):
    return headers_for(normal_user)


@pytest.fixture(scope='function')
def owner_headers(owner):
    return headers_for(owner)
