# Overview: Flask extension instances for database, migrations and request rate limiting.

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


def init_limiter(app, settings) -> Limiter:
    """
    Per-client-IP request budget shared by every API route.

    Built per app so each app gets its own counters; storage, headers and
    the on/off switch come from the RATELIMIT_* keys in app.config.
    """
    return Limiter(
        get_remote_address,
        app=app,
        application_limits=[settings.rate_limit],
    )
