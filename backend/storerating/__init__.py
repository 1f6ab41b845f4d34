# backend/storerating/__init__.py
import logging

from flask import Flask, request
from flask_limiter.errors import RateLimitExceeded
from werkzeug.exceptions import HTTPException

from .config import Config, Settings
from .decorators import SETTINGS_EXTENSION
from .errors import AppError
from .extensions import db, init_limiter, migrate
from .responses import error_response, failure
from .validation import BoundedIntegerConverter


def create_app(config_overrides: dict | None = None, settings: Settings | None = None) -> Flask:
    """
    Application factory.

    config_overrides are applied on top of Config (tests use an in-memory
    SQLite URI); settings replaces Settings.from_env() when given.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])
    logging.getLogger(__name__).setLevel(app.config["LOG_LEVEL"])

    if settings is None:
        settings = Settings.from_env(secret_fallback=app.config["SECRET_KEY"])
    app.extensions[SETTINGS_EXTENSION] = settings

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    init_limiter(app, settings)

    # <int:...> URL segments stay inside the database integer range
    app.url_map.converters["int"] = BoundedIntegerConverter

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.stores import stores_bp
    from .routes.ratings import ratings_bp
    from .routes.media import media_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(stores_bp)
    app.register_blueprint(ratings_bp)
    app.register_blueprint(media_bp)
    app.register_blueprint(admin_bp)

    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        db.session.rollback()
        if err.status_code >= 500:
            app.logger.error("%s: %s", err.kind, err.message)
        return error_response(err)

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limited(err: RateLimitExceeded):
        app.logger.warning("Rate limit exceeded for %s on %s", request.remote_addr, request.path)
        return failure("Too many requests from this IP, please try again later.", 429)

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException):
        return failure(err.description or err.name, err.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        message = "Internal server error"
        if app.debug or settings.expose_internal_errors:
            message = f"{message}: {err}"
        return failure(message, 500)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {o.strip() for o in app.config["CORS_ORIGINS"].split(",") if o.strip()}
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
