# backend/storerating/routes/system.py
"""
System health and version endpoints.

Provides a health check for the database and the token denylist, and
version information for deployment debugging.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import RevokedToken, Store, User
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        user_count = db.session.query(User).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "stores": store_count,
                "users": user_count,
            }
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_token_denylist_health() -> dict:
    """Revoked tokens still in the table after their expiry are pending cleanup."""
    start_time = time.time()
    try:
        revoked = db.session.query(RevokedToken).count()
        expired = db.session.query(RevokedToken).filter(RevokedToken.expires_at < utcnow()).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "revoked_tokens": revoked,
                "expired_pending_cleanup": expired,
            }
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Token denylist health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Token denylist error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    denylist_health = check_token_denylist_health()

    all_checks = [database_health, denylist_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "success": http_status == 200,
        "message": f"Service is {overall_status}",
        "data": {
            "status": overall_status,
            "timestamp": utcnow().isoformat() + "Z",
            "total_latency_ms": round(total_elapsed_ms, 2),
            "checks": {
                "database": database_health,
                "token_denylist": denylist_health,
            }
        },
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """
    Non-sensitive deployment information. Never exposes secrets,
    credentials or internal paths.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "success": True,
        "message": "Version information",
        "data": {
            "api_version": "1.0.0",
            "environment": env,
            "python_version": sys.version.split()[0],
            "server_time": utcnow().isoformat() + "Z",
        },
    }
