# Overview: JSON envelope helpers shared by all blueprints.

from __future__ import annotations

from flask import jsonify

from .errors import AppError, TooManyAttempts


def success(message: str, data=None, status: int = 200):
    """{success: true, message, data?}"""
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def failure(message: str, status: int, errors: list[dict] | None = None, headers: dict | None = None):
    """{success: false, message, errors?}"""
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    response = jsonify(body)
    response.status_code = status
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response


def error_response(err: AppError):
    headers = {}
    if isinstance(err, TooManyAttempts) and err.retry_after_seconds:
        headers["Retry-After"] = str(err.retry_after_seconds)
    return failure(err.message, err.status_code, err.errors, headers)
