"""Shared pieces of the thin Flask layer."""

from __future__ import annotations

from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import DomainError, ValidationError


def current_role() -> Optional[Role]:
    """The session role, normalized; None when absent or unrecognised."""
    return Role.from_session(session.get("role"))


def role_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if current_role() is None:
            return error_response("UNAUTHORIZED", "Authentication required", 401)
        return view(*args, **kwargs)

    return wrapper


def ok(data: Any = None, status: int = 200, message: Optional[str] = None):
    body: dict = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def error_response(code: str, message: str, status: int, field: Optional[str] = None):
    error: dict = {"code": code, "message": message}
    if field:
        error["field"] = field
    return jsonify({"success": False, "error": error}), status


def domain_error_response(exc: DomainError):
    field = exc.field if isinstance(exc, ValidationError) else None
    return error_response(exc.code, exc.message, exc.status, field)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", field="body")
    return data
