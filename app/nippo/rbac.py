from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, g, jsonify, request

from app.nippo.constants import ADMIN_OR_VIEWER, ROLE_ADMIN, ROLE_ADMIN_VIEWER, ROLE_DRIVER


def is_admin_viewer_role(role: str | None) -> bool:
    return role == ROLE_ADMIN_VIEWER


def is_admin_role(role: str | None) -> bool:
    return role == ROLE_ADMIN


def can_admin_write(role: str | None) -> bool:
    return is_admin_role(role)


def can_admin_read(role: str | None) -> bool:
    return role in (ROLE_ADMIN, ROLE_ADMIN_VIEWER)


def role_satisfies(role: str | None, required: str | None) -> bool:
    """
    ADMIN passes every gate; DRIVER gates let ADMIN through but not viewers.
    """
    if required is None:
        return role is not None
    if required == ROLE_ADMIN:
        return is_admin_role(role)
    if required == ROLE_DRIVER:
        return role in (ROLE_DRIVER, ROLE_ADMIN)
    if required == ADMIN_OR_VIEWER:
        return can_admin_read(role)
    return role == required


def require_role(required: str | None = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user = getattr(g, "current_user", None)
            # No valid bearer token -> 401
            if user is None:
                current_app.logger.info(
                    "Unauthorized: %s %s (%s) request_id=%s",
                    request.method,
                    request.path,
                    getattr(g, "auth_error", None) or "no token",
                    getattr(g, "request_id", None),
                )
                return jsonify({"error": "Unauthorized"}), 401
            # Authenticated but wrong role -> 403
            if not role_satisfies(user.role, required):
                current_app.logger.info("Forbidden: required %s, got %s (driver_id=%s)", required, user.role, user.driver_id)
                return jsonify({"error": "Forbidden"}), 403
            return fn(*args, **kwargs)

        return wrapped

    return decorator
