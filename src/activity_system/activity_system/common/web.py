from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Iterable, Optional

from flask import Flask, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AlreadyRegisteredError,
    AuthorizationError,
    ConcurrencyError,
    DomainError,
    InvalidStateError,
    NotFoundError,
    ScheduleConflictError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def ok(data: Any = None, status: int = 200, **extra):
    body = {"success": True, "data": data}
    body.update(extra)
    return jsonify(body), status


def fail(message: str, status: int, **extra):
    body = {"success": False, "message": message}
    body.update(extra)
    return jsonify(body), status


def current_user_id() -> int:
    return int(session["user_id"])


def current_role() -> Optional[Role]:
    try:
        return Role(session.get("role"))
    except ValueError:
        return None


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Expected a JSON object body")
    return data


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return fail("Please sign in to continue", 401)
        return view(*args, **kwargs)

    return wrapper


def roles_required(roles: Iterable[Role]):
    allowed = frozenset(roles)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return fail("Please sign in to continue", 401)
            if current_role() not in allowed:
                return fail("You do not have permission for this action", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def register_error_handlers(app: Flask) -> None:
    """Translate domain errors raised by services into JSON responses."""

    @app.errorhandler(ScheduleConflictError)
    def _conflict(e: ScheduleConflictError):
        return fail(str(e), 409, **e.report.to_dict())

    @app.errorhandler(ConcurrencyError)
    def _concurrency(e: ConcurrencyError):
        return fail(str(e), 409)

    @app.errorhandler(NotFoundError)
    def _not_found(e: NotFoundError):
        return fail(str(e), 404)

    @app.errorhandler(AuthorizationError)
    def _forbidden(e: AuthorizationError):
        return fail(str(e), 403)

    @app.errorhandler(ValidationError)
    @app.errorhandler(InvalidStateError)
    @app.errorhandler(AlreadyRegisteredError)
    def _bad_request(e: DomainError):
        return fail(str(e), 400)

    @app.errorhandler(DomainError)
    def _domain(e: DomainError):
        return fail(str(e), 400)

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        # Let Flask render its own HTTP errors (404 route, 405 method, ...).
        code = getattr(e, "code", None)
        if isinstance(code, int) and 400 <= code < 600:
            return fail(getattr(e, "description", str(e)), code)
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return fail("Internal server error", 500)
