"""HTTP helpers shared by the services: JSON envelopes, CORS and authorization."""

from __future__ import annotations

from functools import wraps
from http import HTTPStatus
from typing import Any, Callable

from flask import Flask, Response, g, jsonify, make_response, request

from shopmesh.auth import AuthError, UserRole

_MISSING: Any = object()

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Headers": (
        "Content-Type, Content-Length, Accept-Encoding, X-CSRF-Token, "
        "Authorization, accept, origin, Cache-Control, X-Requested-With"
    ),
    "Access-Control-Allow-Methods": "POST, HEAD, PATCH, OPTIONS, GET, PUT, DELETE",
}


def error_response(status: int, error: str, message: str = "") -> Response:
    """Build an error envelope; an empty message is left out."""
    body = {"error": error}
    if message:
        body["message"] = message
    return make_response(jsonify(body), status)


def success_response(status: int, message: str, data: Any = _MISSING) -> Response:
    """Build a success envelope; data is left out when not given."""
    body: dict[str, Any] = {"message": message}
    if data is not _MISSING:
        body["data"] = data
    return make_response(jsonify(body), status)


def install_cors(app: Flask) -> Flask:
    """Add permissive CORS headers to every response and answer preflights with 204."""

    @app.before_request
    def _answer_preflight() -> Response | None:
        if request.method == "OPTIONS":
            return Response(status=HTTPStatus.NO_CONTENT)
        return None

    @app.after_request
    def _add_cors_headers(response: Response) -> Response:
        response.headers.update(_CORS_HEADERS)
        return response

    return app


def authenticate(validator: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Require a valid bearer token and store its claims on flask.g."""

    def decorator(view: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            header = request.headers.get("Authorization", "")
            if not header:
                return error_response(HTTPStatus.UNAUTHORIZED, "Authorization header required")
            parts = header.split(" ")
            if len(parts) != 2 or parts[0] != "Bearer":
                return error_response(
                    HTTPStatus.UNAUTHORIZED, "Invalid authorization header format"
                )
            try:
                claims = validator.validate_token(parts[1])
            except AuthError:
                return error_response(HTTPStatus.UNAUTHORIZED, "Invalid token")
            g.user_id = claims.user_id
            g.user_email = claims.email
            g.user_role = claims.role
            return view(*args, **kwargs)

        return wrapper

    return decorator


def _role_name(role: Any) -> str:
    return role.value if isinstance(role, UserRole) else str(role)


def require_role(role: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Allow the view only for callers whose authenticated role matches."""
    required = _role_name(role)

    def decorator(view: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            current = g.get("user_role")
            if current is None:
                return error_response(HTTPStatus.FORBIDDEN, "Access denied")
            if _role_name(current) != required:
                return error_response(
                    HTTPStatus.FORBIDDEN, f"{required.capitalize()} access required"
                )
            return view(*args, **kwargs)

        return wrapper

    return decorator