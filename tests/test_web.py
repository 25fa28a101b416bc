import time
import uuid

import jwt
import pytest
from flask import Flask, g

from shopmesh.auth import TokenValidator, UserRole
from shopmesh.web import (
    authenticate,
    error_response,
    install_cors,
    require_role,
    success_response,
)

SECRET = "secret"


def auth_header(role, *, user_id=None, exp_offset=3600):
    payload = {
        "user_id": str(user_id or uuid.uuid4()),
        "role": role,
        "exp": int(time.time()) + exp_offset,
    }
    encoded = jwt.encode(payload, SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {encoded}"}


@pytest.fixture
def app():
    app = Flask(__name__)
    install_cors(app)
    validator = TokenValidator(SECRET)

    @app.get("/admin")
    @authenticate(validator)
    @require_role(UserRole.ADMIN)
    def admin_view():
        return {"user_id": str(g.user_id), "role": str(g.user_role)}

    @app.get("/partner")
    @authenticate(validator)
    @require_role(UserRole.PARTNER)
    def partner_view():
        return {"ok": True}

    @app.get("/unguarded")
    @require_role(UserRole.BUYER)
    def unguarded_view():
        return {"ok": True}

    return app


@pytest.fixture
def client(app):
    return app.test_client()


def test_error_response_omits_empty_message(app):
    with app.app_context():
        resp = error_response(400, "Invalid input")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Invalid input"}


def test_error_response_keeps_message(app):
    with app.app_context():
        resp = error_response(400, "Invalid input", "Validation failed")
    assert resp.get_json() == {"error": "Invalid input", "message": "Validation failed"}


def test_success_response_with_and_without_data(app):
    with app.app_context():
        bare = success_response(200, "Operation successful")
        full = success_response(201, "Operation successful", [1, 2])
    assert bare.get_json() == {"message": "Operation successful"}
    assert full.status_code == 201
    assert full.get_json()["data"] == [1, 2]


def test_missing_header_is_rejected(client):
    resp = client.get("/admin")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Authorization header required"}


@pytest.mark.parametrize("header", ["Token token", "Bearer token extra", "Bearer"])
def test_malformed_header_is_rejected(client, header):
    resp = client.get("/admin", headers={"Authorization": header})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid authorization header format"}


def test_bad_token_is_rejected(client):
    resp = client.get("/admin", headers={"Authorization": "Bearer token"})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid token"}


def test_expired_token_is_rejected(client):
    headers = auth_header("admin", exp_offset=-3600)
    resp = client.get("/admin", headers=headers)
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid token"}


def test_admin_token_reaches_view(client):
    user_id = uuid.uuid4()
    headers = auth_header("admin", user_id=user_id)
    resp = client.get("/admin", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json() == {"user_id": str(user_id), "role": "admin"}


def test_wrong_role_is_forbidden(client):
    headers = auth_header("buyer")
    resp = client.get("/admin", headers=headers)
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "Admin access required"}


def test_partner_message(client):
    headers = auth_header("admin")
    resp = client.get("/partner", headers=headers)
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "Partner access required"}


def test_role_check_without_authentication_denies(client):
    resp = client.get("/unguarded")
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "Access denied"}


def test_cors_headers_on_responses(client):
    resp = client.get("/admin")
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert resp.headers["Access-Control-Allow-Credentials"] == "true"
    assert "PATCH" in resp.headers["Access-Control-Allow-Methods"]


def test_preflight_answered_with_no_content(client):
    resp = client.options("/admin")
    assert resp.status_code == 204
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert "Authorization" in resp.headers["Access-Control-Allow-Headers"]