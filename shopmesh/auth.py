"""JWT validation and issuing, roles and password hashing."""

from __future__ import annotations

import math
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any

import bcrypt
import jwt

_HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]
_BCRYPT_COST = 10
_BCRYPT_MAX_BYTES = 72


class UserRole(str, Enum):
    ADMIN = "admin"
    BUYER = "buyer"
    PARTNER = "partner"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Claims:
    """Identity carried by a validated token."""

    user_id: uuid.UUID
    role: str
    email: str = ""


class AuthError(Exception):
    """Raised when a token or password cannot be handled."""


def _as_role(text: str) -> str:
    try:
        return UserRole(text)
    except ValueError:
        return text


def _role_text(role: Any) -> str:
    return role.value if isinstance(role, UserRole) else str(role)


class TokenValidator:
    """Checks HMAC-signed tokens issued by the user service."""

    def __init__(self, secret_key: str, *, require_email: bool = False) -> None:
        self._secret_key = secret_key.encode()
        self._require_email = require_email

    def _decode(self, token: str) -> dict:
        try:
            return jwt.decode(
                token,
                self._secret_key,
                algorithms=_HMAC_ALGORITHMS,
                options={"verify_exp": False, "verify_aud": False},
            )
        except jwt.PyJWTError as exc:
            raise AuthError(str(exc)) from exc

    def validate_token(self, token: str) -> Claims:
        """Return the claims of a valid token, or raise AuthError."""
        claims = self._decode(token)

        exp = claims.get("exp")
        if (
            isinstance(exp, bool)
            or not isinstance(exp, (int, float))
            or not math.isfinite(exp)
        ):
            raise AuthError("invalid exp in token")
        if int(exp) < int(time.time()):
            raise AuthError("token expired")

        user_id_text = claims.get("user_id")
        if not isinstance(user_id_text, str):
            raise AuthError("invalid user_id in token")
        try:
            user_id = uuid.UUID(user_id_text)
        except ValueError as exc:
            raise AuthError("invalid UUID format") from exc

        email = ""
        if self._require_email:
            email = claims.get("email")
            if not isinstance(email, str):
                raise AuthError("invalid email in token")

        role = claims.get("role")
        if not isinstance(role, str):
            raise AuthError("invalid role in token")

        return Claims(user_id=user_id, role=_as_role(role), email=email)


class TokenService(TokenValidator):
    """Issues and validates tokens and hashes passwords for the user service."""

    def __init__(self, secret_key: str, expiration_hours: int) -> None:
        super().__init__(secret_key, require_email=True)
        self.expiration_hours = expiration_hours

    def generate_token(self, user: Any) -> str:
        """Sign an HS256 token for a user with id, email and role attributes."""
        now = int(time.time())
        payload = {
            "user_id": str(user.id),
            "email": user.email,
            "role": _role_text(user.role),
            "exp": now + self.expiration_hours * 3600,
            "iat": now,
        }
        return jwt.encode(payload, self._secret_key, algorithm="HS256")

    def validate_token(self, token: str) -> Claims:
        return super().validate_token(token)

    def hash_password(self, password: str) -> str:
        data = password.encode()
        if len(data) > _BCRYPT_MAX_BYTES:
            raise AuthError("bcrypt: password length exceeds 72 bytes")
        return bcrypt.hashpw(data, bcrypt.gensalt(rounds=_BCRYPT_COST)).decode()

    def check_password_hash(self, password: str, hashed: str) -> bool:
        data = password.encode()
        if len(data) > _BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(data, hashed.encode())
        except ValueError:
            return False