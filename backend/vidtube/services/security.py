"""
Credential hashing and session tokens.

Passwords are hashed with passlib's pbkdf2_sha256. Access and refresh tokens
are itsdangerous timed signatures over a small JSON payload; the two kinds
use different salts so one can never be replayed as the other.
"""
from __future__ import annotations

import secrets
from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from passlib.hash import pbkdf2_sha256

from ..settings import get_settings

ACCESS_SALT = "vidtube.access"
REFRESH_SALT = "vidtube.refresh"


class InvalidToken(Exception):
    """Raised when a token is malformed, tampered with or expired."""


def hash_password(password: str) -> str:
    return pbkdf2_sha256.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pbkdf2_sha256.verify(password, password_hash)
    except ValueError:
        # not a pbkdf2_sha256 hash
        return False


def _serializer(salt: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(get_settings().secret_key, salt=salt)


def issue_access_token(user_id: int, username: str, email: str) -> str:
    return _serializer(ACCESS_SALT).dumps({"sub": user_id, "username": username, "email": email})


def issue_refresh_token(user_id: int) -> str:
    return _serializer(REFRESH_SALT).dumps({"sub": user_id, "jti": secrets.token_urlsafe(16)})


def _verify(token: str, salt: str, max_age: int) -> dict[str, Any]:
    try:
        payload = _serializer(salt).loads(token, max_age=max_age)
    except SignatureExpired as exc:
        raise InvalidToken("Token expired") from exc
    except BadSignature as exc:
        raise InvalidToken("Invalid token") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("sub"), int):
        raise InvalidToken("Invalid token payload")
    return payload


def verify_access_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    return _verify(token, ACCESS_SALT, settings.access_token_expiry_minutes * 60)


def verify_refresh_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    return _verify(token, REFRESH_SALT, settings.refresh_token_expiry_days * 24 * 3600)
