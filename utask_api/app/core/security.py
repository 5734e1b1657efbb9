"""
Security helpers for password hashing and JWT authentication.

This module implements a lightweight JSON Web Token (JWT) mechanism
using HMAC‑SHA256 signatures and base64url encoding.  Tokens carry the
claims ``userId`` and ``email`` plus ``iat``/``exp`` timestamps and are
signed with the secret key from the application settings.

Passwords are hashed with PBKDF2‑HMAC‑SHA256 and a random salt.  The
stored form is ``$pbkdf2-sha256$<iterations>$<salt>$<hash>``; the
older ``<salt>$<hash>`` form written by earlier tooling is still
accepted and flagged by ``needs_rehash`` so it can be upgraded on the
next successful login.
"""

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, settings as default_settings
from .db import Database, get_db


PASSWORD_SCHEME = "pbkdf2-sha256"
PASSWORD_ITERATIONS = 100_000
LEGACY_ITERATIONS = 100_000
SALT_BYTES = 16
AUTH_COOKIE_NAME = "token"


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    """Compute HMAC‑SHA256 signature of a message using the given secret."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[int] = None,
    secret_key: Optional[str] = None,
) -> str:
    """Create a signed JWT token with the given payload.

    The payload is extended with ``iat`` (issue time) and ``exp``
    (expiration time) as UNIX timestamps.  The token is a string of the
    form ``header.payload.signature``, each part base64url encoded.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. ``{"userId": 1, "email": ...}``).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.
    secret_key : Optional[str]
        Signing secret.  Defaults to ``settings.secret_key``.

    Returns
    -------
    str
        A signed JWT token.
    """
    to_encode = data.copy()
    now = int(time.time())
    exp_seconds = expires_delta if expires_delta is not None else default_settings.access_token_expire_minutes * 60
    to_encode["iat"] = now
    to_encode["exp"] = now + exp_seconds
    header = {"alg": "HS256", "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature = _sign(signing_input, secret_key or default_settings.secret_key)
    return f"{header_b64}.{payload_b64}.{_b64_url_encode(signature)}"


def decode_access_token(token: str, secret_key: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Verify and decode a JWT token.

    Returns the payload if the signature matches and ``exp`` lies in
    the future, otherwise ``None``.  Malformed tokens also yield
    ``None``.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    expected_sig = _sign(signing_input, secret_key or default_settings.secret_key)
    try:
        actual_sig = _b64_url_decode(signature_b64)
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        # binascii.Error and json.JSONDecodeError are both ValueErrors
        return None
    # Constant‑time comparison to prevent timing attacks
    if not hmac.compare_digest(expected_sig, actual_sig):
        return None
    if not isinstance(data, dict):
        return None
    exp = data.get("exp")
    if not isinstance(exp, (int, float)) or int(exp) < int(time.time()):
        return None
    return data


def hash_password(password: str, iterations: int = PASSWORD_ITERATIONS) -> str:
    """Hash a password using PBKDF2‑HMAC with SHA‑256 and a fresh salt."""
    salt = os.urandom(SALT_BYTES)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"${PASSWORD_SCHEME}${iterations}${salt.hex()}${dk.hex()}"


def _split_hash(hashed_password: str) -> Optional[tuple[int, bytes, bytes]]:
    parts = hashed_password.split("$")
    try:
        if len(parts) == 5 and parts[0] == "" and parts[1] == PASSWORD_SCHEME:
            return int(parts[2]), bytes.fromhex(parts[3]), bytes.fromhex(parts[4])
        if len(parts) == 2:
            return LEGACY_ITERATIONS, bytes.fromhex(parts[0]), bytes.fromhex(parts[1])
    except ValueError:
        return None
    return None


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a stored hash.

    Both the current and the legacy format are understood.  Unknown
    formats (for example bcrypt hashes) never verify.
    """
    if not hashed_password:
        return False
    parsed = _split_hash(hashed_password)
    if parsed is None:
        return False
    iterations, salt, stored_hash = parsed
    if iterations <= 0 or not salt or not stored_hash:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(dk, stored_hash)


def needs_rehash(hashed_password: str) -> bool:
    """Whether a stored hash should be replaced by the current format."""
    return not hashed_password.startswith(f"${PASSWORD_SCHEME}$")


def get_settings(request: Request) -> Settings:
    """Dependency returning the settings the application was built with."""
    return request.app.state.settings


security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Database = Depends(get_db),
    app_settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Dependency that retrieves the current authenticated user.

    The token is taken from the ``Authorization: Bearer`` header, or
    from the ``token`` cookie when no header is sent.  A missing,
    tampered or expired token, or a token whose user no longer exists,
    results in HTTP 401.  On success returns the token payload with
    ``user_id`` attached.
    """
    token = credentials.credentials if credentials else request.cookies.get(AUTH_COOKIE_NAME)
    if not token:
        raise _unauthorized("Not authenticated")

    payload = decode_access_token(token, app_settings.secret_key)
    if not payload or not payload.get("userId"):
        raise _unauthorized("Invalid or expired token")

    with db.connection() as conn:
        user_row = conn.execute("SELECT id, email FROM users WHERE id = ?", (payload["userId"],)).fetchone()
    if not user_row:
        raise _unauthorized("User no longer exists")

    payload["user_id"] = user_row["id"]
    return payload
