"""
Security helpers for password hashing and JWT authentication.

This module implements a lightweight JSON Web Token (JWT) mechanism
using HMAC-SHA256 signatures and base64url encoding.  Tokens embed the
user id as ``sub`` and an expiration timestamp (``exp``).  Passwords
are hashed with PBKDF2-HMAC-SHA256 and a random salt.

``resolve_actor`` is the identity resolver used by every protected
route: it turns a bearer credential into an ``Actor`` or raises one of
the ``AuthError`` subclasses.
"""

import base64
import hashlib
import hmac
import json
import logging
import os
import time
from typing import Callable, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..schemas.user import Actor
from .config import settings
from .db import get_connection
from .errors import ForbiddenError, InvalidCredentialError, MissingCredentialError

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000
JWT_ALGORITHM = "HS256"


def _b64_url_encode(data: bytes) -> str:
    """Base64-url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64-url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, str], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT token with the given payload.

    The payload is extended with an ``exp`` field (UNIX timestamp).
    Clients send the token back as ``Authorization: Bearer <token>``.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. ``{"sub": user_id}``).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.
    """
    to_encode = data.copy()
    exp_seconds = expires_delta or settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": JWT_ALGORITHM, "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(token: str) -> Optional[Dict[str, str]]:
    """Verify and decode a JWT token.

    Returns the payload dictionary when the signature matches and the
    token has not expired, otherwise ``None``.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    try:
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        expected_sig = _sign(signing_input, settings.secret_key)
        actual_sig = _b64_url_decode(signature_b64)
        if not hmac.compare_digest(expected_sig, actual_sig):
            return None
        header = json.loads(_b64_url_decode(header_b64).decode("utf-8"))
        if not isinstance(header, dict) or header.get("alg") != JWT_ALGORITHM:
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        # binascii.Error and json.JSONDecodeError are both ValueErrors
        return None
    if not isinstance(data, dict):
        return None
    exp = data.get("exp")
    if not isinstance(exp, (int, float)) or int(exp) < int(time.time()):
        return None
    return data


def resolve_actor(credential: Optional[str]) -> Actor:
    """Resolve a bearer credential to the authenticated actor.

    Raises
    ------
    MissingCredentialError
        If no credential was supplied.
    InvalidCredentialError
        If the token does not verify or its subject is not a user.
    """
    if not credential:
        raise MissingCredentialError()
    payload = decode_access_token(credential)
    if not payload or not payload.get("sub"):
        raise InvalidCredentialError()
    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT id, email, role FROM users WHERE id = ?",
            (payload["sub"],),
        ).fetchone()
    finally:
        conn.close()
    if not row:
        logger.warning("Token subject %s no longer exists", payload["sub"])
        raise InvalidCredentialError("User not found")
    return Actor(id=row["id"], email=row["email"], role=row["role"])


security = HTTPBearer(auto_error=False)


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Actor:
    """Dependency that retrieves the current authenticated actor."""
    return resolve_actor(credentials.credentials if credentials else None)


# ---------------------------------------------------------------------------
# Role-based access control (RBAC) helpers
# ---------------------------------------------------------------------------

def require_roles(*roles: str) -> Callable[[Actor], Actor]:
    """Dependency factory to enforce that the current actor has one of ``roles``.

    Use in endpoints via ``Depends(require_roles("admin"))``.
    """

    def _role_dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise ForbiddenError("Admin access required")
        return actor

    return _role_dependency


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2-HMAC with SHA-256.

    Returns the salt and hash in hex separated by ``$``.
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored ``salt$hash`` string."""
    try:
        salt_hex, hash_hex = hashed_password.split("$", 1)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except (AttributeError, ValueError):
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)
