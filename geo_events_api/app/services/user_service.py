"""
Business logic for users.

Users register with a name, e-mail and password and receive a bearer
token; logging in returns a fresh token.  New users always get the
``user`` role; promote administrators with ``set_user_role.py``.
"""

import logging
import re
import sqlite3
import uuid
from typing import List, Optional

from ..core.db import get_connection
from ..core.errors import AuthError, ConflictError, NotFoundError, StorageError, ValidationError
from ..core.security import create_access_token, hash_password, verify_password
from ..schemas.user import AuthResponse, UserLogin, UserRead, UserRegister
from .audit_service import AuditService

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


def _row_to_user(row: sqlite3.Row) -> UserRead:
    return UserRead(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        role=row["role"],
        created_at=row["created_at"],
    )


class UserService:
    """Registration, authentication and lookup of users."""

    @classmethod
    def validate_registration(cls, data: UserRegister) -> None:
        errors = []
        if not data.name.strip():
            errors.append({"field": "name", "message": "Name is required"})
        if not EMAIL_RE.match(data.email.strip()):
            errors.append({"field": "email", "message": "Please include a valid email"})
        if len(data.password) < MIN_PASSWORD_LENGTH:
            errors.append(
                {
                    "field": "password",
                    "message": f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                }
            )
        if errors:
            raise ValidationError(errors)

    @classmethod
    async def register(cls, data: UserRegister) -> AuthResponse:
        """Create a user and return it with an access token.

        Raises ``ValidationError`` for invalid input and
        ``ConflictError`` if the e-mail is already registered.
        """
        cls.validate_registration(data)
        email = data.email.strip().lower()
        logger.info("Registering user %s", email)
        user_id = uuid.uuid4().hex
        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO users (id, name, email, password, role) VALUES (?, ?, ?, ?, 'user')",
                (user_id, data.name.strip(), email, hash_password(data.password)),
            )
            conn.commit()
            row = conn.execute(
                "SELECT id, name, email, role, created_at FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise ConflictError("User already exists") from exc
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Could not register user: {exc}") from exc
        finally:
            conn.close()
        await AuditService.record(
            actor_id=user_id,
            action="create",
            object_type="user",
            object_id=user_id,
            details={"email": email},
        )
        user = _row_to_user(row)
        return AuthResponse(user=user, token=create_access_token({"sub": user.id}))

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[UserRead]:
        """Return the user when ``email`` and ``password`` match, else ``None``."""
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, name, email, role, created_at, password FROM users WHERE email = ?",
                (email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row or not verify_password(password, row["password"]):
            return None
        return _row_to_user(row)

    @classmethod
    async def login(cls, data: UserLogin) -> AuthResponse:
        errors = []
        if not EMAIL_RE.match(data.email.strip()):
            errors.append({"field": "email", "message": "Please include a valid email"})
        if not data.password:
            errors.append({"field": "password", "message": "Password is required"})
        if errors:
            raise ValidationError(errors)
        user = await cls.authenticate(data.email, data.password)
        if user is None:
            logger.warning("Failed login for %s", data.email)
            raise AuthError("Invalid credentials")
        return AuthResponse(user=user, token=create_access_token({"sub": user.id}))

    @classmethod
    async def list_users(cls) -> List[UserRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT id, name, email, role, created_at FROM users ORDER BY created_at, email"
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_user(row) for row in rows]

    @classmethod
    async def set_role(cls, email: str, role: str) -> UserRead:
        """Change the role of the user registered with ``email``.

        Raises ``ValidationError`` for an unknown role and
        ``NotFoundError`` when no such user exists.
        """
        if role not in ("user", "admin"):
            raise ValidationError([{"field": "role", "message": "Role must be 'user' or 'admin'"}])
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE users SET role = ? WHERE email = ?", (role, email.strip().lower())
            )
            conn.commit()
            row = conn.execute(
                "SELECT id, name, email, role, created_at FROM users WHERE email = ?",
                (email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if cursor.rowcount == 0 or row is None:
            raise NotFoundError("User", email)
        logger.info("User %s now has role %s", row["email"], role)
        await AuditService.record(
            actor_id=None,
            action="update",
            object_type="user",
            object_id=row["id"],
            details={"role": role},
        )
        return _row_to_user(row)
