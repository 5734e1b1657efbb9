"""
Business logic for users.

Registration validates the e-mail and password strength, hashes the
password and stores the user.  Authentication verifies the password
and, when the stored hash still uses the legacy format, replaces it
with a hash in the current format.
"""

import logging
import re
import sqlite3
from typing import Optional

from ..core.db import Database
from ..core.errors import Conflict, NotFound, ValidationError
from ..core.security import hash_password, needs_rehash, verify_password
from ..schemas.user import UserCreate, UserRead


logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

USER_COLUMNS = "id, name, email, city, state, avatar_url, balance, created_at"


def validate_email(email: str) -> str:
    email = email.strip()
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")
    return email


def validate_password(password: str) -> None:
    """Reject passwords shorter than eight characters or lacking letters or digits."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not re.search(r"[A-Za-z]", password) or not re.search(r"\d", password):
        raise ValidationError("Password must contain letters and numbers")


class UserService:
    """Registration, authentication and profile lookups."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def register(self, data: UserCreate) -> UserRead:
        """Create a new user and return the stored profile.

        Raises ``ValidationError`` for a blank name, malformed e-mail or
        weak password and ``Conflict`` when the e-mail is taken.
        """
        name = data.name.strip()
        if not name:
            raise ValidationError("Name is required")
        email = validate_email(data.email)
        validate_password(data.password)

        try:
            with self.db.transaction() as cursor:
                existing = cursor.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
                if existing:
                    raise Conflict("Email is already registered")
                cursor.execute(
                    "INSERT INTO users (name, email, password_hash, city, state) VALUES (?, ?, ?, ?, ?)",
                    (name, email, hash_password(data.password), data.city, data.state),
                )
                user_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            # Lost a race with another registration for the same address.
            raise Conflict("Email is already registered") from exc
        logger.info("Registered user %s (%s)", user_id, email)
        return await self.get_user(user_id)

    async def authenticate(self, email: str, password: str) -> Optional[UserRead]:
        """Return the user when the credentials match, otherwise ``None``."""
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT id, password_hash FROM users WHERE email = ?",
                (email.strip(),),
            ).fetchone()
        if not row or not verify_password(password, row["password_hash"]):
            logger.info("Failed login for %s", email)
            return None
        if needs_rehash(row["password_hash"]):
            with self.db.transaction() as cursor:
                cursor.execute(
                    "UPDATE users SET password_hash = ? WHERE id = ?",
                    (hash_password(password), row["id"]),
                )
            logger.info("Upgraded password hash for user %s", row["id"])
        return await self.get_user(row["id"])

    async def get_user(self, user_id: int) -> UserRead:
        with self.db.connection() as conn:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        if not row:
            raise NotFound("User not found")
        return UserRead.model_validate(dict(row))

    async def get_user_by_email(self, email: str) -> UserRead:
        with self.db.connection() as conn:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE email = ?", (email.strip(),)).fetchone()
        if not row:
            raise NotFound(f"User {email} does not exist")
        return UserRead.model_validate(dict(row))

    async def set_password(self, email: str, password: str) -> None:
        """Replace the password of an existing user (administrative reset)."""
        validate_password(password)
        with self.db.transaction() as cursor:
            cursor.execute(
                "UPDATE users SET password_hash = ? WHERE email = ?",
                (hash_password(password), email.strip()),
            )
            if cursor.rowcount == 0:
                raise NotFound(f"User {email} does not exist")
        logger.info("Password reset for %s", email)
