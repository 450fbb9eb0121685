from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from db import seed_user_defaults
from db.models import User
from db.session import get_session
from services.context import SessionContext
from services.errors import PersistenceError


logger = logging.getLogger("preventivi.auth")

HASH_ALGORITHM = "pbkdf2_sha256"
HASH_ITERATIONS = 260_000
DEFAULT_USERNAME = "admin"
DEFAULT_PASSWORD = "admin"


def hash_password(password: str, salt: Optional[str] = None, iterations: int = HASH_ITERATIONS) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"{HASH_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algorithm, iterations, salt, expected = stored.split("$", 3)
        rounds = int(iterations)
    except ValueError:
        return False
    if algorithm != HASH_ALGORITHM:
        return False
    candidate = hash_password(password, salt, rounds).rsplit("$", 1)[1]
    return hmac.compare_digest(candidate, expected)


def authenticate(username: str, password: str) -> Optional[SessionContext]:
    name = (username or "").strip()
    if not name or not password:
        return None
    with get_session() as session:
        user = session.execute(
            select(User).where(func.lower(User.username) == name.lower())
        ).scalar_one_or_none()
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login for %s", name)
            return None
        logger.info("User %s logged in", user.username)
        return SessionContext(user_id=user.id, username=user.username)


def create_user(username: str, password: str, display_name: str = "") -> SessionContext:
    with get_session() as session:
        try:
            user = User(
                username=username.strip(),
                password_hash=hash_password(password),
                display_name=display_name or None,
            )
            session.add(user)
            session.flush()
            seed_user_defaults(session, user.id)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Creating user %s failed", username)
            raise PersistenceError(str(exc)) from exc
        return SessionContext(user_id=user.id, username=user.username)


def ensure_default_user() -> Optional[SessionContext]:
    """Create ``admin/admin`` when the database has no users."""
    with get_session() as session:
        has_users = session.execute(select(User.id).limit(1)).first() is not None
    if has_users:
        return None
    logger.info("No users found, creating default user %s", DEFAULT_USERNAME)
    return create_user(DEFAULT_USERNAME, DEFAULT_PASSWORD, "Amministratore")


__all__ = [
    "hash_password",
    "verify_password",
    "authenticate",
    "create_user",
    "ensure_default_user",
]
