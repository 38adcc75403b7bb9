"""
sessionauth Authentication Utilities

Core functions for password hashing (bcrypt), signed session tokens (JWT),
user registration and credential verification.

Session tokens are stateless: nothing about a session is stored server-side.
Issuing and reading a token are plain functions; the HTTP layer composes
them explicitly.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

import bcrypt
import jwt
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sessionauth.db.models import User
from sessionauth.errors import ConflictError, PersistenceError, ValidationError
from sessionauth.schemas import SessionUser, SessionView

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 10

_REQUIRED_CLAIMS = ["sub", "username", "iat", "exp"]


# ── Password helpers ─────────────────────────────────────────────────────────

def _password_bytes(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password using bcrypt with a fixed cost factor."""
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(_password_bytes(password), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plain-text password against a stored bcrypt hash."""
    return bcrypt.checkpw(
        _password_bytes(password),
        password_hash.encode("utf-8"),
    )


@lru_cache()
def _dummy_hash(rounds: int) -> str:
    return hash_password(uuid.uuid4().hex, rounds)


# ── Session tokens ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SessionClaims:
    """Verified contents of a session token."""

    user_id: uuid.UUID
    username: str
    issued_at: datetime
    expires_at: datetime


def issue_session_token(user: User, settings, now: Optional[datetime] = None) -> str:
    """
    Create a signed session token for a verified user.

    Only the user's id and username are embedded; the expiry is
    ``SESSION_MAX_AGE_DAYS`` after *now*, truncated to whole seconds.
    """
    now = now or datetime.now(timezone.utc)
    issued_at = int(now.timestamp())
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "iat": issued_at,
        "exp": issued_at + settings.SESSION_MAX_AGE_DAYS * 24 * 60 * 60,
    }
    return jwt.encode(payload, settings.SESSION_SECRET, algorithm=settings.SESSION_ALGORITHM)


def decode_session_token(
    token: Optional[str],
    settings,
    now: Optional[datetime] = None,
) -> Optional[SessionClaims]:
    """
    Verify a session token and return its claims, or None.

    The token is valid while ``now <= exp`` and rejected strictly after.
    Bad signatures, malformed tokens and missing claims also return None.
    """
    if not token:
        return None

    try:
        payload = jwt.decode(
            token,
            settings.SESSION_SECRET,
            algorithms=[settings.SESSION_ALGORITHM],
            options={
                "require": _REQUIRED_CLAIMS,
                "verify_exp": False,
                "verify_iat": False,
            },
        )
    except jwt.InvalidTokenError as exc:
        logger.debug("Rejected session token: %s", exc)
        return None

    try:
        expires = int(payload["exp"])
        issued = int(payload["iat"])
        user_id = uuid.UUID(str(payload["sub"]))
    except (TypeError, ValueError):
        return None

    username = payload["username"]
    if not isinstance(username, str) or not username:
        return None

    now = now or datetime.now(timezone.utc)
    if now.timestamp() > expires:
        return None

    return SessionClaims(
        user_id=user_id,
        username=username,
        issued_at=datetime.fromtimestamp(issued, tz=timezone.utc),
        expires_at=datetime.fromtimestamp(expires, tz=timezone.utc),
    )


def build_session_view(claims: SessionClaims, email: str) -> SessionView:
    """Assemble the per-request session view from verified claims."""
    return SessionView(
        user=SessionUser(
            id=str(claims.user_id),
            username=claims.username,
            email=email,
        ),
        expires=claims.expires_at,
    )


# ── User registration & authentication ───────────────────────────────────────

def register_user(
    db: Session,
    username: Optional[str],
    email: Optional[str],
    password: Optional[str],
    rounds: int = DEFAULT_BCRYPT_ROUNDS,
) -> User:
    """
    Register a new user account and commit it.

    Raises:
        ValidationError if any field is missing or empty.
        ConflictError if the username or email is already taken.
        PersistenceError on any other database failure.
    """
    # Username and password are kept exactly as submitted; only the email
    # is normalized, so only the email may be blank after stripping.
    if not username or not password or not (email or "").strip():
        raise ValidationError("Missing fields")

    email = email.strip()
    email_lower = email.lower()

    try:
        existing = db.scalars(
            select(User).where(
                or_(User.username == username, User.email_lower == email_lower)
            ).limit(1)
        ).first()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("Error creating user") from exc

    if existing is not None:
        logger.info("Registration rejected for username=%r: already exists", username)
        raise ConflictError("User already exists")

    user = User(
        username=username,
        email=email,
        email_lower=email_lower,
        password_hash=hash_password(password, rounds),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration for the same name.
        db.rollback()
        logger.info("Registration rejected for username=%r: unique constraint", username)
        raise ConflictError("User already exists") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("Error creating user") from exc

    logger.info("Registered user id=%s username=%r", user.id, user.username)
    return user


def authenticate_user(
    db: Session,
    username: Optional[str],
    password: Optional[str],
    rounds: int = DEFAULT_BCRYPT_ROUNDS,
) -> Optional[User]:
    """
    Validate a username/password pair. Returns the User or None.

    An unknown username still pays for one bcrypt comparison so it takes
    about as long as a wrong password.
    """
    if not username or not password:
        return None

    try:
        user = db.scalars(select(User).where(User.username == username)).first()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError() from exc

    if user is None:
        verify_password(password, _dummy_hash(rounds))
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


def get_user_by_id(db: Session, user_id: uuid.UUID) -> Optional[User]:
    """Load a user by primary key."""
    try:
        return db.get(User, user_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError() from exc
