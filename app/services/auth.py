"""Authentication service: registration, login and password resets."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from app.core.errors import BadRequestError, NotFoundError
from app.core.security import hash_reset_token
from app.models.user import User
from app.schemas.user import UserCreate

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email (case-insensitive)."""
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_user_by_id(db: Session, user_id: int) -> User | None:
    """Get a user by ID."""
    return db.get(User, user_id)


def create_user(db: Session, user_data: UserCreate) -> User:
    """Register a new user with a hashed password.

    A duplicate email surfaces as an ``IntegrityError`` on commit, which the
    error handlers turn into a duplicate-field response.
    """
    user = User(
        name=user_data.name,
        email=user_data.email,
        role=user_data.role,
    )
    user.set_password(user_data.password)
    db.add(user)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    logger.info("Registered user %s with role %s", user.id, user.role.value)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    """Return the user if the credentials match, else None."""
    user = get_user_by_email(db, email)
    if not user or not user.match_password(password):
        return None
    return user


def request_password_reset(db: Session, email: str) -> str:
    """Issue a reset token for the user with this email and return the raw token."""
    user = get_user_by_email(db, email)
    if not user:
        raise NotFoundError("There is no user with that email")

    raw_token = user.create_reset_password_token()
    db.commit()
    logger.info("Password reset requested for user %s", user.id)
    return raw_token


def _as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back without tzinfo
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def reset_password(db: Session, raw_token: str, new_password: str) -> User:
    """Set a new password using a reset token that has not expired."""
    user = (
        db.query(User)
        .filter(User.reset_password_token == hash_reset_token(raw_token))
        .first()
    )
    if (
        not user
        or user.reset_password_expire is None
        or _as_utc(user.reset_password_expire) <= datetime.now(UTC)
    ):
        raise BadRequestError("Invalid token")

    user.set_password(new_password)
    user.clear_reset_password_token()
    db.commit()
    db.refresh(user)
    logger.info("Password reset completed for user %s", user.id)
    return user
