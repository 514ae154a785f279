"""Password hashing, JWT issuance and password-reset tokens."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

RESET_TOKEN_BYTES = 20
RESET_TOKEN_TTL = timedelta(minutes=10)


def get_password_hash(password: str) -> str:
    """Hash a password with a per-password salt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify plain password against hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(subject: str | int, expires_delta: timedelta | None = None) -> str:
    """Sign a JWT whose subject is the user id."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"sub": str(subject), "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> int:
    """Verify a token and return the user id it was issued for.

    Raises ``jose.JWTError`` (``ExpiredSignatureError`` for expired tokens) when
    the token is not usable.
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    subject = payload.get("sub")
    if subject is None:
        raise JWTError("Token has no subject")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise JWTError("Token subject is not a user id") from exc


def hash_reset_token(raw_token: str) -> str:
    """SHA-256 hex digest stored in place of the raw reset token."""
    return hashlib.sha256(raw_token.encode()).hexdigest()


def generate_reset_token() -> tuple[str, str, datetime]:
    """Return ``(raw_token, hashed_token, expires_at)`` for a password reset."""
    raw_token = secrets.token_hex(RESET_TOKEN_BYTES)
    return raw_token, hash_reset_token(raw_token), datetime.now(timezone.utc) + RESET_TOKEN_TTL
