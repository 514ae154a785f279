"""Request dependencies: authentication, role guards and shared services."""

from collections.abc import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.database import get_db
from app.core.errors import ForbiddenError, NotFoundError, UnauthorizedError
from app.core.security import decode_access_token
from app.models.enums import Role
from app.schemas.user import CurrentUser
from app.services.auth import get_user_by_id
from app.services.geocoder import Geocoder
from app.services.storage import PhotoStorage


def get_bearer_token(request: Request) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Not authorized, no token")
    return token.strip()


def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> CurrentUser:
    """Resolve the authenticated user.

    Token errors propagate as ``JWTError`` and are answered with 401 by the
    exception handlers.
    """
    user_id = decode_access_token(token)
    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return CurrentUser.model_validate(user)


def require_roles(*roles: Role) -> Callable[..., CurrentUser]:
    """Dependency factory allowing only the given roles."""

    def role_checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise ForbiddenError(
                f"User role {current_user.role.value} is not authorized to access this route"
            )
        return current_user

    return role_checker


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> PhotoStorage:
    return request.app.state.storage


def get_geocoder(request: Request) -> Geocoder:
    return request.app.state.geocoder
