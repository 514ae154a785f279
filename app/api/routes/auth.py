"""Authentication routes for user registration and login."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user, get_settings
from app.core.config import Settings
from app.core.database import get_db
from app.core.errors import UnauthorizedError
from app.core.security import create_access_token
from app.models.user import User
from app.schemas.user import (
    CurrentUser,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    IdentityEnvelope,
    LoginRequest,
    ResetPasswordRequest,
    Token,
    UserCreate,
    UserEnvelope,
    UserResponse,
)
from app.services import auth as auth_service

router = APIRouter(prefix="/users", tags=["authentication"])

TOKEN_COOKIE = "token"


def _token_response(response: Response, user: User, settings: Settings) -> Token:
    """Issue a JWT for the user, also set as an HttpOnly cookie."""
    token = create_access_token(user.id)
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
    return Token(token=token, data=UserResponse.model_validate(user))


@router.post("/register", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)) -> UserEnvelope:
    """Register a new user."""
    user = auth_service.create_user(db, user_data)
    return UserEnvelope(data=UserResponse.model_validate(user))


@router.post("/login", response_model=Token)
def login(
    login_data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Token:
    """Login and receive a JWT access token."""
    user = auth_service.authenticate_user(db, login_data.email, login_data.password)
    if not user:
        raise UnauthorizedError("Invalid credentials")
    return _token_response(response, user, settings)


@router.get("/me", response_model=IdentityEnvelope)
def me(current_user: CurrentUser = Depends(get_current_user)) -> IdentityEnvelope:
    """Return the authenticated identity."""
    return IdentityEnvelope(data=current_user)


@router.post("/logout")
def logout(response: Response, current_user: CurrentUser = Depends(get_current_user)) -> dict:
    """Clear the session cookie."""
    response.delete_cookie(TOKEN_COOKIE)
    return {"success": True, "data": {}}


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
def forgot_password(
    request_data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ForgotPasswordResponse:
    """Start a password reset.

    No mail is sent; outside production the raw token is returned so the reset
    can be completed by the client.
    """
    raw_token = auth_service.request_password_reset(db, request_data.email)
    return ForgotPasswordResponse(
        message="Password reset token generated",
        reset_token=None if settings.is_production else raw_token,
    )


@router.put("/reset-password/{reset_token}", response_model=Token)
def reset_password(
    reset_token: str,
    request_data: ResetPasswordRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Token:
    """Set a new password with a reset token and log the user in."""
    user = auth_service.reset_password(db, reset_token, request_data.password)
    return _token_response(response, user, settings)
