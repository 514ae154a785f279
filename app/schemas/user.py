"""User Pydantic schemas for request/response validation."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.enums import Role


class UserBase(BaseModel):
    """Base user schema."""

    name: str = Field(min_length=1, max_length=50)
    email: EmailStr

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Names are stored trimmed and must not be blank."""
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserCreate(UserBase):
    """Schema for registering a new user."""

    password: str = Field(min_length=6, max_length=72)
    role: Role


class UserResponse(UserBase):
    """Schema for user response; never carries the password hash."""

    id: int
    role: Role
    created_at: datetime

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    """Owner details embedded in meter readings."""

    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}


class CurrentUser(BaseModel):
    """Authenticated identity attached to a request."""

    id: int
    role: Role
    name: str
    email: str

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class LoginRequest(BaseModel):
    """Schema for login request."""

    email: EmailStr
    password: str = Field(min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(min_length=6, max_length=72)


class UserEnvelope(BaseModel):
    success: bool = True
    data: UserResponse


class IdentityEnvelope(BaseModel):
    success: bool = True
    data: CurrentUser


class Token(BaseModel):
    """Schema for JWT token response."""

    success: bool = True
    token: str
    token_type: str = "bearer"
    data: UserResponse


class ForgotPasswordResponse(BaseModel):
    success: bool = True
    message: str
    reset_token: str | None = None
