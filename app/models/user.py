"""User database model."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.core.security import generate_reset_token, get_password_hash, verify_password
from app.models.enums import Role

if TYPE_CHECKING:
    from app.models.meter_reading import MeterReading


class User(Base):
    """User model for authentication."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(50))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    role: Mapped[Role] = mapped_column(
        Enum(Role, values_callable=lambda roles: [r.value for r in roles], native_enum=False),
        default=Role.USER,
    )
    reset_password_token: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    reset_password_expire: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    # Relationships
    readings: Mapped[list["MeterReading"]] = relationship(
        back_populates="user",
        foreign_keys="MeterReading.user_id",
    )

    def set_password(self, password: str) -> None:
        """Store a salted hash of the password."""
        self.hashed_password = get_password_hash(password)

    def match_password(self, password: str) -> bool:
        """Check a plain password against the stored hash."""
        return verify_password(password, self.hashed_password)

    def create_reset_password_token(self) -> str:
        """Issue a reset token; only its hash and expiry are kept on the user."""
        raw_token, hashed_token, expires_at = generate_reset_token()
        self.reset_password_token = hashed_token
        self.reset_password_expire = expires_at
        return raw_token

    def clear_reset_password_token(self) -> None:
        self.reset_password_token = None
        self.reset_password_expire = None
