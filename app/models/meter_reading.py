"""MeterReading database model."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Enum, Float, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import ReadingStatus, ReadingUnit

if TYPE_CHECKING:
    from app.models.user import User


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class MeterReading(Base):
    """Photo-backed meter reading going through the approval workflow."""

    __tablename__ = "meter_readings"
    __table_args__ = (
        # At most one pending reading per meter number
        Index(
            "uq_meter_readings_pending_meter_number",
            "meter_number",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
        # Bounding-box prefilter for radius searches
        Index("ix_meter_readings_location", "latitude", "longitude"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    meter_number: Mapped[str] = mapped_column(String(50), index=True)
    reading: Mapped[float] = mapped_column(Float)
    unit: Mapped[ReadingUnit] = mapped_column(
        Enum(ReadingUnit, values_callable=_enum_values, native_enum=False),
        default=ReadingUnit.UNITS,
    )
    photo: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # GeoJSON-style point: coordinates are [longitude, latitude]
    location_type: Mapped[str] = mapped_column(String(10), default="Point")
    longitude: Mapped[float] = mapped_column(Float)
    latitude: Mapped[float] = mapped_column(Float)
    address: Mapped[str] = mapped_column(String(255))

    status: Mapped[ReadingStatus] = mapped_column(
        Enum(ReadingStatus, values_callable=_enum_values, native_enum=False),
        default=ReadingStatus.PENDING,
        index=True,
    )
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reader_notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    approved_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="readings", foreign_keys=[user_id])
    approved_by: Mapped["User | None"] = relationship(foreign_keys=[approved_by_id])

    @property
    def location(self) -> dict[str, object]:
        """Location as a GeoJSON-like point with its address."""
        return {
            "type": self.location_type,
            "coordinates": [self.longitude, self.latitude],
            "address": self.address,
        }
