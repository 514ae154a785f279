"""MeterReading Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from app.models.enums import ReadingStatus, ReadingUnit
from app.schemas.user import UserSummary


class Location(BaseModel):
    """GeoJSON-style point; coordinates are ``[longitude, latitude]``."""

    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]
    address: str = Field(min_length=1, max_length=255)

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, v: tuple[float, float]) -> tuple[float, float]:
        """Longitude must be within [-180, 180] and latitude within [-90, 90]."""
        lng, lat = v
        if not -180 <= lng <= 180:
            raise ValueError("Longitude must be between -180 and 180")
        if not -90 <= lat <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        return v

    @field_validator("address")
    @classmethod
    def strip_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please add an address")
        return v

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


class MeterReadingBase(BaseModel):
    """Base meter reading schema."""

    meter_number: str = Field(min_length=1, max_length=50)
    reading: float = Field(ge=0)
    unit: ReadingUnit = ReadingUnit.UNITS
    location: Location
    notes: str | None = Field(default=None, max_length=500)
    reader_notes: str | None = Field(default=None, max_length=500)

    @field_validator("meter_number")
    @classmethod
    def strip_meter_number(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please add a meter number")
        return v


class MeterReadingCreate(MeterReadingBase):
    """Schema for submitting a new reading."""


class MeterReadingUpdate(BaseModel):
    """Partial update; only fields that are sent are applied."""

    meter_number: str | None = Field(default=None, min_length=1, max_length=50)
    reading: float | None = Field(default=None, ge=0)
    unit: ReadingUnit | None = None
    location: Location | None = None
    status: ReadingStatus | None = None
    notes: str | None = Field(default=None, max_length=500)
    reader_notes: str | None = Field(default=None, max_length=500)

    @field_validator("meter_number")
    @classmethod
    def strip_meter_number(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Please add a meter number")
        return v


class MeterReadingResponse(BaseModel):
    """Schema for meter reading response."""

    id: int
    user: UserSummary
    meter_number: str
    reading: float
    unit: ReadingUnit
    photo: str | None
    location: Location
    status: ReadingStatus
    notes: str | None
    reader_notes: str | None
    approved_by_id: int | None
    approved_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int


class MeterReadingEnvelope(BaseModel):
    success: bool = True
    data: MeterReadingResponse


class MeterReadingPage(BaseModel):
    """Paginated list of readings."""

    success: bool = True
    count: int
    pagination: Pagination
    data: list[MeterReadingResponse]


class MeterReadingList(BaseModel):
    success: bool = True
    count: int
    data: list[MeterReadingResponse]


class PhotoUploadResponse(BaseModel):
    success: bool = True
    data: str


class DeleteResponse(BaseModel):
    success: bool = True
    data: dict = Field(default_factory=dict)
