"""MeterReading service for business logic."""

import logging
import math
from datetime import UTC, datetime
from pathlib import Path

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import (
    AppError,
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    duplicate_field,
)
from app.models.enums import DistanceUnit, ReadingStatus, Role
from app.models.meter_reading import MeterReading
from app.schemas.meter_reading import MeterReadingCreate, MeterReadingUpdate
from app.schemas.user import CurrentUser
from app.services.geocoder import Geocoder
from app.services.storage import FileTooLargeError, PhotoStorage

logger = logging.getLogger(__name__)

EARTH_RADIUS = {
    DistanceUnit.MILES: 3963.0,
    DistanceUnit.KILOMETERS: 6378.0,
}

# Columns that cannot be cleared through an update
REQUIRED_FIELDS = ("meter_number", "reading", "unit", "location", "status")


# -----------------------------------------------------------------------------
# Access control
# -----------------------------------------------------------------------------


def can_manage(reading: MeterReading, current_user: CurrentUser) -> bool:
    """Owners manage their own readings, admins manage every reading."""
    if current_user.role == Role.ADMIN:
        return True
    if current_user.role == Role.USER:
        return reading.user_id == current_user.id
    raise ValueError(f"Unhandled role: {current_user.role}")


def get_reading(db: Session, reading_id: int) -> MeterReading:
    """Get a reading with its owner loaded, or raise 404."""
    reading = (
        db.query(MeterReading)
        .options(joinedload(MeterReading.user))
        .filter(MeterReading.id == reading_id)
        .first()
    )
    if not reading:
        raise NotFoundError(f"Meter reading not found with id of {reading_id}")
    return reading


def get_reading_for_user(
    db: Session,
    reading_id: int,
    current_user: CurrentUser,
    action: str = "access",
) -> MeterReading:
    """Get a reading the current user is allowed to ``action``."""
    reading = get_reading(db, reading_id)
    if not can_manage(reading, current_user):
        raise UnauthorizedError(
            f"User {current_user.id} is not authorized to {action} this meter reading"
        )
    return reading


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------


def list_readings(
    db: Session,
    current_user: CurrentUser,
    page: int = 1,
    limit: int = 10,
    status: ReadingStatus | None = None,
) -> tuple[list[MeterReading], int]:
    """Return one page of readings, newest first, and the total match count.

    Users only ever see their own readings; admins see all of them.
    """
    query = db.query(MeterReading)
    if status is not None:
        query = query.filter(MeterReading.status == status)
    if current_user.role == Role.USER:
        query = query.filter(MeterReading.user_id == current_user.id)

    total = query.count()
    readings = (
        query.options(joinedload(MeterReading.user))
        .order_by(MeterReading.created_at.desc(), MeterReading.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return readings, total


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def central_angle(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle angle in radians between two points given in degrees (haversine)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * math.asin(min(1.0, math.sqrt(a)))


def radius_in_radians(distance: float, unit: DistanceUnit = DistanceUnit.MILES) -> float:
    """Convert a surface distance into the angle it subtends at Earth's center."""
    return distance / EARTH_RADIUS[unit]


def find_within_radius(db: Session, latitude: float, longitude: float, radius: float) -> list[MeterReading]:
    """Readings whose location lies inside the spherical cap around a point.

    A latitude/longitude bounding box narrows the candidates through the
    location index before the exact great-circle test.
    """
    query = db.query(MeterReading).options(joinedload(MeterReading.user))

    if radius < math.pi:
        lat_delta = math.degrees(radius)
        query = query.filter(
            MeterReading.latitude >= latitude - lat_delta,
            MeterReading.latitude <= latitude + lat_delta,
        )
        # Longitude bounds only hold away from the poles and the antimeridian
        if abs(latitude) + lat_delta < 90:
            lng_delta = math.degrees(math.asin(math.sin(radius) / math.cos(math.radians(latitude))))
            if -180 <= longitude - lng_delta and longitude + lng_delta <= 180:
                query = query.filter(
                    MeterReading.longitude >= longitude - lng_delta,
                    MeterReading.longitude <= longitude + lng_delta,
                )

    return [
        reading
        for reading in query.order_by(MeterReading.id).all()
        if central_angle(latitude, longitude, reading.latitude, reading.longitude) <= radius
    ]


def get_readings_in_radius(
    db: Session,
    geocoder: Geocoder,
    zipcode: str,
    distance: float,
    unit: DistanceUnit = DistanceUnit.MILES,
) -> list[MeterReading]:
    """Readings within ``distance`` of the location of a postal code."""
    point = geocoder.geocode(zipcode)
    if point is None:
        raise NotFoundError(f"Could not geocode zipcode {zipcode}")
    return find_within_radius(db, point.latitude, point.longitude, radius_in_radians(distance, unit))


# -----------------------------------------------------------------------------
# Mutations
# -----------------------------------------------------------------------------


def _pending_conflict(meter_number: str) -> BadRequestError:
    return BadRequestError(f"There is already a pending reading for meter {meter_number}")


def _commit(db: Session, meter_number: str) -> None:
    """Commit, reporting a pending-reading index violation as a conflict."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if duplicate_field(exc) == "meter_number":
            raise _pending_conflict(meter_number) from exc
        raise


def create_reading(
    db: Session,
    reading_data: MeterReadingCreate,
    current_user: CurrentUser,
) -> MeterReading:
    """Submit a new reading owned by the current user."""
    existing = (
        db.query(MeterReading.id)
        .filter(
            MeterReading.meter_number == reading_data.meter_number,
            MeterReading.status == ReadingStatus.PENDING,
        )
        .first()
    )
    if existing:
        raise _pending_conflict(reading_data.meter_number)

    reading = MeterReading(
        user_id=current_user.id,
        meter_number=reading_data.meter_number,
        reading=reading_data.reading,
        unit=reading_data.unit,
        longitude=reading_data.location.longitude,
        latitude=reading_data.location.latitude,
        address=reading_data.location.address,
        notes=reading_data.notes,
        reader_notes=reading_data.reader_notes,
        status=ReadingStatus.PENDING,
    )
    db.add(reading)
    _commit(db, reading_data.meter_number)
    logger.info("User %s submitted reading %s for meter %s", current_user.id, reading.id, reading.meter_number)
    return get_reading(db, reading.id)


def update_reading(
    db: Session,
    reading_id: int,
    reading_data: MeterReadingUpdate,
    current_user: CurrentUser,
) -> MeterReading:
    """Apply a partial update.

    Only admins may change the status; doing so records them as approver
    together with the time of the change.
    """
    reading = get_reading_for_user(db, reading_id, current_user, action="update")
    update_data = reading_data.model_dump(exclude_unset=True)

    for field in REQUIRED_FIELDS:
        if field in update_data and update_data[field] is None:
            raise BadRequestError(f"Invalid input data. {field}: cannot be null")

    if "status" in update_data:
        if not current_user.is_admin:
            raise ForbiddenError("Only admins can change the status of a meter reading")
        update_data["approved_by_id"] = current_user.id
        update_data["approved_at"] = datetime.now(UTC)

    location = update_data.pop("location", None)
    if location is not None:
        reading.longitude, reading.latitude = location["coordinates"]
        reading.address = location["address"]

    for field, value in update_data.items():
        setattr(reading, field, value)

    _commit(db, reading.meter_number)
    logger.info("User %s updated reading %s (%s)", current_user.id, reading.id, ", ".join(sorted(update_data)))
    return get_reading(db, reading_id)


def delete_reading(
    db: Session,
    reading_id: int,
    current_user: CurrentUser,
    storage: PhotoStorage,
) -> None:
    """Delete a reading and its photo.

    The photo is moved aside first, the row deletion is committed, and only
    then is the file removed; a failed commit puts the photo back.
    """
    reading = get_reading_for_user(db, reading_id, current_user, action="delete")
    photo = reading.photo

    staged = None
    if photo:
        try:
            staged = storage.stage_delete(photo)
        except OSError as exc:
            logger.error("Could not remove photo %s: %s", photo, exc)
            raise AppError("Problem deleting photo") from exc

    try:
        db.delete(reading)
        db.commit()
    except Exception:
        db.rollback()
        storage.restore(staged, photo)
        raise

    if staged is not None:
        storage.purge(staged)
    logger.info("User %s deleted reading %s", current_user.id, reading_id)


def upload_photo(
    db: Session,
    reading_id: int,
    current_user: CurrentUser,
    file: UploadFile | None,
    storage: PhotoStorage,
    max_upload_mb: int,
) -> str:
    """Store an image for a reading and link it; returns the stored filename."""
    reading = get_reading_for_user(db, reading_id, current_user, action="update")

    if file is None or not file.filename:
        raise BadRequestError("Please upload a file")

    if not (file.content_type or "").startswith("image"):
        raise BadRequestError("Please upload an image file")

    max_bytes = max_upload_mb * 1024 * 1024
    too_large = BadRequestError(f"Please upload an image less than {max_upload_mb}MB")
    if file.size is not None and file.size > max_bytes:
        raise too_large

    filename = f"photo_{reading.id}{Path(file.filename).suffix.lower()}"
    try:
        storage.save(filename, file.file, max_bytes)
    except FileTooLargeError:
        raise too_large from None
    except OSError as exc:
        logger.error("Problem with file upload for reading %s: %s", reading.id, exc)
        raise AppError("Problem with file upload") from exc

    previous = reading.photo
    reading.photo = filename
    db.commit()

    if previous and previous != filename:
        storage.purge(storage.stage_delete(previous))
    logger.info("Photo %s linked to reading %s", filename, reading.id)
    return filename
