"""Meter reading API routes."""

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user, get_geocoder, get_settings, get_storage, require_roles
from app.core.config import Settings
from app.core.database import get_db
from app.models.enums import DistanceUnit, ReadingStatus, Role
from app.schemas.meter_reading import (
    DeleteResponse,
    MeterReadingCreate,
    MeterReadingEnvelope,
    MeterReadingList,
    MeterReadingPage,
    MeterReadingResponse,
    MeterReadingUpdate,
    Pagination,
    PhotoUploadResponse,
)
from app.schemas.user import CurrentUser
from app.services import meter_reading as reading_service
from app.services.geocoder import Geocoder
from app.services.storage import PhotoStorage

router = APIRouter(prefix="/meters", tags=["meter-readings"])


@router.get("", response_model=MeterReadingPage)
def list_readings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: ReadingStatus | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> MeterReadingPage:
    """List readings: admins see all, users see their own."""
    readings, total = reading_service.list_readings(db, current_user, page, limit, status_filter)
    return MeterReadingPage(
        count=len(readings),
        pagination=Pagination(
            current_page=page,
            total_pages=reading_service.total_pages(total, limit),
            total_items=total,
        ),
        data=[MeterReadingResponse.model_validate(r) for r in readings],
    )


@router.post("", response_model=MeterReadingEnvelope, status_code=status.HTTP_201_CREATED)
def create_reading(
    reading_data: MeterReadingCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> MeterReadingEnvelope:
    """Submit a new meter reading."""
    reading = reading_service.create_reading(db, reading_data, current_user)
    return MeterReadingEnvelope(data=MeterReadingResponse.model_validate(reading))


@router.get("/radius/{zipcode}/{distance}", response_model=MeterReadingList)
def get_readings_in_radius(
    zipcode: str,
    distance: float = Path(gt=0),
    unit: DistanceUnit = Query(DistanceUnit.MILES),
    db: Session = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
    current_user: CurrentUser = Depends(require_roles(Role.ADMIN)),
) -> MeterReadingList:
    """Find readings within a distance of a postal code (admin only)."""
    readings = reading_service.get_readings_in_radius(db, geocoder, zipcode, distance, unit)
    return MeterReadingList(
        count=len(readings),
        data=[MeterReadingResponse.model_validate(r) for r in readings],
    )


@router.get("/{reading_id}", response_model=MeterReadingEnvelope)
def get_reading(
    reading_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> MeterReadingEnvelope:
    """Get a single reading."""
    reading = reading_service.get_reading_for_user(db, reading_id, current_user)
    return MeterReadingEnvelope(data=MeterReadingResponse.model_validate(reading))


@router.put("/{reading_id}", response_model=MeterReadingEnvelope)
def update_reading(
    reading_id: int,
    reading_data: MeterReadingUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> MeterReadingEnvelope:
    """Update a reading; admins may also change its status."""
    reading = reading_service.update_reading(db, reading_id, reading_data, current_user)
    return MeterReadingEnvelope(data=MeterReadingResponse.model_validate(reading))


@router.delete("/{reading_id}", response_model=DeleteResponse)
def delete_reading(
    reading_id: int,
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_storage),
    current_user: CurrentUser = Depends(get_current_user),
) -> DeleteResponse:
    """Delete a reading together with its photo."""
    reading_service.delete_reading(db, reading_id, current_user, storage)
    return DeleteResponse()


@router.put("/{reading_id}/photo", response_model=PhotoUploadResponse)
def upload_photo(
    reading_id: int,
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    current_user: CurrentUser = Depends(get_current_user),
) -> PhotoUploadResponse:
    """Upload the meter photo for a reading."""
    filename = reading_service.upload_photo(
        db, reading_id, current_user, file, storage, settings.MAX_FILE_UPLOAD
    )
    return PhotoUploadResponse(data=filename)
