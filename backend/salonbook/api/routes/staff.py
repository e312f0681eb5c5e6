"""
Staff API routes.
"""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from salonbook.api.dependencies import get_db, get_optional_user
from salonbook.lib.logging import get_logger
from salonbook.models.staff import Staff
from salonbook.models.services import MAX_DURATION_MINUTES
from salonbook.models.users import User
from salonbook.services.availability_service import AvailabilityService
from salonbook.services.errors import StaffNotFoundError


logger = get_logger(__name__)


# Pydantic schemas
class StaffAvailabilityData(BaseModel):
    staff_id: UUID = Field(alias="staffId")
    staff_name: str = Field(alias="staffName")
    day: date = Field(alias="date")
    is_available: bool = Field(alias="isAvailable")
    available_slots: list[str] = Field(alias="availableSlots")
    schedule: dict

    model_config = ConfigDict(populate_by_name=True)


class StaffAvailabilityResponse(BaseModel):
    success: bool = True
    data: StaffAvailabilityData


# Router
router = APIRouter(prefix="/staff", tags=["staff"])


@router.get("/{staff_id}/availability", response_model=StaffAvailabilityResponse)
def get_staff_availability(
    staff_id: UUID,
    day: date = Query(..., alias="date", description="Calendar date (YYYY-MM-DD)"),
    duration: int = Query(60, gt=0, le=MAX_DURATION_MINUTES, description="Service duration in minutes"),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> StaffAvailabilityResponse:
    """
    Bookable start times of a staff member on a date.

    Public: customers check availability before signing in. Uses the same
    schedule and conflict rules as booking creation.
    """
    staff = db.get(Staff, staff_id)
    if staff is None:
        raise StaffNotFoundError(str(staff_id))

    availability = AvailabilityService(db).get_staff_availability(staff, day, duration)

    logger.info(
        "Staff availability served",
        extra={
            "staff_id": str(staff_id),
            "date": day.isoformat(),
            "requested_by": str(user.id) if user else "public",
        },
    )

    return StaffAvailabilityResponse(
        data=StaffAvailabilityData(
            staff_id=staff.id,
            staff_name=availability.staff_name,
            day=day,
            is_available=availability.is_available,
            available_slots=availability.available_slots,
            schedule=staff.schedule,
        )
    )
