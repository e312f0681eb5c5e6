"""
Vendor API routes.
"""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from salonbook.api.dependencies import get_db
from salonbook.models.services import MAX_DURATION_MINUTES
from salonbook.models.users import User, UserRole
from salonbook.services.availability_service import AvailabilityService
from salonbook.services.errors import VendorNotFoundError


# Pydantic schemas
class BusinessHours(BaseModel):
    open: str
    close: str


class VendorAvailabilityData(BaseModel):
    vendor_id: UUID = Field(alias="vendorId")
    day: date = Field(alias="date")
    day_of_week: str = Field(alias="dayOfWeek")
    is_open: bool = Field(alias="isOpen")
    business_hours: Optional[BusinessHours] = Field(None, alias="businessHours")
    available_slots: list[str] = Field(alias="availableSlots")
    staff_count: int = Field(alias="staffCount")

    model_config = ConfigDict(populate_by_name=True)


class VendorAvailabilityResponse(BaseModel):
    success: bool = True
    data: VendorAvailabilityData


# Router
router = APIRouter(prefix="/vendors", tags=["vendors"])


@router.get("/{vendor_id}/availability", response_model=VendorAvailabilityResponse)
def get_vendor_availability(
    vendor_id: UUID,
    day: date = Query(..., alias="date", description="Calendar date (YYYY-MM-DD)"),
    duration: int = Query(60, gt=0, le=MAX_DURATION_MINUTES, description="Service duration in minutes"),
    service_id: Optional[UUID] = Query(None, alias="serviceId", description="Only staff qualified for this service"),
    db: Session = Depends(get_db),
) -> VendorAvailabilityResponse:
    """
    Opening hours and bookable start times across a vendor's active staff.
    """
    vendor = db.get(User, vendor_id)
    if vendor is None or vendor.role != UserRole.VENDOR:
        raise VendorNotFoundError(str(vendor_id))

    availability = AvailabilityService(db).get_vendor_availability(vendor_id, day, duration, service_id)

    hours = None
    if availability.is_open:
        hours = BusinessHours(open=availability.opens_at, close=availability.closes_at)

    return VendorAvailabilityResponse(
        data=VendorAvailabilityData(
            vendor_id=vendor_id,
            day=day,
            day_of_week=day.strftime("%A").lower(),
            is_open=availability.is_open,
            business_hours=hours,
            available_slots=availability.available_slots,
            staff_count=availability.staff_count,
        )
    )
