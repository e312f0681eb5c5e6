"""
Services API routes.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from salonbook.api.dependencies import get_db
from salonbook.models.services import Service


# Pydantic schemas
class ServiceResponse(BaseModel):
    """Service as shown in the booking catalogue."""
    id: UUID
    vendor_id: UUID = Field(alias="vendorId")
    name: str
    category: str
    description: Optional[str] = None
    price: float
    duration_minutes: int = Field(alias="durationMinutes")
    active: bool = True

    model_config = {"from_attributes": True, "populate_by_name": True}


# Router
router = APIRouter(prefix="/services", tags=["services"])


@router.get("", response_model=List[ServiceResponse])
def list_services(
    vendor_id: Optional[UUID] = Query(None, description="Filter by vendor"),
    category: Optional[str] = Query(None, description="Filter by category"),
    active_only: bool = Query(True, description="Show only active services"),
    db: Session = Depends(get_db),
) -> List[ServiceResponse]:
    """
    List bookable services.

    Query parameters:
    - vendor_id: Only services offered by this vendor
    - category: Filter by service category
    - active_only: Show only active services (default: true)

    Returns:
        List of services matching the filters
    """
    stmt = select(Service)

    if active_only:
        stmt = stmt.where(Service.active.is_(True))
    if vendor_id:
        stmt = stmt.where(Service.vendor_id == vendor_id)
    if category:
        stmt = stmt.where(Service.category == category)

    stmt = stmt.order_by(Service.category, Service.name)
    services = db.execute(stmt).scalars().all()

    return [
        ServiceResponse(
            id=s.id,
            vendor_id=s.vendor_id,
            name=s.name,
            category=s.category,
            description=s.description,
            price=float(s.price),
            duration_minutes=s.duration_minutes,
            active=s.active,
        )
        for s in services
    ]
