"""
Staff auto-assignment.

First-fit search over a vendor's active, qualified staff in a stable order
(created_at, then id). The first member who works that date and has no
overlapping active booking wins. No load balancing is applied.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from salonbook.lib.logging import get_logger
from salonbook.lib.metrics import get_metrics_collector
from salonbook.models.staff import Staff
from salonbook.services.availability_service import works_at
from salonbook.services.conflict_service import ConflictService


logger = get_logger(__name__)


class AssignmentService:
    """Selects a staff member for bookings made without a staff preference."""

    def __init__(self, db: Session):
        self.db = db
        self.conflicts = ConflictService(db)

    def eligible_staff(self, vendor_id: UUID, service_id: UUID) -> list[Staff]:
        """Active staff of the vendor qualified for the service, in search order."""
        stmt = (
            select(Staff)
            .where(Staff.vendor_id == vendor_id, Staff.is_active.is_(True))
            .order_by(Staff.created_at, Staff.id)
        )
        candidates = self.db.execute(stmt).scalars().all()
        return [s for s in candidates if s.can_perform(service_id)]

    def find_available_staff(
        self,
        vendor_id: UUID,
        service_id: UUID,
        start: datetime,
        duration_minutes: int,
    ) -> Optional[Staff]:
        """
        Return the first eligible staff member free for [start, start + duration).

        Returns:
            Staff, or None when every candidate is off that day or busy
        """
        candidates = self.eligible_staff(vendor_id, service_id)
        metrics = get_metrics_collector()

        for staff in candidates:
            if not works_at(staff, start):
                continue
            if self.conflicts.has_conflict(staff.id, start, duration_minutes):
                continue

            metrics.increment_auto_assignments(outcome="assigned")
            logger.info(
                "Staff auto-assigned",
                extra={
                    "staff_id": str(staff.id),
                    "vendor_id": str(vendor_id),
                    "service_id": str(service_id),
                    "start": start.isoformat(),
                    "candidates": len(candidates),
                },
            )
            return staff

        metrics.increment_auto_assignments(outcome="none_available")
        logger.info(
            "No staff available for auto-assignment",
            extra={
                "vendor_id": str(vendor_id),
                "service_id": str(service_id),
                "start": start.isoformat(),
                "candidates": len(candidates),
            },
        )
        return None
