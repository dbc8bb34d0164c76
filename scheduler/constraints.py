"""
Hard Constraint Validation Logic.

This module answers the binary question: "Can a slot start at time X?"
It enforces that a coach is never double-booked, that an explicitly chosen
resource is free, and tracks how much of a resource pool is already taken.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Set

from models import Booking, Resource, Service


@dataclass
class ConflictViolation:
    """Detailed reason for rejection."""
    constraint_type: str  # "Coach" or "Resource"
    reason: str
    booking_id: str
    start: datetime


@dataclass
class SlotCheck:
    """Outcome of checking one candidate."""
    violation: Optional[ConflictViolation] = None
    booked_pool_ids: Set[str] = field(default_factory=set)

    @property
    def is_clear(self) -> bool:
        return self.violation is None


class ConflictChecker:
    """
    Validates a candidate [start, end) against existing bookings.
    """

    def __init__(
        self,
        service: Service,
        bookings: Sequence[Booking],
        selected_resource: Optional[Resource] = None,
        resource_pool: Sequence[Resource] = ()
    ):
        self.service = service
        # Cancelled bookings never conflict
        self.bookings = [b for b in bookings if not b.is_cancelled]
        self.selected_resource = selected_resource
        # Index pool ids, first-seen order
        self.pool_ids: List[str] = list(dict.fromkeys(r.id for r in resource_pool if r.id))

    @property
    def auto_assign(self) -> bool:
        """Pool mode: no resource chosen, engine reports remaining capacity."""
        return self.service.requires_resource and self.selected_resource is None and bool(self.pool_ids)

    def check_time_slot(self, start: datetime, end: datetime) -> SlotCheck:
        """
        Master validation function. Stops at the first coach or explicit
        resource conflict; otherwise accumulates booked pool ids.
        """
        check = SlotCheck()

        for booking in self.bookings:
            if not booking.overlaps(start, end):
                continue

            if self.service.requires_coach:
                check.violation = self._check_coach(booking, start)
                if check.violation: return check

            if self.service.requires_resource:
                if self.selected_resource is not None:
                    check.violation = self._check_resource(booking, start)
                    if check.violation: return check
                elif self.pool_ids:
                    check.booked_pool_ids.update(
                        rid for rid in booking.resource_ids if rid in self.pool_ids
                    )

        return check

    def capacity_for(self, check: SlotCheck) -> int:
        return max(0, len(self.pool_ids) - len(check.booked_pool_ids))

    def free_pool_ids(self, check: SlotCheck) -> List[str]:
        return [rid for rid in self.pool_ids if rid not in check.booked_pool_ids]

    def _check_coach(self, booking: Booking, start: datetime) -> Optional[ConflictViolation]:
        if not booking.blocks_coach:
            return None
        return ConflictViolation(
            "Coach",
            f"Coach busy with {booking.kind.value if booking.kind else 'booking'} {booking.id}",
            booking.id, start
        )

    def _check_resource(self, booking: Booking, start: datetime) -> Optional[ConflictViolation]:
        if self.selected_resource.id not in booking.resource_ids:
            return None
        return ConflictViolation(
            "Resource",
            f"Resource {self.selected_resource.id} taken by booking {booking.id}",
            booking.id, start
        )
