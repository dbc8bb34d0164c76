"""
The Slot Generation Engine.

Turns resolved availability windows and bookings into the concrete start
times a client can book. It combines:
1. Grid candidates (aligned to the start interval from local midnight).
2. Off-grid candidates (right after a booking ends, plus the buffer).
3. Conflict and capacity evaluation per candidate.
"""

import logging
from datetime import date as date_type, datetime, timedelta
from typing import Dict, List, Optional, Sequence

import pytz

from models import Booking, Resource, Service, Slot, SlotSettings, TimeWindow
from models.settings import coerce_minutes
from .constraints import ConflictChecker
from .timezone import day_bounds, format_time_label, to_local

logger = logging.getLogger(__name__)


class SlotGenerator:
    """
    Main slot engine.
    Ingests availability (supply) and bookings (demand already placed),
    outputs bookable slots ascending by start.
    """

    def __init__(
        self,
        service: Service,
        settings: Optional[SlotSettings] = None,
        selected_resource: Optional[Resource] = None,
        resource_pool: Sequence[Resource] = (),
        duration_minutes: Optional[int] = None,
        now: Optional[datetime] = None
    ):
        self.service = service
        self.settings = settings or SlotSettings()
        self.zone = self.settings.zone
        self.selected_resource = selected_resource
        self.resource_pool = list(resource_pool)

        # Overrides may arrive as strings; zero or negative means unset
        override = coerce_minutes(duration_minutes, default=0)
        minutes = override or service.duration_minutes or self.settings.default_duration_minutes
        self.duration = timedelta(minutes=minutes)
        self.interval = timedelta(minutes=self.settings.start_interval_minutes)
        self.buffer = timedelta(minutes=self.settings.buffer_minutes)
        self.now = now or datetime.now(pytz.utc)

    def run(self, availability: Sequence[TimeWindow], bookings: Sequence[Booking], day: date_type) -> List[Slot]:
        """
        Execute the generation pipeline for one business-local date.
        """
        if not availability:
            return []

        day_start, day_end = day_bounds(day, self.zone)
        checker = ConflictChecker(self.service, bookings, self.selected_resource, self.resource_pool)

        # 1. Collect candidates; overlapping windows may propose the same start
        candidates: Dict[datetime, None] = {}
        for window in availability:
            for start in self._generate_candidates(window, checker.bookings, day_start, day_end):
                candidates.setdefault(start, None)

        # 2. Evaluate each candidate in ascending order
        slots = []
        for start in sorted(candidates):
            end = start + self.duration
            check = checker.check_time_slot(start, end)

            if not check.is_clear:
                logger.debug(f"Rejected {start.isoformat()}: {check.violation.reason}")
                continue

            if checker.auto_assign:
                capacity = checker.capacity_for(check)
                if capacity <= 0:
                    logger.debug(f"Rejected {start.isoformat()}: resource pool exhausted")
                    continue
                slots.append(self._build_slot(start, end, day, capacity, checker.free_pool_ids(check)))
            else:
                slots.append(self._build_slot(start, end, day))

        logger.info(f"Generated {len(slots)} slots for {day} from {len(candidates)} candidates")
        return slots

    def _generate_candidates(
        self,
        window: TimeWindow,
        bookings: Sequence[Booking],
        day_start: datetime,
        day_end: datetime
    ) -> List[datetime]:
        """
        Candidate starts for one window.

        Logic:
        1. Round the window start up to the next interval boundary counted
           from local midnight, then step through the window.
        2. Add `booking.end + buffer` for bookings ending inside the day and
           the window, so a slot can follow a booking without waiting for
           the grid.
        3. Drop starts whose slot overruns the window, that are in the past,
           or that fall outside the target day.
        """
        starts = set()

        steps = -((day_start - window.start) // self.interval)
        cursor = day_start + steps * self.interval
        while cursor < window.end:
            starts.add(cursor)
            cursor += self.interval

        for booking in bookings:
            candidate = booking.end + self.buffer
            if day_start <= candidate < day_end and window.start <= candidate < window.end:
                starts.add(candidate)

        valid = []
        for start in sorted(starts):
            if start + self.duration > window.end:
                continue
            if start < self.now:
                continue
            if start < day_start or start >= day_end:
                continue
            valid.append(start)
        return valid

    def _build_slot(
        self,
        start: datetime,
        end: datetime,
        day: date_type,
        capacity: Optional[int] = None,
        available_resource_ids: Optional[List[str]] = None
    ) -> Slot:
        local_start = to_local(start, self.zone)
        return Slot(
            id=f"slot_{local_start.strftime('%H%M')}",
            start=local_start,
            end=to_local(end, self.zone),
            date=day,
            display_time=format_time_label(start, self.zone),
            capacity=capacity,
            available_resource_ids=available_resource_ids,
        )


def generate_slots(
    availability: Sequence[TimeWindow],
    bookings: Sequence[Booking],
    day: date_type,
    service: Optional[Service],
    settings: Optional[SlotSettings] = None,
    selected_resource: Optional[Resource] = None,
    resource_pool: Sequence[Resource] = (),
    duration_minutes: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[Slot]:
    """Functional entry point; a missing service yields no slots."""
    if service is None:
        return []
    generator = SlotGenerator(service, settings, selected_resource, resource_pool, duration_minutes, now)
    return generator.run(availability, bookings, day)
