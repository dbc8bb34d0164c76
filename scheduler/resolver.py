"""
Availability Resolution.

This module answers: "When could this service take place on this date, and
what is already occupying that time?"
It merges coach calendar windows, location operating hours and resource
defaults into absolute availability windows, and collects a deduplicated
list of bookings for conflict checking.
"""

import logging
from dataclasses import dataclass, field
from datetime import date as date_type
from typing import Iterable, List, Optional, Sequence

from models import Booking, EventKind, Location, ScheduleEvent, Service, SlotSettings, TimeWindow
from .timezone import civil_range, to_local

logger = logging.getLogger(__name__)


@dataclass
class ResolvedAvailability:
    """Windows in which slots may start, plus everything that can conflict."""
    windows: List[TimeWindow] = field(default_factory=list)
    bookings: List[Booking] = field(default_factory=list)


def build_window(day: date_type, open_time: str, close_time: str, zone) -> Optional[TimeWindow]:
    """Local clock range on `day`; a close at or before the open runs to midnight."""
    start, end = civil_range(day, open_time, close_time, zone)
    if start >= end:
        return None
    return TimeWindow(start=start, end=end)


def intersect_windows(left: Sequence[TimeWindow], right: Sequence[TimeWindow]) -> List[TimeWindow]:
    """Pairwise overlaps with positive length, in left-major order."""
    result = []
    for a in left:
        for b in right:
            overlap = a.intersect(b)
            if overlap is not None:
                result.append(overlap)
    return result


def dedupe_bookings(bookings: Iterable[Booking], prefix: str = "book_") -> List[Booking]:
    """
    Collapse bookings whose ids match once the booking prefix is stripped.
    First occurrence wins. Bookings without an id are never merged.
    """
    seen = set()
    unique = []
    for booking in bookings:
        key = booking.dedup_key(prefix)
        if key:
            if key in seen:
                continue
            seen.add(key)
        unique.append(booking)
    return unique


class AvailabilityResolver:
    """
    Turns tagged schedule data into availability windows and a conflict list.
    """

    def __init__(self, settings: Optional[SlotSettings] = None):
        self.settings = settings or SlotSettings()
        self.zone = self.settings.zone

    def resolve(
        self,
        service: Optional[Service],
        location: Optional[Location],
        day: date_type,
        coach_events: Optional[Sequence[ScheduleEvent]] = None,
        resource_bookings: Sequence[Booking] = ()
    ) -> ResolvedAvailability:
        """
        `coach_events` is None when the coach schedule could not be obtained;
        a required coach with no schedule yields nothing.
        """
        if service is None or location is None:
            return ResolvedAvailability()

        # 1. A service needing neither coach nor resource is not bookable (classes aside)
        if not service.requires_coach and not service.requires_resource and not service.is_class_like:
            logger.info(f"Service {service.id} needs no coach or resource; nothing to resolve")
            return ResolvedAvailability()

        # 2. Location closure is an absolute veto
        if location.is_closed_on(day):
            logger.info(f"Location {location.id} is closed on {day}")
            return ResolvedAvailability()

        location_hours = location.hours_for(day)
        has_hours = location_hours is not None and location_hours.is_configured
        location_windows = self._location_windows(location, day)

        # 3. No coach: location hours drive availability
        if not service.requires_coach:
            bookings: List[Booking] = []
            if service.requires_resource:
                bookings.extend(resource_bookings)
            return ResolvedAvailability(
                windows=list(location_windows),
                bookings=dedupe_bookings(bookings, self.settings.booking_prefix)
            )

        # 4. Coach required
        if coach_events is None:
            logger.warning(f"No coach schedule for {day}; refusing to relax the coach requirement")
            return ResolvedAvailability()

        coach_windows = []
        bookings = []
        for event in coach_events:
            if event.kind == EventKind.AVAILABILITY:
                window = event.to_window()
                if window is not None:
                    coach_windows.append(window)
            else:
                # Bookings and class sessions both keep the coach busy
                bookings.append(event.to_booking())

        if service.requires_resource:
            bookings.extend(resource_bookings)

        if not coach_windows:
            logger.info(f"Coach has no availability on {day}")
            windows: List[TimeWindow] = []
        elif service.requires_resource:
            # Configured hours always bound the resource, even when they yield no window
            if has_hours:
                resource_windows = location_windows
            else:
                resource_windows = (
                    self._coach_windows_on_day(coach_windows, day)
                    or self._fallback_windows(day)
                )
            windows = intersect_windows(coach_windows, resource_windows)
        elif has_hours:
            windows = intersect_windows(coach_windows, location_windows)
        else:
            windows = list(coach_windows)

        # 5. Deduplicate
        return ResolvedAvailability(
            windows=windows,
            bookings=dedupe_bookings(bookings, self.settings.booking_prefix)
        )

    def _location_windows(self, location: Location, day: date_type) -> List[TimeWindow]:
        hours = location.hours_for(day)
        if hours is None or not hours.is_configured:
            return []
        window = build_window(day, hours.open_time, hours.close_time, self.zone)
        return [window] if window else []

    def _coach_windows_on_day(self, coach_windows: Sequence[TimeWindow], day: date_type) -> List[TimeWindow]:
        """Coach windows re-read as local clock ranges on the target date."""
        windows = []
        for window in coach_windows:
            start = to_local(window.start, self.zone).strftime("%H:%M")
            end = to_local(window.end, self.zone).strftime("%H:%M")
            rebuilt = build_window(day, start, end, self.zone)
            if rebuilt is not None:
                windows.append(rebuilt)
        return windows

    def _fallback_windows(self, day: date_type) -> List[TimeWindow]:
        window = build_window(
            day,
            self.settings.fallback_window_start,
            self.settings.fallback_window_end,
            self.zone
        )
        return [window] if window else []
