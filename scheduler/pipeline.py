"""
Slot Pipeline.

Wires the pieces together for one service, location and date:
  pool pre-filter -> fetch schedules -> resolve -> generate -> closure overlay
Class-like services take the class-session path instead.

Data access is injected as plain callables so the pipeline itself does no
I/O and can be driven from a CLI, a web handler or a test.
"""

import logging
from datetime import date as date_type, datetime
from typing import Any, Callable, List, Optional, Sequence, Union

from ingest import parse_bookings, parse_schedule_events
from models import (
    ClassSessionGroups,
    Coach,
    Location,
    Resource,
    ResourceFetchPolicy,
    Service,
    Slot,
    SlotSettings,
)
from .class_sessions import build_class_session_groups
from .closures import filter_resources_not_fully_blocked, filter_slots_by_closures
from .generator import generate_slots
from .resolver import AvailabilityResolver

logger = logging.getLogger(__name__)

# fetch_coach_schedule(coach, day) -> raw schedule payload
CoachScheduleFetcher = Callable[[Coach, date_type], Any]
# fetch_resource_bookings(location, day, resource_ids) -> raw bookings payload
ResourceBookingFetcher = Callable[[Location, date_type, List[str]], Any]
# fetch_class_sessions(service, location, day, coach) -> raw grouped sessions
ClassSessionFetcher = Callable[[Service, Location, date_type, Optional[Coach]], Any]


class SlotPipeline:
    """
    Orchestrates availability for a booking front-end.
    """

    def __init__(
        self,
        settings: Optional[SlotSettings] = None,
        fetch_coach_schedule: Optional[CoachScheduleFetcher] = None,
        fetch_resource_bookings: Optional[ResourceBookingFetcher] = None,
        fetch_class_sessions: Optional[ClassSessionFetcher] = None
    ):
        self.settings = settings or SlotSettings()
        self.zone = self.settings.zone
        self.fetch_coach_schedule = fetch_coach_schedule
        self.fetch_resource_bookings = fetch_resource_bookings
        self.fetch_class_sessions = fetch_class_sessions
        self.resolver = AvailabilityResolver(self.settings)

    def run(
        self,
        service: Optional[Service],
        location: Optional[Location],
        day: date_type,
        coach: Optional[Coach] = None,
        selected_resource: Optional[Resource] = None,
        resource_pool: Sequence[Resource] = (),
        duration_minutes: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> Union[List[Slot], ClassSessionGroups]:
        """Dispatch on the service: class sessions for class-like, slots otherwise."""
        if service is not None and service.is_class_like:
            return self.class_sessions(service, location, day, coach, now)
        return self.available_slots(
            service, location, day, coach, selected_resource, resource_pool, duration_minutes, now
        )

    def available_slots(
        self,
        service: Optional[Service],
        location: Optional[Location],
        day: date_type,
        coach: Optional[Coach] = None,
        selected_resource: Optional[Resource] = None,
        resource_pool: Sequence[Resource] = (),
        duration_minutes: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[Slot]:
        if service is None or location is None:
            return []

        if service.is_class_like:
            logger.info(f"Service {service.id} is class-like; slots come from class sessions")
            return []

        # 1. Hide pool resources that closures block for the whole day
        pool = list(resource_pool)
        if service.requires_resource and selected_resource is None:
            pool = filter_resources_not_fully_blocked(
                pool, day, service.service_type, location, self.zone,
                self.settings.min_closure_gap_minutes
            )
            if not pool:
                logger.info(f"No usable resources for service {service.id} on {day}")
                return []

        # 2. Coach schedule: unknown means unavailable
        coach_events = None
        if service.requires_coach:
            payload = self._fetch_coach_schedule(coach, day)
            if payload is None:
                return []
            coach_events = parse_schedule_events(payload, day, self.settings)

        # 3. Resource bookings, subject to the fetch policy
        resource_bookings = []
        if service.requires_resource:
            resource_ids = [selected_resource.id] if selected_resource else [r.id for r in pool]
            payload = self._fetch_resource_bookings(location, day, resource_ids)
            if payload is None:
                if self.settings.resource_fetch_policy == ResourceFetchPolicy.FAIL_CLOSED:
                    logger.warning(f"Resource bookings unavailable for {day}; returning no slots")
                    return []
                logger.warning(f"Resource bookings unavailable for {day}; continuing without resource conflicts")
            else:
                resource_bookings = parse_bookings(payload, day, self.settings)

        # 4. Resolve, generate, overlay closures
        resolved = self.resolver.resolve(service, location, day, coach_events, resource_bookings)
        slots = generate_slots(
            resolved.windows,
            resolved.bookings,
            day,
            service,
            self.settings,
            selected_resource=selected_resource,
            resource_pool=pool,
            duration_minutes=duration_minutes,
            now=now,
        )
        return filter_slots_by_closures(slots, service, self.zone, selected_resource, pool)

    def class_sessions(
        self,
        service: Optional[Service],
        location: Optional[Location],
        day: date_type,
        coach: Optional[Coach] = None,
        now: Optional[datetime] = None
    ) -> ClassSessionGroups:
        """Best effort: a failed fetch yields no sessions."""
        if service is None or self.fetch_class_sessions is None:
            return ClassSessionGroups()

        try:
            payload = self.fetch_class_sessions(service, location, day, coach)
        except Exception as e:
            logger.warning(f"Failed to fetch class sessions for {day}: {e}")
            return ClassSessionGroups()

        return build_class_session_groups(payload, day, self.zone, now)

    def _fetch_coach_schedule(self, coach: Optional[Coach], day: date_type) -> Any:
        if coach is None or self.fetch_coach_schedule is None:
            logger.warning(f"Coach required but no coach schedule source for {day}")
            return None
        try:
            return self.fetch_coach_schedule(coach, day)
        except Exception as e:
            logger.warning(f"Failed to fetch coach schedule for {coach.id} on {day}: {e}")
            return None

    def _fetch_resource_bookings(self, location: Location, day: date_type, resource_ids: List[str]) -> Any:
        if self.fetch_resource_bookings is None:
            logger.warning(f"No resource booking source for {day}")
            return None
        try:
            payload = self.fetch_resource_bookings(location, day, resource_ids)
        except Exception as e:
            logger.warning(f"Failed to fetch resource bookings for {day}: {e}")
            return None
        # An empty feed is a valid answer, not a failure
        return payload if payload is not None else []
