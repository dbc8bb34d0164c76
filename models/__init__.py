"""
Data models package for the Slot Engine.

This package exports the pillars of the data architecture:
1. Demand (Service, Coach, Location)
2. Supply (Resource, Closure, ScheduleEvent, Booking)
3. Output (TimeWindow, Slot, ClassOccurrence)
4. Policy (SlotSettings)
"""

from .service import (
    Service,
    Coach,
    Location,
    DayHours
)

from .resource import (
    Resource,
    Closure,
    ClosureType
)

from .events import (
    EventKind,
    ScheduleEvent,
    Booking
)

from .schedule import (
    TimeWindow,
    Slot,
    ClassOccurrence,
    ClassSessionGroup,
    ClassSessionGroups
)

from .settings import (
    SlotSettings,
    ResourceFetchPolicy
)

__all__ = [
    # --- Demand Models ---
    "Service",
    "Coach",
    "Location",
    "DayHours",

    # --- Resource & Calendar Models ---
    "Resource",
    "Closure",
    "ClosureType",
    "EventKind",
    "ScheduleEvent",
    "Booking",

    # --- Output Models ---
    "TimeWindow",
    "Slot",
    "ClassOccurrence",
    "ClassSessionGroup",
    "ClassSessionGroups",

    # --- Policy ---
    "SlotSettings",
    "ResourceFetchPolicy",
]
