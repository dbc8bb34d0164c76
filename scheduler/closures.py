"""
Closure Overlay.

Resource closures block specific service types, either weekly on one
weekday within a local clock range ("daily") or over an absolute instant
range ("date_range"). Two checks are offered:
- slot level: is this resource blocked for [start, end)?
- day level: does this resource keep any usable gap during opening hours?

This overlay is a client-side courtesy; the booking service remains the
authority when a booking is actually created.
"""

import logging
from datetime import date as date_type, datetime
from typing import List, Optional, Sequence, Tuple, Union

import pytz

from models import ClosureType, DayHours, Location, Resource, Service, Slot
from .timezone import civil_range, get_zone, sunday_based_weekday, to_local

logger = logging.getLogger(__name__)

Zone = Union[str, pytz.BaseTzInfo, None]


def _zone(zone: Zone) -> pytz.BaseTzInfo:
    if zone is None or isinstance(zone, str):
        return get_zone(zone)
    return zone


def _overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    return start < other_end and end > other_start


def is_slot_blocked_by_closure(
    resource: Optional[Resource],
    start: datetime,
    end: datetime,
    service_type: Optional[str],
    zone: Zone = None
) -> bool:
    """True when an active closure for `service_type` overlaps [start, end)."""
    if resource is None or not resource.closures or not service_type:
        return False

    tz = _zone(zone)
    local_day = to_local(start, tz).date()
    weekday = sunday_based_weekday(local_day)

    for closure in resource.closures:
        if not closure.applies_to(service_type):
            continue

        if closure.closure_type == ClosureType.DAILY:
            if closure.day_of_week != weekday:
                continue
            closure_start, closure_end = civil_range(local_day, closure.local_start, closure.local_end, tz)
            if _overlaps(start, end, closure_start, closure_end):
                return True

        elif closure.closure_type == ClosureType.DATE_RANGE:
            if _overlaps(start, end, closure.start_time_utc, closure.end_time_utc):
                return True

    return False


def filter_resources_by_closures(
    resources: Sequence[Resource],
    start: datetime,
    end: datetime,
    service_type: Optional[str],
    zone: Zone = None
) -> List[Resource]:
    if not service_type:
        return list(resources)
    return [r for r in resources if not is_slot_blocked_by_closure(r, start, end, service_type, zone)]


def _merge(windows: List[Tuple[datetime, datetime]]) -> List[Tuple[datetime, datetime]]:
    """Merge overlapping or touching windows; input need not be sorted."""
    merged: List[Tuple[datetime, datetime]] = []
    for start, end in sorted(windows, key=lambda w: w[0]):
        if merged and start <= merged[-1][1]:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def _minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


def is_resource_fully_blocked_for_day(
    resource: Optional[Resource],
    day: date_type,
    service_type: Optional[str],
    hours: Optional[DayHours] = None,
    zone: Zone = None,
    min_slot_minutes: int = 15
) -> bool:
    """
    True when closures leave no gap of at least `min_slot_minutes` between
    opening and closing time, in which case the resource should be hidden
    for the whole day.
    """
    if resource is None or not resource.closures or not service_type:
        return False

    active = [c for c in resource.closures if c.applies_to(service_type)]
    if not active:
        return False

    tz = _zone(zone)
    open_time = (hours.open_time if hours else None) or "00:00"
    close_time = (hours.close_time if hours else None) or "23:59"
    day_start, day_end = civil_range(day, open_time, close_time, tz)
    weekday = sunday_based_weekday(day)

    # Collect every closure window that touches this day
    windows: List[Tuple[datetime, datetime]] = []
    for closure in active:
        if closure.closure_type == ClosureType.DAILY:
            if closure.day_of_week == weekday:
                windows.append(civil_range(day, closure.local_start, closure.local_end, tz))
        elif closure.closure_type == ClosureType.DATE_RANGE:
            if _overlaps(closure.start_time_utc, closure.end_time_utc, day_start, day_end):
                windows.append((
                    max(closure.start_time_utc, day_start),
                    min(closure.end_time_utc, day_end),
                ))

    if not windows:
        return False

    # Walk the gaps: before the first closure, between closures, after the last
    current = day_start
    for start, end in _merge(windows):
        if _minutes_between(current, start) >= min_slot_minutes:
            return False
        current = max(current, end)

    if _minutes_between(current, day_end) >= min_slot_minutes:
        return False

    return True


def filter_resources_not_fully_blocked(
    resources: Sequence[Resource],
    day: date_type,
    service_type: Optional[str],
    location: Optional[Location],
    zone: Zone = None,
    min_slot_minutes: int = 15
) -> List[Resource]:
    """Drop resources with no usable time on `day`; none survive a closed location."""
    if not service_type:
        return list(resources)

    day_hours = location.hours_for(day) if location else None
    if day_hours is not None and not day_hours.is_open:
        return []

    hours = DayHours(
        is_open=True,
        open_time=(day_hours.open_time if day_hours else None) or "00:00",
        close_time=(day_hours.close_time if day_hours else None) or "23:59",
    )
    kept = []
    for resource in resources:
        if is_resource_fully_blocked_for_day(resource, day, service_type, hours, zone, min_slot_minutes):
            logger.info(f"Resource {resource.id} is fully blocked on {day} for {service_type}")
            continue
        kept.append(resource)
    return kept


def filter_slots_by_closures(
    slots: Sequence[Slot],
    service: Optional[Service],
    zone: Zone = None,
    selected_resource: Optional[Resource] = None,
    resource_pool: Sequence[Resource] = ()
) -> List[Slot]:
    """
    Re-check slots against resource closures.

    With an explicit resource, blocked slots are dropped. With a pool, each
    slot's `available_resource_ids` is narrowed to unblocked resources (ids
    unknown to the pool have no closure data and are kept), or derived from
    the pool when the slot has none. Slots left without resources are dropped.

    A surviving pool slot that carried a `capacity` has it reset to the number
    of remaining ids, replacing the generator's booking-based count.
    """
    service_type = service.service_type if service else None
    if not service_type or (selected_resource is None and not resource_pool):
        return list(slots)

    pool_by_id = {r.id: r for r in resource_pool}

    def blocked(resource: Resource, slot: Slot) -> bool:
        return is_slot_blocked_by_closure(resource, slot.start, slot.end, service_type, zone)

    result = []
    for slot in slots:
        if selected_resource is not None:
            if not blocked(selected_resource, slot):
                result.append(slot)
            continue

        if slot.available_resource_ids:
            remaining = [
                rid for rid in slot.available_resource_ids
                if rid not in pool_by_id or not blocked(pool_by_id[rid], slot)
            ]
        else:
            remaining = [r.id for r in resource_pool if not blocked(r, slot)]

        if not remaining:
            continue

        update = {"available_resource_ids": remaining}
        if slot.capacity is not None:
            update["capacity"] = len(remaining)
        result.append(slot.model_copy(update=update))

    return result
