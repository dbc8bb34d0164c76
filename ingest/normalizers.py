"""
Boundary normalization for the Slot Engine.

Raw payloads arrive from the data layer in several shapes (bare arrays,
{"events": [...]}, {"data": [...]}, three ways of naming booked resources,
types embedded under extendedProps...). This module turns them into the
engine's typed models once, so nothing downstream deals with shape
ambiguity. Records that fail validation are logged and skipped.
"""

import json
import logging
from datetime import date as date_type
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from models import (
    Booking,
    Closure,
    EventKind,
    Location,
    Resource,
    ScheduleEvent,
    Service,
    SlotSettings,
)
from scheduler.timezone import parse_instant

logger = logging.getLogger(__name__)

RESOURCE_BOOKABLE_TYPES = ("App\\Models\\Resource", "resource")
WRAPPER_KEYS = ("events", "data", "result", "bookings", "resources")


def unwrap_records(payload: Any, keys: Iterable[str] = WRAPPER_KEYS) -> List[Dict[str, Any]]:
    """
    Normalize a payload into a list of dict records.
    Accepts JSON text, bare lists, and dicts wrapping a list under a known key.
    """
    if payload is None:
        return []

    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Discarding payload that is not valid JSON")
            return []

    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]

    if isinstance(payload, dict):
        for key in keys:
            inner = payload.get(key)
            if isinstance(inner, list):
                return [item for item in inner if isinstance(item, dict)]
            if isinstance(inner, dict) and key == "data":
                return unwrap_records(inner, keys)
    return []


def _extended(raw: Dict[str, Any]) -> Dict[str, Any]:
    props = raw.get("extendedProps")
    return props if isinstance(props, dict) else {}


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _event_type(raw: Dict[str, Any]) -> Optional[str]:
    return raw.get("type") or _extended(raw).get("type")


def _coach_link(raw: Dict[str, Any]) -> Optional[str]:
    coach_id = raw.get("coach_id") or _extended(raw).get("coach_id")
    if coach_id not in (None, ""):
        return str(coach_id)

    coaches = raw.get("coaches")
    if isinstance(coaches, list) and coaches:
        head = coaches[0]
        value = head.get("id") if isinstance(head, dict) else head
        return str(value) if value not in (None, "") else None
    return None


def classify_event(raw: Dict[str, Any], settings: SlotSettings) -> Optional[EventKind]:
    """
    Tag a raw calendar entry. Class sessions win over bookings, bookings over
    availability; anything unrecognized returns None.
    """
    raw_id = str(raw.get("id") or "")
    event_type = _event_type(raw)

    if event_type == EventKind.CLASS_SESSION.value:
        return EventKind.CLASS_SESSION
    if raw_id.startswith(settings.booking_prefix) or event_type == EventKind.BOOKING.value:
        return EventKind.BOOKING
    if raw_id.startswith(settings.availability_prefix) or raw.get("title") in settings.open_labels:
        return EventKind.AVAILABILITY
    return None


def extract_resource_ids(raw: Dict[str, Any]) -> List[str]:
    """Collect booked resource ids from any of the three reference styles."""
    ids: List[str] = []

    resources = raw.get("resources")
    if isinstance(resources, list):
        for resource in resources:
            if isinstance(resource, dict):
                value = _first(resource, "id", "resource_id", "bookable_id")
            else:
                value = resource
            if value not in (None, ""):
                ids.append(str(value))

    if raw.get("bookable_type") in RESOURCE_BOOKABLE_TYPES and raw.get("bookable_id") not in (None, ""):
        ids.append(str(raw["bookable_id"]))

    resource_ids = raw.get("resource_ids")
    if isinstance(resource_ids, list):
        ids.extend(str(value) for value in resource_ids if value not in (None, ""))
    elif raw.get("resource_id") not in (None, ""):
        ids.append(str(raw["resource_id"]))

    # Keep first-seen order, drop repeats
    return list(dict.fromkeys(ids))


def parse_schedule_events(payload: Any, day: date_type, settings: SlotSettings) -> List[ScheduleEvent]:
    """Tag and validate a coach schedule for one day."""
    zone = settings.zone
    events: List[ScheduleEvent] = []

    for i, raw in enumerate(unwrap_records(payload)):
        kind = classify_event(raw, settings)
        if kind is None:
            continue
        try:
            events.append(ScheduleEvent(
                id=raw.get("id"),
                title=raw.get("title"),
                kind=kind,
                start=parse_instant(_first(raw, "start_time", "start", "start_at"), day, zone),
                end=parse_instant(_first(raw, "end_time", "end", "end_at"), day, zone),
                status=raw.get("status") or _extended(raw).get("status"),
                coach_id=_coach_link(raw),
                resource_ids=extract_resource_ids(raw),
            ))
        except (ValidationError, ValueError) as e:
            logger.warning(f"Skipping invalid schedule event {i} ({raw.get('id')}): {e}")
            continue

    return events


def parse_bookings(payload: Any, day: date_type, settings: SlotSettings) -> List[Booking]:
    """Validate resource bookings (compact feed) into Booking models."""
    zone = settings.zone
    bookings: List[Booking] = []

    for i, raw in enumerate(unwrap_records(payload)):
        event_type = _event_type(raw)
        kind = EventKind(event_type) if event_type in (EventKind.BOOKING.value, EventKind.CLASS_SESSION.value) else None
        try:
            bookings.append(Booking(
                id=raw.get("id"),
                start=parse_instant(_first(raw, "start_time", "start", "start_at"), day, zone),
                end=parse_instant(_first(raw, "end_time", "end", "end_at"), day, zone),
                status=raw.get("status") or _extended(raw).get("status"),
                kind=kind,
                coach_id=_coach_link(raw),
                resource_ids=extract_resource_ids(raw),
                bookable_type=raw.get("bookable_type"),
                bookable_id=raw.get("bookable_id"),
            ))
        except (ValidationError, ValueError) as e:
            logger.warning(f"Skipping invalid booking {i} ({raw.get('id')}): {e}")
            continue

    return bookings


def parse_closures(raw_closures: Any) -> List[Closure]:
    closures: List[Closure] = []
    if not isinstance(raw_closures, list):
        return closures

    for i, raw in enumerate(raw_closures):
        if not isinstance(raw, dict):
            continue
        try:
            closures.append(Closure(**raw))
        except (ValidationError, ValueError) as e:
            logger.warning(f"Skipping invalid closure {i}: {e}")
            continue
    return closures


def parse_resource(raw: Dict[str, Any]) -> Optional[Resource]:
    resource_id = _first(raw, "id", "resource_id")
    if resource_id is None:
        return None

    type_ref = raw.get("type") if isinstance(raw.get("type"), dict) else raw.get("resource_type")
    resource_type_id = raw.get("resource_type_id")
    if resource_type_id is None and isinstance(type_ref, dict):
        resource_type_id = type_ref.get("id")

    try:
        return Resource(
            id=resource_id,
            name=raw.get("name"),
            status=raw.get("status"),
            location_id=raw.get("location_id"),
            location_ids=raw.get("location_ids") or [],
            resource_type_id=resource_type_id,
            closures=parse_closures(raw.get("closures")),
        )
    except (ValidationError, ValueError) as e:
        logger.warning(f"Skipping invalid resource {resource_id}: {e}")
        return None


def parse_resources(payload: Any) -> List[Resource]:
    """Resource directory → Resource models (bad closures dropped, not the resource)."""
    resources = []
    for raw in unwrap_records(payload):
        resource = parse_resource(raw)
        if resource is not None:
            resources.append(resource)
    return resources


def parse_location(raw: Optional[Dict[str, Any]]) -> Optional[Location]:
    """Accepts `hours` or `business_hours`; invalid day entries are dropped."""
    if not isinstance(raw, dict):
        return None

    hours_raw = raw.get("hours") or raw.get("business_hours") or {}
    hours = {}
    for day, value in hours_raw.items():
        try:
            hours[day] = Location.model_validate({"hours": {day: value}}).hours[str(day).lower()]
        except (ValidationError, ValueError) as e:
            logger.warning(f"Ignoring invalid hours for {day}: {e}")
            continue

    return Location(id=raw.get("id"), name=raw.get("name"), hours=hours)


def parse_service(raw: Optional[Dict[str, Any]]) -> Optional[Service]:
    if not isinstance(raw, dict):
        return None

    data = dict(raw)
    if not data.get("resource_type_ids"):
        type_ref = data.get("resource_type")
        if isinstance(type_ref, dict) and type_ref.get("id") is not None:
            data["resource_type_ids"] = [type_ref["id"]]
        elif data.get("resource_type_id") is not None:
            data["resource_type_ids"] = [data["resource_type_id"]]
    data.pop("resource_type", None)

    try:
        return Service.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Invalid service record {raw.get('id')}: {e}")
        return None
