"""
Class Session Normalization.

Class-like services are not generated from availability; their sessions
already exist. This module groups them per coach, works out remaining seats
and marks sessions that have already started today.
"""

import logging
from datetime import date as date_type, datetime
from typing import Any, Dict, List, Optional

import pytz
from pydantic import ValidationError

from models import ClassOccurrence, ClassSessionGroup, ClassSessionGroups
from .timezone import format_time_label, get_zone, parse_instant, today_in_zone

logger = logging.getLogger(__name__)


def _number(value: Any) -> Optional[int]:
    """Numeric values only; booleans are not counts."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def seats_remaining(capacity: Any, active_attendees: Any, available: Any) -> Optional[int]:
    cap = _number(capacity)
    active = _number(active_attendees)
    if cap is not None and active is not None:
        return max(0, cap - active)
    return _number(available)


def _raw_groups(result: Any) -> List[Dict[str, Any]]:
    """Every accepted response shape reduced to a list of {coach, sessions}."""
    if not result:
        return []

    if isinstance(result, dict):
        container = result.get("data") or result.get("groups") or result
        if isinstance(container, dict):
            return [g for g in container.values() if isinstance(g, dict)]
        result = container

    if not isinstance(result, list):
        return []

    items = [item for item in result if isinstance(item, dict)]
    if all("sessions" in item for item in items):
        return items

    # Flat list of sessions: group them by their coach
    by_coach: Dict[str, Dict[str, Any]] = {}
    for session in items:
        coach = session.get("coach") if isinstance(session.get("coach"), dict) else None
        key = str(coach.get("id")) if coach and coach.get("id") is not None else ""
        group = by_coach.setdefault(key, {"coach": coach, "sessions": []})
        group["sessions"].append(session)
    return list(by_coach.values())


def _occurrence(
    session: Dict[str, Any],
    group_coach: Optional[Dict[str, Any]],
    selected_date: date_type,
    is_today: bool,
    zone: pytz.BaseTzInfo,
    now: datetime
) -> ClassOccurrence:
    start = parse_instant(session.get("start_at") or session.get("start_time"), selected_date, zone)
    raw_end = session.get("end_at") or session.get("end_time")
    end = parse_instant(raw_end, selected_date, zone) if raw_end else None

    remaining = seats_remaining(session.get("capacity"), session.get("active_attendees"), session.get("available"))
    waitlist_count = _number(session.get("waitlist_count"))

    return ClassOccurrence(
        id=str(session.get("id")),
        class_session_id=str(session.get("id")),
        start=start,
        end=end,
        resource_id=str(session["resource_id"]) if session.get("resource_id") else None,
        capacity=_number(session.get("capacity")),
        active_attendees=_number(session.get("active_attendees")),
        available=remaining,
        is_full=(remaining or 0) <= 0,
        already_attending=bool(session.get("already_attending")),
        on_waitlist=bool(session.get("on_waitlist")),
        waitlist_count=waitlist_count if waitlist_count is not None else 0,
        is_past=is_today and start < now,
        coach=group_coach or session.get("coach") or None,
        location=session.get("location") or None,
        display_time=format_time_label(start, zone),
    )


def build_class_session_groups(
    result: Any,
    selected_date: date_type,
    zone=None,
    now: Optional[datetime] = None
) -> ClassSessionGroups:
    """
    Normalize a class-session listing for `selected_date`.

    Accepts {"data": {...}}, {"groups": {...}}, a bare coach-keyed mapping,
    a list of groups or a flat list of sessions. Sessions with no usable
    start time are skipped.
    """
    tz = get_zone(zone) if zone is None or isinstance(zone, str) else zone
    current = now or datetime.now(pytz.utc)
    is_today = today_in_zone(tz, current) == selected_date

    groups: List[ClassSessionGroup] = []
    for raw_group in _raw_groups(result):
        group_coach = raw_group.get("coach") if isinstance(raw_group.get("coach"), dict) else None
        slots = []
        for session in raw_group.get("sessions") or []:
            if not isinstance(session, dict):
                continue
            try:
                slots.append(_occurrence(session, group_coach, selected_date, is_today, tz, current))
            except (ValidationError, ValueError) as e:
                logger.warning(f"Skipping class session {session.get('id')}: {e}")
                continue

        slots.sort(key=lambda s: s.start)
        groups.append(ClassSessionGroup(coach=group_coach, slots=slots))

    # Groups with sessions first, ordered by their earliest one
    groups.sort(key=lambda g: (not g.slots, g.slots[0].start if g.slots else current))
    flat = sorted((slot for group in groups for slot in group.slots), key=lambda s: s.start)

    logger.info(f"Normalized {len(flat)} class sessions in {len(groups)} groups for {selected_date}")
    return ClassSessionGroups(groups=groups, flat=flat)
