"""
Civil-time helpers for the Slot Engine.

Every "HH:mm" string that enters the engine is turned into an absolute
instant here, paired with the business time zone (never the zone of the
machine running the code). Once constructed, instants are kept in UTC and
only converted back to local time for display.
"""

import logging
import re
from datetime import date as date_type, datetime, time as time_type, timedelta
from typing import Optional, Tuple, Union

import pytz

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?\s*$")

WEEKDAY_NAMES = [
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"
]


def get_zone(name: Optional[str]) -> pytz.BaseTzInfo:
    """Resolve a zone name, falling back to UTC for blanks and unknown names."""
    tz_name = (name or "").strip() or DEFAULT_TIMEZONE
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone '{tz_name}', using {DEFAULT_TIMEZONE}")
        return pytz.timezone(DEFAULT_TIMEZONE)


def parse_clock(value: Union[str, time_type]) -> time_type:
    """
    Parse "HH:mm" or "HH:mm:ss" into a minute-precision time.
    Seconds are dropped on purpose: all civil bounds work at minute precision.
    "24:00" reads as midnight; `civil_range` places it at the end of the day.
    """
    if isinstance(value, time_type):
        return value.replace(second=0, microsecond=0, tzinfo=None)

    match = _CLOCK_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid clock value: {value!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour == 24 and minute == 0:
        return time_type(0, 0)
    if hour > 23 or minute > 59:
        raise ValueError(f"Clock value out of range: {value!r}")
    return time_type(hour, minute)


def is_clock_string(value) -> bool:
    """True for bare time-of-day strings such as "08:00" or "20:00:00"."""
    if not isinstance(value, str):
        return False
    return "T" not in value and " " not in value.strip() and _CLOCK_RE.match(value) is not None


def civil_to_instant(day: date_type, clock: Union[str, time_type], zone: pytz.BaseTzInfo) -> datetime:
    """
    Build a UTC instant from a local (date, time-of-day) pair in `zone`.

    Wall-clock times that do not exist (spring-forward gap) are shifted
    forward by the DST offset, matching how calendar front-ends behave.
    """
    naive = datetime.combine(day, parse_clock(clock))
    local = zone.normalize(zone.localize(naive, is_dst=False))
    return local.astimezone(pytz.utc)


def civil_range(
    day: date_type,
    open_clock: Union[str, time_type],
    close_clock: Union[str, time_type],
    zone: pytz.BaseTzInfo
) -> Tuple[datetime, datetime]:
    """
    A local opening range on `day` as UTC instants. A close at or before the
    open time ("00:00", "24:00") means the next local midnight.
    """
    start = civil_to_instant(day, open_clock, zone)
    end = civil_to_instant(day, close_clock, zone)
    if end <= start:
        end = civil_to_instant(day + timedelta(days=1), "00:00", zone)
    return start, end


def parse_instant(value, day: date_type, zone: pytz.BaseTzInfo) -> datetime:
    """
    Turn any accepted time representation into a UTC instant.

    Accepts aware datetimes, naive datetimes (read as business-zone civil
    time), bare "HH:mm" strings (placed on `day`), and ISO-8601 strings with
    or without an offset. Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = zone.localize(value, is_dst=False)
        return value.astimezone(pytz.utc)

    if value is None:
        raise ValueError("Missing time value")

    text = str(value).strip()
    if is_clock_string(text):
        return civil_to_instant(day, text, zone)

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Unparseable time value: {value!r}") from None

    if parsed.tzinfo is None:
        parsed = zone.localize(parsed, is_dst=False)
    return parsed.astimezone(pytz.utc)


def day_bounds(day: date_type, zone: pytz.BaseTzInfo) -> Tuple[datetime, datetime]:
    """Local midnight of `day` and of the following day, as UTC instants."""
    return (
        civil_to_instant(day, "00:00", zone),
        civil_to_instant(day + timedelta(days=1), "00:00", zone),
    )


def to_local(instant: datetime, zone: pytz.BaseTzInfo) -> datetime:
    return zone.normalize(instant.astimezone(zone))


def weekday_name(day: date_type) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def sunday_based_weekday(day: date_type) -> int:
    """0 = Sunday ... 6 = Saturday, the convention closure records use."""
    return (day.weekday() + 1) % 7


def today_in_zone(zone: pytz.BaseTzInfo, now: Optional[datetime] = None) -> date_type:
    current = now or datetime.now(pytz.utc)
    return to_local(current, zone).date()


def format_time_label(value: Union[datetime, str, None], zone: pytz.BaseTzInfo) -> str:
    """
    "8:00 AM" style label. Instants are shown in `zone`; bare "HH:mm"
    strings are already business-local and are only reformatted.
    """
    if value is None or value == "":
        return ""

    if isinstance(value, datetime):
        local = to_local(value, zone) if value.tzinfo else value
        hour, minute = local.hour, local.minute
    else:
        try:
            clock = parse_clock(value)
        except ValueError:
            return ""
        hour, minute = clock.hour, clock.minute

    period = "PM" if hour >= 12 else "AM"
    display_hour = hour % 12 or 12
    return f"{display_hour}:{minute:02d} {period}"
