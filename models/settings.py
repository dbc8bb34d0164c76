"""
Engine configuration for the Slot Engine.

Every policy default (grid interval, buffer, fallback window, event
prefixes...) lives on SlotSettings so changes are made in one place.
"""

import math
import re
from enum import Enum
from typing import Any, Dict, List, Optional

import pytz
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from scheduler.timezone import DEFAULT_TIMEZONE, get_zone, parse_clock

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def coerce_minutes(value: Any, default: int, minimum: int = 0) -> int:
    """
    Lenient integer coercion for minute settings coming from company records.
    Absent, non-numeric or unparseable values give `default`.
    """
    if value is None or isinstance(value, bool):
        result = default
    elif isinstance(value, (int, float)):
        result = int(value) if math.isfinite(value) else default
    else:
        match = _LEADING_INT_RE.match(str(value))
        result = int(match.group(1)) if match else default
    return max(minimum, result)


class ResourceFetchPolicy(str, Enum):
    """What to do when resource booking data cannot be obtained."""
    FAIL_CLOSED = "fail_closed"   # no slots for that date
    DEGRADED = "degraded"         # generate without resource conflicts


class SlotSettings(BaseModel):
    """
    Tunable policy for availability resolution and slot generation.
    """

    # --- Business Context ---
    timezone: str = Field(default=DEFAULT_TIMEZONE, description="Business time zone (IANA name)")

    # --- Slot Grid ---
    buffer_minutes: int = Field(default=0, ge=0, description="Gap enforced after a booking before an off-grid start")
    start_interval_minutes: int = Field(default=15, ge=1, description="Cadence of grid candidate starts")
    default_duration_minutes: int = Field(default=60, ge=1, description="Used when a service has no duration")

    # --- Fallbacks ---
    fallback_window_start: str = Field(default="09:00", description="Resource window start when nothing else is known")
    fallback_window_end: str = Field(default="19:00", description="Resource window end when nothing else is known")
    min_closure_gap_minutes: int = Field(default=15, ge=1, description="Smallest gap that keeps a resource bookable for a day")

    # --- Failure Policy ---
    resource_fetch_policy: ResourceFetchPolicy = Field(
        default=ResourceFetchPolicy.FAIL_CLOSED,
        description="Behaviour when resource bookings could not be fetched"
    )

    # --- Raw Event Tagging ---
    availability_prefix: str = Field(default="avail_")
    booking_prefix: str = Field(default="book_")
    open_labels: List[str] = Field(default_factory=lambda: ["Available", "Daily"])

    @field_validator("timezone", mode="before")
    @classmethod
    def default_timezone(cls, v):
        return (str(v).strip() if v else "") or DEFAULT_TIMEZONE

    @field_validator("buffer_minutes", mode="before")
    @classmethod
    def coerce_buffer(cls, v):
        return coerce_minutes(v, default=0)

    @field_validator("start_interval_minutes", mode="before")
    @classmethod
    def coerce_interval(cls, v):
        return coerce_minutes(v, default=15, minimum=1)

    @field_validator("fallback_window_start", "fallback_window_end")
    @classmethod
    def validate_clock(cls, v):
        return parse_clock(v).strftime("%H:%M")

    @model_validator(mode="after")
    def validate_fallback_window(self):
        if parse_clock(self.fallback_window_start) >= parse_clock(self.fallback_window_end):
            raise ValueError("Fallback window end must be after its start")
        return self

    @property
    def zone(self) -> pytz.BaseTzInfo:
        return get_zone(self.timezone)

    @classmethod
    def from_company(cls, company: Optional[Dict[str, Any]], **overrides) -> "SlotSettings":
        """
        Read the company record the way the booking front-end does:
        `settings.<key>` first, then the top-level key.
        """
        company = company or {}
        nested = company.get("settings") or {}

        def pick(key: str):
            value = nested.get(key)
            return value if value is not None else company.get(key)

        values: Dict[str, Any] = {
            "timezone": company.get("timezone"),
            "buffer_minutes": pick("slot_buffer_minutes"),
            "start_interval_minutes": pick("slot_start_interval_minutes"),
        }
        values.update(overrides)
        return cls(**values)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "timezone": "America/Los_Angeles",
            "buffer_minutes": 5,
            "start_interval_minutes": 15,
            "resource_fetch_policy": "fail_closed"
        }
    })
