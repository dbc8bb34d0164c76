"""
Schedule data models for the Slot Engine.

This module defines the time primitives and the 'Output' of the engine:
1. TimeWindow (an absolute open interval of availability)
2. Slot (a bookable start time offered to a client)
3. ClassOccurrence (a pre-existing class session, annotated for display)
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from datetime import date as date_type, datetime

import pytz


def as_utc(value: datetime) -> datetime:
    """Instants must carry a zone; they are stored in UTC."""
    if not isinstance(value, datetime):
        return value
    if value.tzinfo is None:
        raise ValueError("Instants must be timezone-aware")
    return value.astimezone(pytz.utc)


class TimeWindow(BaseModel):
    """An absolute interval [start, end) with start strictly before end."""
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def normalize_instant(cls, v):
        return as_utc(v)

    @model_validator(mode="after")
    def validate_order(self):
        if self.start >= self.end:
            raise ValueError("Window end must be strictly after its start")
        return self

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start

    def intersect(self, other: "TimeWindow") -> Optional["TimeWindow"]:
        """Overlap of two windows, or None when it has no positive length."""
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start < end:
            return TimeWindow(start=start, end=end)
        return None

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60


class Slot(BaseModel):
    """
    A bookable start time.
    `start`/`end` carry the business zone offset so serialized values never
    depend on the zone of the machine that computed them.
    """

    id: str = Field(description="Stable per-day identifier, e.g. slot_0915")
    start: datetime = Field(description="Slot start in the business zone")
    end: datetime = Field(description="Slot end in the business zone")
    date: date_type = Field(description="Business-local calendar date")
    display_time: str = Field(description="Short label such as '9:15 AM'")

    # --- Auto-assignment Only ---
    capacity: Optional[int] = Field(default=None, ge=0, description="Free resources in the pool")
    available_resource_ids: Optional[List[str]] = Field(
        default=None,
        description="Pool resources still free for this slot"
    )

    def to_payload(self) -> Dict[str, Any]:
        """Shape forwarded unchanged into a booking-creation request."""
        payload: Dict[str, Any] = {
            "id": self.id,
            "start_time": self.start.isoformat(),
            "end_time": self.end.isoformat(),
            "display_time": self.display_time,
            "date": self.date.isoformat(),
        }
        if self.capacity is not None:
            payload["capacity"] = self.capacity
        if self.available_resource_ids is not None:
            payload["available_resource_ids"] = list(self.available_resource_ids)
        return payload

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "slot_0800",
            "start": "2026-02-25T08:00:00-08:00",
            "end": "2026-02-25T09:00:00-08:00",
            "date": "2026-02-25",
            "display_time": "8:00 AM",
            "capacity": 2,
            "available_resource_ids": ["12", "14"]
        }
    })


class ClassOccurrence(BaseModel):
    """A scheduled class session with its seat and attendance state."""

    id: str
    class_session_id: str
    start: datetime
    end: Optional[datetime] = None
    resource_id: Optional[str] = None

    # --- Seats ---
    capacity: Optional[int] = None
    active_attendees: Optional[int] = None
    available: Optional[int] = Field(default=None, description="Remaining seats")
    is_full: bool = False

    # --- Client State ---
    already_attending: bool = False
    on_waitlist: bool = False
    waitlist_count: int = 0
    is_past: bool = False

    coach: Optional[Dict[str, Any]] = None
    location: Optional[Dict[str, Any]] = None
    display_time: str = ""

    @property
    def remaining(self) -> Optional[int]:
        return self.available


class ClassSessionGroup(BaseModel):
    coach: Optional[Dict[str, Any]] = None
    slots: List[ClassOccurrence] = Field(default_factory=list)


class ClassSessionGroups(BaseModel):
    """Sessions grouped per coach plus one flat list, all ascending by start."""
    groups: List[ClassSessionGroup] = Field(default_factory=list)
    flat: List[ClassOccurrence] = Field(default_factory=list)
