"""
Calendar event and booking models for the Slot Engine.

Raw schedule entries are tagged exactly once, at ingestion, with an
EventKind. Downstream logic only ever switches on that closed set.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime

from .schedule import TimeWindow, as_utc

CANCELLED_STATUS = "cancelled"


class EventKind(str, Enum):
    """Closed set of schedule entry variants."""
    AVAILABILITY = "availability"
    BOOKING = "booking"
    CLASS_SESSION = "class_session"


def _id_to_str(v):
    if v is None or isinstance(v, str):
        return v
    return str(v)


class Booking(BaseModel):
    """
    Normalized busy interval used for conflict checks.
    `kind` is None for bookings that come from the resource feed untagged.
    """

    id: str = Field(default="", description="Raw identifier, possibly carrying the booking prefix")
    start: datetime
    end: datetime
    status: Optional[str] = None
    kind: Optional[EventKind] = None

    # --- Links ---
    coach_id: Optional[str] = None
    resource_ids: List[str] = Field(default_factory=list)
    bookable_type: Optional[str] = None
    bookable_id: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_as_str(cls, v):
        return _id_to_str(v) or ""

    @field_validator("coach_id", "bookable_id", mode="before")
    @classmethod
    def link_as_str(cls, v):
        return _id_to_str(v)

    @field_validator("resource_ids", mode="before")
    @classmethod
    def resource_ids_as_str(cls, v):
        return [str(i) for i in (v or []) if i is not None and i != ""]

    @field_validator("start", "end")
    @classmethod
    def normalize_instant(cls, v):
        return as_utc(v)

    @model_validator(mode="after")
    def validate_order(self):
        if self.end < self.start:
            raise ValueError("Booking end cannot be before its start")
        return self

    @property
    def is_cancelled(self) -> bool:
        return (self.status or "").lower() == CANCELLED_STATUS

    @property
    def blocks_coach(self) -> bool:
        """Coach links, ordinary bookings and class sessions all occupy the coach."""
        return bool(self.coach_id) or self.kind in (EventKind.BOOKING, EventKind.CLASS_SESSION)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start

    def dedup_key(self, prefix: str = "book_") -> str:
        if prefix and self.id.startswith(prefix):
            return self.id[len(prefix):]
        return self.id


class ScheduleEvent(BaseModel):
    """One tagged entry of a coach's calendar for a day."""

    id: Optional[str] = None
    title: Optional[str] = None
    kind: EventKind
    start: datetime
    end: datetime
    status: Optional[str] = None
    coach_id: Optional[str] = None
    resource_ids: List[str] = Field(default_factory=list)

    @field_validator("id", "coach_id", mode="before")
    @classmethod
    def id_as_str(cls, v):
        return _id_to_str(v)

    @field_validator("start", "end")
    @classmethod
    def normalize_instant(cls, v):
        return as_utc(v)

    @model_validator(mode="after")
    def validate_order(self):
        if self.end < self.start:
            raise ValueError("Event end cannot be before its start")
        return self

    def to_window(self) -> Optional[TimeWindow]:
        if self.start >= self.end:
            return None
        return TimeWindow(start=self.start, end=self.end)

    def to_booking(self) -> Booking:
        return Booking(
            id=self.id or "",
            start=self.start,
            end=self.end,
            status=self.status,
            kind=self.kind,
            coach_id=self.coach_id,
            resource_ids=self.resource_ids,
        )
