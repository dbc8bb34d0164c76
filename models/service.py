"""
Service, Coach and Location data models for the Slot Engine.
"""

from datetime import date as date_type
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict

from scheduler.timezone import parse_clock, weekday_name

CLASS_LIKE_TYPES = ("class", "group")


class Service(BaseModel):
    """
    A bookable offering and its requirements.
    """

    # --- Core Identity ---
    id: Optional[str] = None
    name: Optional[str] = None
    service_type: Optional[str] = Field(default=None, description="e.g. 'lesson', 'practice', 'class', 'group'")

    # --- Timing ---
    duration_minutes: Optional[int] = Field(default=None, description="Missing or non-positive means 'use default'")
    is_variable_duration: bool = False
    allowed_durations: List[int] = Field(default_factory=list)

    # --- Requirements ---
    requires_coach: bool = False
    requires_resource: bool = False
    resource_type_ids: List[str] = Field(default_factory=list, description="Compatible resource types")

    @field_validator("id", mode="before")
    @classmethod
    def id_as_str(cls, v):
        return str(v) if v is not None and not isinstance(v, str) else v

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def positive_duration(cls, v):
        if v is None or v == "":
            return None
        return v if int(v) > 0 else None

    @field_validator("resource_type_ids", mode="before")
    @classmethod
    def ids_as_str(cls, v):
        return [str(i) for i in (v or [])]

    @property
    def is_class_like(self) -> bool:
        """'group' services behave exactly like 'class' services."""
        return (self.service_type or "").lower() in CLASS_LIKE_TYPES

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "7",
            "name": "Private Lesson",
            "service_type": "lesson",
            "duration_minutes": 60,
            "requires_coach": True,
            "requires_resource": True,
            "resource_type_ids": ["2"]
        }
    })


class Coach(BaseModel):
    id: str
    name: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_as_str(cls, v):
        return str(v) if v is not None and not isinstance(v, str) else v


class DayHours(BaseModel):
    """Operating hours for one weekday. Seconds are normalized away."""
    is_open: bool = False
    open_time: Optional[str] = None
    close_time: Optional[str] = None

    @field_validator("open_time", "close_time")
    @classmethod
    def normalize_clock(cls, v):
        if v is None or v == "":
            return None
        return parse_clock(v).strftime("%H:%M")

    @property
    def is_configured(self) -> bool:
        return self.is_open and bool(self.open_time) and bool(self.close_time)


class Location(BaseModel):
    """A site with weekly operating hours keyed by lowercase weekday name."""
    id: Optional[str] = None
    name: Optional[str] = None
    hours: Dict[str, DayHours] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_str(cls, v):
        return str(v) if v is not None and not isinstance(v, str) else v

    @field_validator("hours", mode="before")
    @classmethod
    def lowercase_days(cls, v):
        return {str(day).lower(): hours for day, hours in (v or {}).items()}

    def hours_for(self, day: date_type) -> Optional[DayHours]:
        return self.hours.get(weekday_name(day))

    def is_closed_on(self, day: date_type) -> bool:
        """True only when the record explicitly marks the weekday closed."""
        hours = self.hours_for(day)
        return hours is not None and not hours.is_open
