"""
Resource and Closure data models for the Slot Engine.

This module defines the physical 'Supply' side:
1. Resources (bays, rooms, simulators) belonging to a location
2. Closures (block-out rules for specific service types)
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from datetime import datetime

from scheduler.timezone import parse_clock
from .schedule import as_utc

INACTIVE_STATUSES = ("inactive", "disabled")


class ClosureType(str, Enum):
    """How a closure recurs."""
    DAILY = "daily"             # weekly, on one weekday, within a local clock range
    DATE_RANGE = "date_range"   # absolute instant range


class Closure(BaseModel):
    """A block-out rule on a resource for some service types."""

    is_active: bool = Field(default=False)
    blocked_service_types: List[str] = Field(default_factory=list)
    closure_type: ClosureType

    # --- Daily ---
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6, description="0=Sunday, 6=Saturday")
    start_time_local: Optional[str] = Field(default=None, description="HH:mm:ss, defaults to 00:00:00")
    end_time_local: Optional[str] = Field(default=None, description="HH:mm:ss, defaults to 23:59:59")

    # --- Date Range ---
    start_time_utc: Optional[datetime] = None
    end_time_utc: Optional[datetime] = None

    @field_validator("start_time_local", "end_time_local")
    @classmethod
    def validate_clock(cls, v):
        if v is None or v == "":
            return None
        parse_clock(v)
        return v

    @field_validator("start_time_utc", "end_time_utc")
    @classmethod
    def normalize_instant(cls, v):
        return as_utc(v) if v is not None else None

    @model_validator(mode="after")
    def validate_shape(self):
        if self.closure_type == ClosureType.DAILY and self.day_of_week is None:
            raise ValueError("Daily closures need a day_of_week")
        if self.closure_type == ClosureType.DATE_RANGE:
            if self.start_time_utc is None or self.end_time_utc is None:
                raise ValueError("Date range closures need both start_time_utc and end_time_utc")
        return self

    @property
    def local_start(self) -> str:
        return self.start_time_local or "00:00:00"

    @property
    def local_end(self) -> str:
        return self.end_time_local or "23:59:59"

    def applies_to(self, service_type: Optional[str]) -> bool:
        return self.is_active and bool(service_type) and service_type in self.blocked_service_types


class Resource(BaseModel):
    """
    Physical resource that a service may require.
    Pools are scoped by location and resource type.
    """
    id: str = Field(description="Unique identifier")
    name: Optional[str] = None
    status: Optional[str] = Field(default=None, description="'inactive'/'disabled' hide the resource")

    location_id: Optional[str] = None
    location_ids: List[str] = Field(default_factory=list)
    resource_type_id: Optional[str] = None

    closures: List[Closure] = Field(default_factory=list)

    @field_validator("id", "location_id", "resource_type_id", mode="before")
    @classmethod
    def id_as_str(cls, v):
        return str(v) if v is not None and not isinstance(v, str) else v

    @field_validator("location_ids", mode="before")
    @classmethod
    def ids_as_str(cls, v):
        return [str(i) for i in (v or [])]

    @property
    def is_active(self) -> bool:
        return (self.status or "").lower() not in INACTIVE_STATUSES

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "12",
            "name": "Bay 3",
            "location_id": "4",
            "resource_type_id": "2",
            "closures": [
                {
                    "is_active": True,
                    "blocked_service_types": ["lesson"],
                    "closure_type": "daily",
                    "day_of_week": 1,
                    "start_time_local": "12:00:00",
                    "end_time_local": "13:00:00"
                }
            ]
        }
    })
