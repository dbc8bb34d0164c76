"""
Ingestion boundary: raw payloads in, typed models out.
"""

from .normalizers import (
    classify_event,
    extract_resource_ids,
    parse_bookings,
    parse_closures,
    parse_location,
    parse_resources,
    parse_schedule_events,
    parse_service,
    unwrap_records,
)

__all__ = [
    "classify_event",
    "extract_resource_ids",
    "parse_bookings",
    "parse_closures",
    "parse_location",
    "parse_resources",
    "parse_schedule_events",
    "parse_service",
    "unwrap_records",
]
