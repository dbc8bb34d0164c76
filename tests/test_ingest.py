"""
Tests for ingest/normalizers.py

Tests event tagging, resource reference extraction and tolerant parsing of
raw payload shapes.
"""

import unittest
from datetime import date, datetime

import pytz

from ingest import (
    classify_event,
    extract_resource_ids,
    parse_bookings,
    parse_location,
    parse_resources,
    parse_schedule_events,
    parse_service,
    unwrap_records,
)
from models import ClosureType, EventKind, SlotSettings

DAY = date(2026, 3, 4)


class TestClassification(unittest.TestCase):
    """Tests for raw event tagging."""

    def setUp(self):
        self.settings = SlotSettings()

    def test_availability(self):
        """Test availability by prefix and by open label."""
        self.assertEqual(classify_event({"id": "avail_1"}, self.settings), EventKind.AVAILABILITY)
        self.assertEqual(classify_event({"id": 9, "title": "Daily"}, self.settings), EventKind.AVAILABILITY)

    def test_booking(self):
        """Test bookings by prefix and by type."""
        self.assertEqual(classify_event({"id": "book_1"}, self.settings), EventKind.BOOKING)
        self.assertEqual(classify_event({"id": 7, "type": "booking"}, self.settings), EventKind.BOOKING)

    def test_class_session_wins(self):
        """Test that a class_session type outranks the booking prefix."""
        raw = {"id": "book_3", "extendedProps": {"type": "class_session"}}
        self.assertEqual(classify_event(raw, self.settings), EventKind.CLASS_SESSION)

    def test_unrecognized(self):
        """Test that unknown entries are not tagged."""
        self.assertIsNone(classify_event({"id": "note_1", "title": "Lunch"}, self.settings))


class TestResourceReferences(unittest.TestCase):
    """Tests for extract_resource_ids."""

    def test_all_reference_styles(self):
        """Test resources[], bookable pair and resource_ids[] together."""
        raw = {
            "resources": [{"id": 1}, {"resource_id": 2}],
            "bookable_type": "App\\Models\\Resource",
            "bookable_id": 3,
            "resource_ids": [1, 4],
        }
        self.assertEqual(extract_resource_ids(raw), ["1", "2", "3", "4"])

    def test_bookable_of_other_type_ignored(self):
        """Test that non-resource bookables are not resource references."""
        raw = {"bookable_type": "App\\Models\\Coach", "bookable_id": 3, "resource_id": 8}
        self.assertEqual(extract_resource_ids(raw), ["8"])


class TestPayloadParsing(unittest.TestCase):
    """Tests for tolerant payload parsing."""

    def setUp(self):
        self.settings = SlotSettings(timezone="America/Los_Angeles")

    def test_unwrap_shapes(self):
        """Test bare lists, wrapped lists, nested data and JSON text."""
        self.assertEqual(len(unwrap_records([{"id": 1}, "junk"])), 1)
        self.assertEqual(len(unwrap_records({"events": [{"id": 1}]})), 1)
        self.assertEqual(len(unwrap_records({"data": {"data": [{"id": 1}, {"id": 2}]}})), 2)
        self.assertEqual(len(unwrap_records('[{"id": 1}]')), 1)
        self.assertEqual(unwrap_records("not json"), [])
        self.assertEqual(unwrap_records(None), [])

    def test_schedule_events(self):
        """Test that clock strings are read in the business zone and bad events skipped."""
        payload = {"events": [
            {"id": "avail_1", "title": "Available", "start_time": "08:00", "end_time": "12:00"},
            {"id": "book_2", "start": "2026-03-04T17:00:00Z", "end": "2026-03-04T18:00:00Z"},
            {"id": "book_3", "start": "whenever", "end": "later"},
            {"id": "other", "title": "Lunch", "start": "12:00", "end": "13:00"},
        ]}
        events = parse_schedule_events(payload, DAY, self.settings)

        self.assertEqual([e.id for e in events], ["avail_1", "book_2"])
        self.assertEqual(events[0].start, datetime(2026, 3, 4, 16, 0, tzinfo=pytz.utc))
        self.assertEqual(events[1].kind, EventKind.BOOKING)

    def test_bookings(self):
        """Test compact bookings with resource references; inverted times are skipped."""
        payload = {"data": [
            {"id": 11, "start_time": "2026-03-04T17:00:00Z", "end_time": "2026-03-04T18:00:00Z",
             "status": "confirmed", "resource_ids": [5]},
            {"id": 12, "start_time": "2026-03-04T18:00:00Z", "end_time": "2026-03-04T17:00:00Z"},
        ]}
        bookings = parse_bookings(payload, DAY, self.settings)

        self.assertEqual(len(bookings), 1)
        self.assertEqual(bookings[0].id, "11")
        self.assertEqual(bookings[0].resource_ids, ["5"])
        self.assertIsNone(bookings[0].kind)

    def test_resources_keep_good_closures(self):
        """Test that a bad closure is dropped without dropping the resource."""
        payload = {"data": [
            {"id": 1, "status": "active", "location_id": 4, "resource_type": {"id": 2}, "closures": [
                {"is_active": True, "closure_type": "daily", "day_of_week": 3,
                 "blocked_service_types": ["lesson"]},
                {"is_active": True, "closure_type": "daily"},
            ]},
            {"name": "no id"},
        ]}
        resources = parse_resources(payload)

        self.assertEqual(len(resources), 1)
        self.assertEqual(resources[0].location_id, "4")
        self.assertEqual(resources[0].resource_type_id, "2")
        self.assertEqual(len(resources[0].closures), 1)
        self.assertEqual(resources[0].closures[0].closure_type, ClosureType.DAILY)

    def test_location_business_hours(self):
        """Test business_hours alias and dropping of invalid day entries."""
        location = parse_location({"id": 4, "business_hours": {
            "Wednesday": {"is_open": True, "open_time": "08:00:00", "close_time": "17:00:00"},
            "thursday": {"is_open": True, "open_time": "nope", "close_time": "17:00"},
        }})

        self.assertEqual(location.id, "4")
        self.assertEqual(location.hours["wednesday"].open_time, "08:00")
        self.assertNotIn("thursday", location.hours)

    def test_location_hours_until_midnight(self):
        """Test that a 24:00 closing time is kept rather than dropped."""
        location = parse_location({"id": 4, "hours": {
            "friday": {"is_open": True, "open_time": "18:00", "close_time": "24:00"},
        }})
        self.assertEqual(location.hours["friday"].close_time, "00:00")

    def test_service_resource_type(self):
        """Test that a nested resource_type becomes resource_type_ids."""
        service = parse_service({"id": 7, "requires_resource": True, "resource_type": {"id": 2}})
        self.assertEqual(service.resource_type_ids, ["2"])
        self.assertIsNone(parse_service(None))


if __name__ == '__main__':
    unittest.main()
