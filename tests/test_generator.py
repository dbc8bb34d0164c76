"""
Tests for scheduler/generator.py

Tests grid alignment, off-grid packing after bookings, conflict rejection,
pool capacity and the ordering and idempotence of the output.
"""

import unittest
from datetime import date, datetime, timedelta

import pytz

from models import Booking, EventKind, Resource, Service, SlotSettings, TimeWindow
from scheduler.generator import SlotGenerator, generate_slots

DAY = date(2026, 3, 4)
BEFORE = datetime(2026, 3, 1, tzinfo=pytz.utc)


def utc(hour, minute=0, day=4):
    return datetime(2026, 3, day, hour, minute, tzinfo=pytz.utc)


def window(start, end):
    return TimeWindow(start=start, end=end)


def starts(slots):
    return [s.start.strftime("%H:%M") for s in slots]


class TestGrid(unittest.TestCase):
    """Tests for grid candidate generation."""

    def setUp(self):
        self.service = Service(id="1", requires_coach=True, duration_minutes=30)

    def test_rounds_up_to_interval(self):
        """Test that a 09:07 window start gives a first slot at 09:15."""
        slots = generate_slots([window(utc(9, 7), utc(10, 15))], [], DAY, self.service, now=BEFORE)
        self.assertEqual(starts(slots), ["09:15", "09:30", "09:45"])

    def test_slot_must_fit_window(self):
        """Test that no slot overruns its window."""
        slots = generate_slots([window(utc(9), utc(10))], [], DAY, self.service, now=BEFORE)
        self.assertTrue(all(s.end <= utc(10) for s in slots))
        self.assertEqual(starts(slots)[-1], "09:30")

    def test_duration_override_and_default(self):
        """Test override, then service duration, then the 60 minute default."""
        w = [window(utc(9), utc(11))]
        self.assertEqual(
            generate_slots(w, [], DAY, self.service, duration_minutes=90, now=BEFORE)[0].end, utc(10, 30)
        )
        self.assertEqual(generate_slots(w, [], DAY, Service(id="2", requires_coach=True), now=BEFORE)[0].end, utc(10))

    def test_duration_override_as_string(self):
        """Test that a numeric string override is read as minutes."""
        service = Service(id="2", requires_coach=True, duration_minutes=60)
        slots = generate_slots([window(utc(9), utc(11))], [], DAY, service, duration_minutes="30", now=BEFORE)
        self.assertEqual(slots[0].end - slots[0].start, timedelta(minutes=30))

    def test_non_positive_override_ignored(self):
        """Test that a negative or zero override falls back to the service duration."""
        service = Service(id="2", requires_coach=True, duration_minutes=60)
        for override in (-30, 0):
            slots = generate_slots([window(utc(9), utc(11))], [], DAY, service, duration_minutes=override, now=BEFORE)
            self.assertEqual(starts(slots), ["09:00", "09:15", "09:30", "09:45", "10:00"])
            self.assertTrue(all(s.end - s.start == timedelta(minutes=60) for s in slots))

    def test_past_starts_dropped(self):
        """Test that starts before now are not offered."""
        slots = generate_slots([window(utc(9), utc(11))], [], DAY, self.service, now=utc(9, 20))
        self.assertEqual(starts(slots)[0], "09:30")

    def test_missing_service(self):
        """Test that no service means no slots."""
        self.assertEqual(generate_slots([window(utc(9), utc(10))], [], DAY, None, now=BEFORE), [])

    def test_grid_anchored_to_local_midnight(self):
        """Test 30 minute grid in a half-hour offset zone stays on local boundaries."""
        settings = SlotSettings(timezone="Asia/Kolkata", start_interval_minutes=30)
        # 04:00 UTC is 09:30 IST
        slots = generate_slots(
            [window(utc(4, 10), utc(6))], [], DAY, self.service, settings, now=BEFORE
        )
        self.assertEqual(starts(slots), ["10:00", "10:30", "11:00"])
        self.assertEqual(slots[0].id, "slot_1000")
        self.assertEqual(slots[0].display_time, "10:00 AM")


class TestConflicts(unittest.TestCase):
    """Tests for booking conflicts and off-grid packing."""

    def setUp(self):
        self.service = Service(id="1", requires_coach=True, duration_minutes=15)
        self.settings = SlotSettings(buffer_minutes=5)

    def test_off_grid_after_booking(self):
        """Test that a booking ending 10:07 with a 5 minute buffer offers 10:12."""
        booking = Booking(id="book_1", kind=EventKind.BOOKING, start=utc(9, 30), end=utc(10, 7))
        slots = generate_slots(
            [window(utc(10), utc(11))], [booking], DAY, self.service, self.settings, now=BEFORE
        )
        self.assertEqual(starts(slots), ["10:12", "10:15", "10:30", "10:45"])

    def test_no_slot_overlaps_coach_booking(self):
        """Test that every emitted slot is clear of non-cancelled bookings."""
        bookings = [
            Booking(id="book_1", kind=EventKind.BOOKING, start=utc(9, 20), end=utc(9, 50)),
            Booking(id="book_2", coach_id="4", start=utc(10, 30), end=utc(11)),
        ]
        slots = generate_slots([window(utc(9), utc(12))], bookings, DAY, self.service, self.settings, now=BEFORE)

        self.assertTrue(slots)
        for slot in slots:
            for b in bookings:
                self.assertFalse(slot.start < b.end and slot.end > b.start, f"{slot.id} overlaps {b.id}")

    def test_cancelled_booking_ignored(self):
        """Test that cancelled bookings neither conflict nor add off-grid starts."""
        booking = Booking(id="book_1", kind=EventKind.BOOKING, start=utc(9), end=utc(9, 7), status="cancelled")
        slots = generate_slots([window(utc(9), utc(10))], [booking], DAY, self.service, self.settings, now=BEFORE)
        self.assertEqual(starts(slots), ["09:00", "09:15", "09:30", "09:45"])

    def test_untagged_resource_booking_does_not_block_coach(self):
        """Test that a resource-only booking leaves a coach-only service free."""
        booking = Booking(id="9", start=utc(9), end=utc(10), resource_ids=["1"])
        slots = generate_slots([window(utc(9), utc(10))], [booking], DAY, self.service, now=BEFORE)
        self.assertEqual(len(slots), 4)

    def test_ordering_and_no_duplicates(self):
        """Test ascending unique starts across overlapping, unsorted windows."""
        windows = [window(utc(13), utc(14)), window(utc(9), utc(10)), window(utc(9, 30), utc(10, 30))]
        slots = generate_slots(windows, [], DAY, self.service, now=BEFORE)

        values = [s.start for s in slots]
        self.assertEqual(values, sorted(values))
        self.assertEqual(len(values), len(set(values)))

    def test_idempotent(self):
        """Test that identical inputs give identical outputs."""
        booking = Booking(id="book_1", kind=EventKind.BOOKING, start=utc(9, 30), end=utc(10, 7))
        args = ([window(utc(9), utc(12))], [booking], DAY, self.service, self.settings)
        first = generate_slots(*args, now=BEFORE)
        second = generate_slots(*args, now=BEFORE)
        self.assertEqual([s.model_dump() for s in first], [s.model_dump() for s in second])


class TestResources(unittest.TestCase):
    """Tests for explicit resource and pool capacity modes."""

    def setUp(self):
        self.service = Service(id="5", requires_resource=True, duration_minutes=60)
        self.settings = SlotSettings(start_interval_minutes=60)
        self.pool = [Resource(id="r1"), Resource(id="r2"), Resource(id="r3")]
        self.bookings = [Booking(id="b1", start=utc(10), end=utc(11), resource_ids=["r1"])]
        self.windows = [window(utc(9), utc(12))]

    def test_pool_capacity(self):
        """Test that capacity equals free pool resources and matches the free ids."""
        slots = generate_slots(
            self.windows, self.bookings, DAY, self.service, self.settings,
            resource_pool=self.pool, now=BEFORE
        )
        by_start = {s.start.strftime("%H:%M"): s for s in slots}

        self.assertEqual(by_start["09:00"].capacity, 3)
        self.assertEqual(by_start["10:00"].capacity, 2)
        self.assertEqual(by_start["10:00"].available_resource_ids, ["r2", "r3"])
        for slot in slots:
            self.assertEqual(slot.capacity, len(slot.available_resource_ids))

    def test_exhausted_pool_drops_slot(self):
        """Test that a slot with no free resource is not offered."""
        bookings = self.bookings + [
            Booking(id="b2", start=utc(10), end=utc(11), resource_ids=["r2", "r3"]),
        ]
        slots = generate_slots(
            self.windows, bookings, DAY, self.service, self.settings,
            resource_pool=self.pool, now=BEFORE
        )
        self.assertEqual(starts(slots), ["09:00", "11:00"])

    def test_explicit_resource(self):
        """Test that a chosen resource rejects its own bookings only, without capacity."""
        generator = SlotGenerator(self.service, self.settings, selected_resource=Resource(id="r1"), now=BEFORE)
        slots = generator.run(self.windows, self.bookings, DAY)

        self.assertEqual(starts(slots), ["09:00", "11:00"])
        self.assertTrue(all(s.capacity is None and s.available_resource_ids is None for s in slots))

        other = SlotGenerator(self.service, self.settings, selected_resource=Resource(id="r2"), now=BEFORE)
        self.assertEqual(len(other.run(self.windows, self.bookings, DAY)), 3)


class TestDaylightSaving(unittest.TestCase):
    """Tests for serialization around a DST change."""

    def test_offsets_follow_the_date(self):
        """Test that the same local time carries -08:00 before and -07:00 after spring forward."""
        settings = SlotSettings(timezone="America/Los_Angeles")
        service = Service(id="1", requires_coach=True, duration_minutes=60)

        before = generate_slots([window(utc(17), utc(18))], [], DAY, service, settings, now=BEFORE)
        after = generate_slots(
            [window(utc(16, day=9), utc(17, day=9))], [], date(2026, 3, 9), service, settings, now=BEFORE
        )

        self.assertEqual(before[0].to_payload()["start_time"], "2026-03-04T09:00:00-08:00")
        self.assertEqual(after[0].to_payload()["start_time"], "2026-03-09T09:00:00-07:00")
        self.assertEqual(after[0].end - after[0].start, timedelta(hours=1))


if __name__ == '__main__':
    unittest.main()
