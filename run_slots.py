"""
Command-line entry point for the Slot Engine.

Reads a JSON request describing one booking screen (company, service,
location, date, coach schedule, resource bookings...) and prints the
bookable slots, or the class sessions for class-like services.
"""

import argparse
import json
import logging
import sys
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ingest import parse_location, parse_resources, parse_service
from models import ClassSessionGroups, Coach, Slot, SlotSettings
from scheduler.pipeline import SlotPipeline
from scheduler.pool import select_resource_pool
from scheduler.timezone import parse_instant

logger = logging.getLogger("Main")


def load_request(filename: str) -> Optional[Dict[str, Any]]:
    """Read the request file; None when it is missing or not JSON."""
    try:
        with open(filename, 'r') as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.error(f"Could not read request {filename}: {e}")
        return None

    if not isinstance(data, dict):
        logger.error(f"Request {filename} must be a JSON object")
        return None
    return data


def build_pipeline(request: Dict[str, Any], settings: SlotSettings) -> SlotPipeline:
    """Serve the pre-fetched payloads in the request through the fetcher hooks."""

    def coach_schedule(coach, day):
        return request.get("coach_schedule")

    def resource_bookings(location, day, resource_ids):
        if "resource_bookings" not in request:
            raise LookupError("request has no resource_bookings")
        return request.get("resource_bookings")

    def class_sessions(service, location, day, coach):
        return request.get("class_sessions")

    return SlotPipeline(
        settings,
        fetch_coach_schedule=coach_schedule if "coach_schedule" in request else None,
        fetch_resource_bookings=resource_bookings,
        fetch_class_sessions=class_sessions,
    )


def compute(request: Dict[str, Any], now: Optional[datetime] = None):
    """Run the pipeline for a loaded request."""
    settings = SlotSettings.from_company(request.get("company"))
    service = parse_service(request.get("service"))
    location = parse_location(request.get("location"))
    day = date.fromisoformat(request["date"])

    raw_coach = request.get("coach")
    coach = Coach(id=raw_coach.get("id"), name=raw_coach.get("name")) if isinstance(raw_coach, dict) else None

    resources = parse_resources(request.get("resources"))
    pool = select_resource_pool(resources, location, service)

    selected = None
    selected_id = request.get("selected_resource_id")
    if selected_id is not None:
        selected = next((r for r in resources if r.id == str(selected_id)), None)
        if selected is None:
            logger.warning(f"Selected resource {selected_id} not in the resource directory")

    pipeline = build_pipeline(request, settings)
    return pipeline.run(
        service,
        location,
        day,
        coach=coach,
        selected_resource=selected,
        resource_pool=pool,
        duration_minutes=request.get("duration_minutes"),
        now=now,
    )


def print_slots(slots: List[Slot]):
    print("\n" + "=" * 50)
    print(f"AVAILABLE SLOTS ({len(slots)})")
    print("=" * 50)
    for slot in slots:
        line = f"{slot.display_time:>9}  {slot.start.isoformat()} -> {slot.end.isoformat()}"
        if slot.available_resource_ids is not None:
            line += f"  capacity={slot.capacity} resources={','.join(slot.available_resource_ids)}"
        print(line)


def print_class_sessions(result: ClassSessionGroups):
    print("\n" + "=" * 50)
    print(f"CLASS SESSIONS ({len(result.flat)})")
    print("=" * 50)
    for group in result.groups:
        coach_name = (group.coach or {}).get("name") or "Unassigned"
        print(f"{coach_name}:")
        for session in group.slots:
            state = "FULL" if session.is_full else f"{session.available} left"
            if session.is_past:
                state += ", started"
            print(f"  {session.display_time:>9}  {state}")


def export_result(result, filename: str):
    if isinstance(result, ClassSessionGroups):
        data = result.model_dump(mode='json')
    else:
        data = [slot.to_payload() for slot in result]

    with open(filename, 'w') as f:
        json.dump(data, f, indent=2)
    logger.info(f"Exported result to {filename}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Compute bookable slots for one service and date.")
    parser.add_argument("request", help="JSON request file")
    parser.add_argument("--now", help="Current instant (ISO-8601), for reproducible runs")
    parser.add_argument("--export", help="Write the result as JSON to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    request = load_request(args.request)
    if request is None or not request.get("date"):
        logger.error("A request with at least a 'date' is required")
        return 1

    now = None
    if args.now:
        try:
            now = parse_instant(args.now, date.fromisoformat(request["date"]), SlotSettings.from_company(request.get("company")).zone)
        except ValueError as e:
            logger.error(f"Invalid --now value: {e}")
            return 1

    try:
        result = compute(request, now)
    except ValueError as e:
        logger.error(f"Invalid request: {e}")
        return 1

    if isinstance(result, ClassSessionGroups):
        print_class_sessions(result)
    else:
        print_slots(result)

    if args.export:
        export_result(result, args.export)
    return 0


if __name__ == "__main__":
    sys.exit(main())
