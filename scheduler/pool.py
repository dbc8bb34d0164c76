"""
Resource pool helpers: which resources can serve a service at a location,
and which one to hand to a booking made from an auto-assigned slot.
"""

import logging
from typing import List, Optional, Sequence

from models import Location, Resource, Service, Slot

logger = logging.getLogger(__name__)


def _at_location(resource: Resource, location: Optional[Location]) -> bool:
    # Resources with no location link are shared by every location
    if not resource.location_id and not resource.location_ids:
        return True
    if location is None or location.id is None:
        return False
    return resource.location_id == location.id or location.id in resource.location_ids


def _type_compatible(resource: Resource, service: Service) -> bool:
    if not service.resource_type_ids or not resource.resource_type_id:
        return True
    return resource.resource_type_id in service.resource_type_ids


def select_resource_pool(
    resources: Sequence[Resource],
    location: Optional[Location],
    service: Optional[Service]
) -> List[Resource]:
    """Active resources at `location` whose type suits `service`."""
    if service is None or not service.requires_resource:
        return []

    pool = [
        r for r in resources
        if r.is_active and _at_location(r, location) and _type_compatible(r, service)
    ]
    logger.info(f"Resource pool for service {service.id}: {[r.id for r in pool]}")
    return pool


def pick_resource_for_slot(slot: Slot, pool: Sequence[Resource]) -> Optional[Resource]:
    """First free resource of an auto-assigned slot, or None when nothing is free."""
    if not slot.available_resource_ids:
        return None

    resource_id = slot.available_resource_ids[0]
    for resource in pool:
        if resource.id == resource_id:
            return resource
    return Resource(id=resource_id)
