"""Region derivation helpers."""

from __future__ import annotations

import logging

from iaas_connector.core.errors import BackendError
from iaas_connector.core.models import Location

logger = logging.getLogger(__name__)

REGION_SEPARATOR = "/"


def region_from_image(image: str) -> str:
    """``"eu-west-1/ami-123"`` -> ``"eu-west-1"``."""
    return image.split(REGION_SEPARATOR)[0]


def split_instance_id(instance_id: str) -> tuple[str | None, str]:
    """Split a ``region/instance-id`` id. Ids without a region give ``(None, id)``."""
    if REGION_SEPARATOR in instance_id:
        region, _, bare_id = instance_id.partition(REGION_SEPARATOR)
        return region, bare_id
    return None, instance_id


def region_from_node(location: Location, assignable: set[Location]) -> str:
    """Walk up the location tree until an assignable location is found."""
    assignable_ids = {loc.id for loc in assignable}
    current: Location | None = location
    while current is not None:
        if current.id in assignable_ids:
            return current.id
        current = current.parent
    raise BackendError(f"Location {location.id} has no assignable ancestor")


def region_from_zone(zone: str) -> str:
    """Drop the availability zone letter: ``"eu-west-1c"`` -> ``"eu-west-1"``."""
    region = zone[:-1]
    logger.debug("Subdivided region=%s, extracted region=%s", zone, region)
    return region
