import logging
from typing import Dict, Iterable, List, Optional

from modules.emergency.utils import EMERGENCY_TYPES, PRIORITIES, UNKNOWN_ADDRESS, parse_location, status_color, type_icon
from modules.emergency.workflow import utcnow
from modules.shared.errors import StoreError
from modules.shared.store import EMERGENCIES, RecordStore

logger = logging.getLogger("map.manager")

# Marker toggles the map starts with: everything except resolved incidents
DEFAULT_STATUSES = ("pending", "responding")


def to_marker(emergency: Dict) -> Dict:
    return {
        "id": emergency["id"],
        "type": emergency.get("type"),
        "location": parse_location(emergency.get("location")),
        "address": emergency.get("address") or UNKNOWN_ADDRESS,
        "status": emergency.get("status"),
        "reported_at": emergency.get("reported_at") or utcnow().isoformat(),
        "priority": emergency.get("priority"),
        "requestor_id": emergency.get("user_id"),
        "marker_color": status_color(emergency.get("status")),
        "icon": type_icon(emergency.get("type")),
    }


def filter_markers(markers: List[Dict], types: Optional[Iterable[str]] = None,
                   statuses: Optional[Iterable[str]] = None,
                   priorities: Optional[Iterable[str]] = None) -> List[Dict]:
    """Keep markers whose type, status and priority are all toggled on"""
    types = set(types or EMERGENCY_TYPES)
    statuses = set(statuses or DEFAULT_STATUSES)
    priorities = set(priorities or PRIORITIES)
    return [
        m for m in markers
        if m["type"] in types and m["status"] in statuses and m["priority"] in priorities
    ]


async def get_emergency_locations(store: RecordStore, types=None, statuses=None, priorities=None) -> List[Dict]:
    """Emergencies as map markers. Returns an empty list when the store is unreachable."""
    try:
        emergencies = await store.list(EMERGENCIES, order_by="reported_at", descending=True)
    except StoreError:
        logger.exception("Error fetching emergency locations")
        return []
    markers = filter_markers([to_marker(e) for e in emergencies], types, statuses, priorities)
    logger.info(f"Returning {len(markers)} of {len(emergencies)} emergencies as map markers")
    return markers
