import json
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger("emergency.utils")

EMERGENCY_TYPES = ("medical", "fire", "police", "disaster", "other")
PRIORITIES = ("high", "medium", "low")

ACTIVE_STATUSES = ("pending", "responding")

# Map center used when a row carries no usable coordinates (Bilar, Bohol)
DEFAULT_LOCATION = {"lat": 9.6282, "lng": 124.0935}
UNKNOWN_ADDRESS = "Unknown location"
UNKNOWN_USER = "Unknown User"
AVATAR_URL = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"

STATUS_LABELS = {
    "pending": "Pending",
    "responding": "Responding",
    "resolved": "Resolved",
    "cancelled": "Cancelled",
}

STATUS_COLORS = {
    "pending": "yellow",
    "responding": "blue",
    "resolved": "green",
    "cancelled": "gray",
}

TYPE_COLORS = {
    "medical": "red",
    "fire": "orange",
    "police": "blue",
    "disaster": "green",
}

TYPE_ICONS = {
    "medical": "ambulance",
    "fire": "alert-triangle",
    "police": "shield",
    "disaster": "alert-triangle",
}

# Buttons shown per status. Updates are not checked against this.
STATUS_ACTIONS = {
    "pending": ("responding", "assign"),
    "responding": ("resolved",),
    "resolved": ("pending",),
    "cancelled": (),
}


def status_label(status: Optional[str]) -> str:
    return STATUS_LABELS.get(status, (status or "unknown").capitalize())


def status_color(status: Optional[str]) -> str:
    return STATUS_COLORS.get(status, "gray")


def type_color(emergency_type: Optional[str]) -> str:
    return TYPE_COLORS.get(emergency_type, "gray")


def type_icon(emergency_type: Optional[str]) -> str:
    return TYPE_ICONS.get(emergency_type, "map-pin")


def available_actions(status: Optional[str]) -> List[str]:
    """Status transitions (plus 'assign') offered for an emergency in the given status"""
    return list(STATUS_ACTIONS.get(status, ()))


def avatar_url(seed: Optional[str]) -> str:
    return AVATAR_URL.format(seed=seed or "")


def parse_location(value: Any) -> Dict[str, float]:
    """
    Normalize a stored location into {"lat": float, "lng": float}.

    Accepts a dict, a JSON string, or "lat,lng" text. Anything unparseable
    falls back to DEFAULT_LOCATION.
    """
    if isinstance(value, str):
        text = value.strip()
        try:
            value = json.loads(text)
        except ValueError:
            parts = text.split(",")
            if len(parts) == 2:
                value = {"lat": parts[0], "lng": parts[1]}
    if isinstance(value, dict):
        lat = value.get("lat", value.get("latitude"))
        lng = value.get("lng", value.get("lon", value.get("longitude")))
        try:
            return {"lat": float(lat), "lng": float(lng)}
        except (TypeError, ValueError):
            pass
    logger.debug(f"Unparseable location {value!r}, using default")
    return dict(DEFAULT_LOCATION)

