import logging
from copy import deepcopy
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from modules.shared.response import serialize_data
from .utils import manager, topic_for_table

logger = logging.getLogger("notifications.manager")


async def publish_change(table: str, operation: str, record: Dict) -> None:
    """Push a row change to subscribers of the table's change feed."""
    event = f"{table}.{operation}"
    delivered = await manager.broadcast(topic_for_table(table), {"event": event, "data": serialize_data(record)})
    logger.info(f"Published {event} for {record.get('id')} to {delivered} subscriber(s)")


def _seed_notifications() -> List[Dict]:
    now = datetime.now(timezone.utc)
    return [
        {
            "id": "1",
            "title": "New Emergency",
            "message": "Medical emergency reported at 123 Main St",
            "type": "emergency",
            "read": False,
            "created_at": now.isoformat(),
            "emergency_id": "e1",
        },
        {
            "id": "2",
            "title": "Status Update",
            "message": "Fire emergency status changed to responding",
            "type": "emergency",
            "read": False,
            "created_at": (now - timedelta(minutes=5)).isoformat(),
            "emergency_id": "e2",
        },
        {
            "id": "3",
            "title": "System Notification",
            "message": "New responder added to the system",
            "type": "system",
            "read": True,
            "created_at": (now - timedelta(hours=1)).isoformat(),
        },
    ]


class NotificationCenter:
    """
    In-memory notification list. Nothing here is persisted or delivered;
    read flags live only as long as the process.
    """

    def __init__(self, notifications: Optional[List[Dict]] = None):
        self._notifications = deepcopy(notifications) if notifications is not None else _seed_notifications()

    def list(self) -> List[Dict]:
        return deepcopy(self._notifications)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n["read"])

    def mark_as_read(self, notification_id: str) -> bool:
        for notification in self._notifications:
            if notification["id"] == notification_id:
                notification["read"] = True
                return True
        logger.warning(f"Notification {notification_id} not found")
        return False

    def mark_all_as_read(self) -> int:
        changed = 0
        for notification in self._notifications:
            if not notification["read"]:
                notification["read"] = True
                changed += 1
        return changed


class PresenceBoard:
    """Fixed in-memory roster of who appears online on the map view."""

    def __init__(self):
        self.responders = [
            {"id": "r1", "name": "Dr. Maria Santos", "type": "Medical", "status": "online", "last_active": "Just now"},
            {"id": "r2", "name": "Officer Juan Cruz", "type": "Police", "status": "online", "last_active": "2 min ago"},
            {"id": "r3", "name": "Firefighter Pedro Reyes", "type": "Fire", "status": "busy", "last_active": "5 min ago"},
        ]
        self.requestors = [
            {"id": "req1", "name": "Juan Dela Cruz", "status": "emergency", "last_active": "Just now"},
            {"id": "req2", "name": "Armando C. Jumawid", "status": "emergency", "last_active": "3 min ago"},
            {"id": "req3", "name": "Maria Santos", "status": "safe", "last_active": "10 min ago"},
        ]

    def snapshot(self) -> Dict[str, List[Dict]]:
        return {"responders": deepcopy(self.responders), "requestors": deepcopy(self.requestors)}


notification_center = NotificationCenter()
presence_board = PresenceBoard()


def get_notification_center() -> NotificationCenter:
    return notification_center


def get_presence_board() -> PresenceBoard:
    return presence_board
