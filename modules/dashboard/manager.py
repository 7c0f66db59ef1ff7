import logging

from modules.emergency.utils import ACTIVE_STATUSES
from modules.emergency.workflow import to_display
from modules.shared.errors import StoreError
from modules.shared.response import success_response
from modules.shared.store import EMERGENCIES, REQUESTORS, RESPONDERS, RecordStore

logger = logging.getLogger("dashboard.manager")

RECENT_LIMIT = 5


async def _count(store: RecordStore, table: str, filters: dict = None) -> int:
    """Count rows, reporting 0 when the store cannot answer"""
    try:
        return await store.count(table, filters)
    except StoreError:
        logger.exception(f"Error counting {table} (filters={filters})")
        return 0


async def get_dashboard_stats(store: RecordStore, current_user: dict):
    """Counters and the latest emergencies shown on the admin dashboard"""
    logger.info(f"User {current_user['id']} is retrieving dashboard stats")
    stats = {
        "total_emergencies": await _count(store, EMERGENCIES),
        "active_emergencies": await _count(store, EMERGENCIES, {"status": list(ACTIVE_STATUSES)}),
        "total_responders": await _count(store, RESPONDERS),
        "available_responders": await _count(store, RESPONDERS, {"status": "available"}),
        "total_requestors": await _count(store, REQUESTORS),
    }

    try:
        latest = await store.list(EMERGENCIES, order_by="reported_at", descending=True, limit=RECENT_LIMIT)
    except StoreError:
        logger.exception("Error fetching recent emergencies")
        latest = []
    stats["recent_emergencies"] = [to_display(e) for e in latest]

    return success_response(stats, "Dashboard stats retrieved successfully")
