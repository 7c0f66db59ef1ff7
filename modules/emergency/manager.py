import logging
from typing import Optional

from modules.notifications.manager import publish_change
from modules.shared.errors import StoreError
from modules.shared.response import success_response, error_response, store_error_response
from modules.shared.search import EMERGENCY_SEARCH_FIELDS, filter_records
from modules.shared.store import EMERGENCIES, RESPONDERS, RecordStore
from . import workflow
from .models import EmergencyCreate
from .utils import available_actions, status_color, status_label, type_color, type_icon

logger = logging.getLogger("emergency.manager")

NO_RECORDS_MESSAGE = "No emergency records found"


def decorate(record: dict) -> dict:
    """Attach badge and button hints used by the history and details views"""
    record = dict(record)
    record["status_label"] = status_label(record.get("status"))
    record["status_color"] = status_color(record.get("status"))
    record["type_color"] = type_color(record.get("type"))
    record["type_icon"] = type_icon(record.get("type"))
    record["actions"] = available_actions(record.get("status"))
    return record


async def get_emergency_history(store: RecordStore, search: Optional[str], current_user: dict):
    """Emergency history view: every emergency with reporter details, filtered by search text"""
    logger.info(f"User {current_user['id']} is retrieving emergency history (search={search!r})")
    records = await workflow.list_emergencies_with_display(store)
    filtered = filter_records(records, search, EMERGENCY_SEARCH_FIELDS)
    message = "Emergencies retrieved successfully" if filtered else NO_RECORDS_MESSAGE
    return success_response({
        "emergencies": [decorate(r) for r in filtered],
        "total": len(filtered),
    }, message)


async def get_emergency(store: RecordStore, emergency_id: str, current_user: dict):
    """Get a single emergency by ID"""
    logger.info(f"User {current_user['id']} is retrieving emergency {emergency_id}")
    try:
        emergency = await store.get(EMERGENCIES, emergency_id)
    except StoreError as e:
        logger.warning(f"Emergency {emergency_id} could not be loaded: {e.message}")
        return store_error_response(e, "Emergency not found" if e.status_code == 404 else None)
    return success_response(decorate(workflow.to_display(emergency)), "Emergency retrieved successfully")


async def create_emergency(store: RecordStore, emergency: EmergencyCreate, current_user: dict):
    """Report a new emergency"""
    logger.info(f"User {current_user['id']} is creating an emergency for user {emergency.user_id}")
    payload = emergency.model_dump()
    try:
        created = await workflow.create_emergency(store, payload)
    except StoreError as e:
        logger.exception("Error creating emergency")
        return store_error_response(e)
    await publish_change(EMERGENCIES, "insert", created)
    return success_response(created, "Emergency created successfully", status_code=201)


async def assign_responder(store: RecordStore, emergency_id: str, responder_id: str, current_user: dict):
    """Assign a responder and move the emergency to responding"""
    logger.info(f"User {current_user['id']} is assigning responder {responder_id} to emergency {emergency_id}")
    if not await workflow.assign_responder(store, emergency_id, responder_id):
        return error_response("Failed to assign responder. Please try again.", 400)

    emergency = await _reload(store, EMERGENCIES, emergency_id)
    responder = await _reload(store, RESPONDERS, responder_id)
    await publish_change(EMERGENCIES, "update", emergency)
    await publish_change(RESPONDERS, "update", responder)
    return success_response({"emergency": emergency, "responder": responder},
                            "Responder successfully assigned to the emergency.")


async def update_status(store: RecordStore, emergency_id: str, status: str, current_user: dict):
    """Change an emergency's status; resolving frees its responder"""
    logger.info(f"User {current_user['id']} is updating emergency {emergency_id} status to {status}")
    if not await workflow.update_emergency_status(store, emergency_id, status):
        return error_response("Failed to update emergency status. Please try again.", 400)

    emergency = await _reload(store, EMERGENCIES, emergency_id)
    await publish_change(EMERGENCIES, "update", emergency)
    if status == "resolved" and emergency.get("responder_id"):
        responder = await _reload(store, RESPONDERS, emergency["responder_id"])
        await publish_change(RESPONDERS, "update", responder)
    return success_response(emergency, f"Emergency status updated to: {status}")


async def delete_emergency(store: RecordStore, emergency_id: str, current_user: dict):
    logger.info(f"User {current_user['id']} is deleting emergency {emergency_id}")
    try:
        released = await workflow.delete_emergency(store, emergency_id)
    except StoreError as e:
        logger.error(f"Error deleting emergency {emergency_id}: {e.message}")
        return store_error_response(e, "Emergency not found" if e.status_code == 404 else None)
    await publish_change(EMERGENCIES, "delete", {"id": emergency_id})
    if released:
        await publish_change(RESPONDERS, "update", await _reload(store, RESPONDERS, released))
    return success_response({"id": emergency_id, "released_responder_id": released}, "Emergency deleted successfully")


async def _reload(store: RecordStore, table: str, record_id: str) -> dict:
    """Fetch the post-write row for the response; the write already succeeded, so degrade to the id."""
    try:
        return await store.get(table, record_id)
    except StoreError as e:
        logger.warning(f"Could not reload {table} {record_id} after write: {e.message}")
        return {"id": record_id}
