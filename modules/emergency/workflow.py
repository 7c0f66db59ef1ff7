"""
Emergency workflow: display listing, responder assignment, status transitions and deletion.

Assignment and resolution touch two records (emergency and responder). Both writes
run inside one store transaction so a failure on the second rolls back the first.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from modules.shared.errors import RecordNotFound, StoreError
from modules.shared.store import EMERGENCIES, REQUESTORS, RESPONDERS, USERS, RecordStore
from .utils import UNKNOWN_ADDRESS, UNKNOWN_USER, avatar_url, parse_location

logger = logging.getLogger("emergency.workflow")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_display(emergency: Dict[str, Any], requestor_name: str = UNKNOWN_USER,
               requestor_phone: str = "") -> Dict[str, Any]:
    """Shape an emergency row into the record the history and dashboard views render"""
    return {
        "id": emergency["id"],
        "type": emergency.get("type"),
        "status": emergency.get("status"),
        "address": emergency.get("address") or UNKNOWN_ADDRESS,
        "location": parse_location(emergency.get("location")),
        "reported_at": emergency.get("reported_at") or utcnow().isoformat(),
        "priority": emergency.get("priority"),
        "description": emergency.get("description") or "",
        "requestor_id": emergency.get("user_id"),
        "requestor_name": requestor_name,
        "requestor_phone": requestor_phone,
        "requestor_image": avatar_url(emergency.get("user_id")),
        "responder_id": emergency.get("responder_id"),
        "responder_name": emergency.get("responder") or "",
    }


async def _reporter_details(store: RecordStore, user_id: Optional[str],
                            requestors_by_user: Dict[str, Dict[str, Any]]):
    requestor = requestors_by_user.get(user_id)
    if requestor:
        return requestor.get("name") or UNKNOWN_USER, requestor.get("phone") or ""
    if not user_id:
        return UNKNOWN_USER, ""
    try:
        user = await store.get(USERS, user_id)
    except RecordNotFound:
        logger.info(f"No user or requestor found for user_id {user_id}")
        return UNKNOWN_USER, ""
    except StoreError as e:
        logger.error(f"Error fetching reporter {user_id}: {e.message}")
        return UNKNOWN_USER, ""
    return user.get("name") or UNKNOWN_USER, user.get("phone") or ""


async def list_emergencies_with_display(store: RecordStore) -> List[Dict[str, Any]]:
    """
    List every emergency, newest first, with reporter display data.

    Requestors are fetched once and matched on user_id; reporters without a
    requestor profile fall back to their User record. Never raises on store
    failure: an unreachable backend yields an empty list.
    """
    try:
        emergencies = await store.list(EMERGENCIES, order_by="reported_at", descending=True)
    except StoreError:
        logger.exception("Error fetching emergencies")
        return []

    try:
        requestors = await store.list(REQUESTORS)
    except StoreError:
        logger.exception("Error fetching requestors; reporter names fall back to users")
        requestors = []
    requestors_by_user = {r["user_id"]: r for r in requestors if r.get("user_id")}

    records = []
    for emergency in emergencies:
        name, phone = await _reporter_details(store, emergency.get("user_id"), requestors_by_user)
        records.append(to_display(emergency, name, phone))
    logger.info(f"Prepared {len(records)} emergency display records")
    return records


async def create_emergency(store: RecordStore, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a new emergency in pending status. Raises StoreError on failure."""
    now = utcnow()
    record = dict(payload)
    record.setdefault("status", "pending")
    record.setdefault("priority", "medium")
    record["reported_at"] = now
    record["updated_at"] = now
    created = await store.insert(EMERGENCIES, record)
    logger.info(f"Emergency {created['id']} created for user {created.get('user_id')}")
    return created


async def assign_responder(store: RecordStore, emergency_id: str, responder_id: str) -> bool:
    """
    Bind a responder to an emergency and move both into 'responding'.

    Returns True only when both records were written. Missing records or any
    store failure return False with nothing written.
    """
    logger.info(f"Assigning responder {responder_id} to emergency {emergency_id}")
    try:
        async with store.transaction() as tx:
            responder = await tx.get(RESPONDERS, responder_id)
            emergency = await tx.get(EMERGENCIES, emergency_id)

            if responder.get("status") != "available":
                logger.warning(
                    f"Responder {responder_id} is '{responder.get('status')}' "
                    f"(responding_to={responder.get('responding_to')}); assigning anyway"
                )

            previous_id = emergency.get("responder_id")
            if previous_id and previous_id != responder_id:
                await _release_responder(tx, previous_id, emergency_id)

            await tx.update(RESPONDERS, responder_id, {
                "status": "responding",
                "responding_to": emergency_id,
            })
            await tx.update(EMERGENCIES, emergency_id, {
                "responder_id": responder_id,
                "responder": responder.get("name"),
                "status": "responding",
                "updated_at": utcnow(),
            })
    except RecordNotFound as e:
        logger.error(f"Assignment aborted: {e.message}")
        return False
    except StoreError as e:
        logger.exception(f"Error assigning responder {responder_id} to emergency {emergency_id}: {e.message}")
        return False

    logger.info(f"Responder {responder_id} assigned to emergency {emergency_id}")
    return True


async def _release_responder(tx: RecordStore, responder_id: str, emergency_id: str) -> bool:
    """Return a responder to 'available' if it is still responding to this emergency"""
    try:
        responder = await tx.get(RESPONDERS, responder_id)
    except RecordNotFound:
        logger.info(f"Responder {responder_id} no longer exists; nothing to release")
        return False
    if responder.get("status") != "responding":
        logger.info(f"Responder {responder_id} is '{responder.get('status')}'; leaving it")
        return False
    if responder.get("responding_to") not in (None, emergency_id):
        logger.info(f"Responder {responder_id} has moved to {responder.get('responding_to')}; leaving it")
        return False
    await tx.update(RESPONDERS, responder_id, {"status": "available", "responding_to": None})
    logger.info(f"Responder {responder_id} released from emergency {emergency_id}")
    return True


async def update_emergency_status(store: RecordStore, emergency_id: str, status: str) -> bool:
    """
    Write a new status on an emergency.

    Resolving also frees the assigned responder. No transition rules are
    applied here; the views decide which statuses to offer.
    """
    logger.info(f"Updating emergency {emergency_id} status to {status}")
    try:
        async with store.transaction() as tx:
            emergency = await tx.get(EMERGENCIES, emergency_id)
            await tx.update(EMERGENCIES, emergency_id, {"status": status, "updated_at": utcnow()})

            responder_id = emergency.get("responder_id")
            if status == "resolved" and responder_id:
                await _release_responder(tx, responder_id, emergency_id)
    except RecordNotFound as e:
        logger.error(f"Status update aborted: {e.message}")
        return False
    except StoreError as e:
        logger.exception(f"Error updating emergency {emergency_id} status: {e.message}")
        return False

    logger.info(f"Emergency {emergency_id} status updated to {status}")
    return True


async def delete_emergency(store: RecordStore, emergency_id: str) -> Optional[str]:
    """
    Delete an emergency, first freeing the responder still working it.

    Returns the id of the released responder, if any. Raises StoreError
    (RecordNotFound for an unknown id) with nothing written.
    """
    logger.info(f"Deleting emergency {emergency_id}")
    released = None
    async with store.transaction() as tx:
        emergency = await tx.get(EMERGENCIES, emergency_id)
        responder_id = emergency.get("responder_id")
        if responder_id and await _release_responder(tx, responder_id, emergency_id):
            released = responder_id
        await tx.delete(EMERGENCIES, emergency_id)
    logger.info(f"Emergency {emergency_id} deleted")
    return released
