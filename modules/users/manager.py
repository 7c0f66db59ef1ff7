import logging
from datetime import datetime, timezone
from typing import Optional

from modules.notifications.manager import publish_change
from modules.shared.errors import StoreError
from modules.shared.response import success_response, store_error_response
from modules.shared.search import REQUESTOR_SEARCH_FIELDS, RESPONDER_SEARCH_FIELDS, filter_records
from modules.shared.store import REQUESTORS, RESPONDERS, USERS, RecordStore
from .models import RequestorCreate, ResponderCreate, UserCreate

logger = logging.getLogger("users.manager")

PROFILE_TABLES = {
    "requestor": REQUESTORS,
    "responder": RESPONDERS,
}


async def _list_or_empty(store: RecordStore, table: str, **kwargs) -> list:
    try:
        return await store.list(table, **kwargs)
    except StoreError:
        logger.exception(f"Error fetching {table}")
        return []


async def list_users(store: RecordStore, role: Optional[str], current_user: dict):
    logger.info(f"User {current_user['id']} is listing users (role={role})")
    filters = {"role": role} if role else None
    users = await _list_or_empty(store, USERS, filters=filters, order_by="created_at", descending=True)
    return success_response({"users": users, "total": len(users)}, "Users retrieved successfully")


async def list_requestors(store: RecordStore, search: Optional[str], current_user: dict):
    logger.info(f"User {current_user['id']} is listing requestors (search={search!r})")
    requestors = await _list_or_empty(store, REQUESTORS)
    filtered = filter_records(requestors, search, REQUESTOR_SEARCH_FIELDS)
    # Requestors with both a situation and a concern recorded are shown as active cases
    active = [r for r in filtered if r.get("situation") and r.get("concern")]
    return success_response({
        "requestors": filtered,
        "active_cases": active,
        "total": len(filtered),
    }, "Requestors retrieved successfully" if filtered else "No requestors found")


async def list_responders(store: RecordStore, search: Optional[str], status: Optional[str], current_user: dict):
    logger.info(f"User {current_user['id']} is listing responders (search={search!r}, status={status})")
    filters = {"status": status} if status else None
    responders = await _list_or_empty(store, RESPONDERS, filters=filters)
    filtered = filter_records(responders, search, RESPONDER_SEARCH_FIELDS)
    return success_response({
        "responders": filtered,
        "total": len(filtered),
    }, "Responders retrieved successfully" if filtered else "No responders found")


async def create_requestor(store: RecordStore, requestor: RequestorCreate, current_user: dict):
    logger.info(f"User {current_user['id']} is adding requestor {requestor.email}")
    try:
        created = await store.insert(REQUESTORS, {**requestor.model_dump(), "created_at": datetime.now(timezone.utc)})
    except StoreError as e:
        logger.error(f"Error creating requestor: {e.message}")
        return store_error_response(e)
    await publish_change(REQUESTORS, "insert", created)
    return success_response(created, "Requestor added successfully", status_code=201)


async def create_responder(store: RecordStore, responder: ResponderCreate, current_user: dict):
    logger.info(f"User {current_user['id']} is adding responder {responder.email}")
    try:
        created = await store.insert(RESPONDERS, {**responder.model_dump(), "created_at": datetime.now(timezone.utc)})
    except StoreError as e:
        logger.error(f"Error creating responder: {e.message}")
        return store_error_response(e)
    await publish_change(RESPONDERS, "insert", created)
    return success_response(created, "Responder added successfully", status_code=201)


async def create_user_with_profile(store: RecordStore, user: UserCreate, current_user: dict):
    """
    Create a user and its requestor or responder profile in one transaction.
    Either both rows exist afterwards or neither does.
    """
    logger.info(f"User {current_user['id']} is adding {user.role} account {user.email}")
    now = datetime.now(timezone.utc)
    profile = {
        "name": user.name,
        "email": user.email,
        "phone": user.phone or "",
        "created_at": now,
    }
    if user.role == "responder":
        profile.update({"type": user.type, "status": user.status})

    table = PROFILE_TABLES[user.role]
    try:
        async with store.transaction() as tx:
            created_user = await tx.insert(USERS, {
                "name": user.name,
                "email": user.email,
                "phone": user.phone,
                "role": user.role,
                "type": user.type,
                "created_at": now,
            })
            created_profile = await tx.insert(table, {**profile, "user_id": created_user["id"]})
    except StoreError as e:
        logger.error(f"Error adding {user.role} account {user.email}: {e.message}")
        return store_error_response(e, f"Failed to add {user.role}: {e.message}")

    await publish_change(USERS, "insert", created_user)
    await publish_change(table, "insert", created_profile)
    return success_response({"user": created_user, user.role: created_profile},
                            f"{user.role.capitalize()} added successfully", status_code=201)


async def delete_record(store: RecordStore, table: str, record_id: str, current_user: dict):
    label = table.rstrip("s")
    logger.info(f"User {current_user['id']} is deleting {label} {record_id}")
    try:
        await store.delete(table, record_id)
    except StoreError as e:
        logger.error(f"Error deleting {label} {record_id}: {e.message}")
        return store_error_response(e, f"{label.capitalize()} not found" if e.status_code == 404 else None)
    await publish_change(table, "delete", {"id": record_id})
    return success_response({"id": record_id}, f"{label.capitalize()} deleted successfully")
