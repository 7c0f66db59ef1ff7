from fastapi import APIRouter, Depends, Query
from .models import EmergencyCreate, EmergencyStatusUpdate, ResponderAssignment
from .manager import get_emergency_history, get_emergency, create_emergency, assign_responder, update_status, delete_emergency
from modules.auth.manager import get_current_admin
from modules.shared.store import RecordStore, get_store

router = APIRouter()

@router.get("/")
async def get_all_emergencies(
    search: str = Query(None),
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    """Emergency history with optional search"""
    return await get_emergency_history(store, search, current_user)

@router.post("/")
async def create(
    emergency: EmergencyCreate,
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    """Report a new emergency"""
    return await create_emergency(store, emergency, current_user)

@router.get("/{emergency_id}")
async def get_single_emergency(
    emergency_id: str,
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    """Get a single emergency by ID"""
    return await get_emergency(store, emergency_id, current_user)

@router.post("/{emergency_id}/assign")
async def assign(
    emergency_id: str,
    body: ResponderAssignment,
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    """Assign a responder to an emergency"""
    return await assign_responder(store, emergency_id, body.responder_id, current_user)

@router.post("/{emergency_id}/status")
async def change_status(
    emergency_id: str,
    body: EmergencyStatusUpdate,
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    """Update an emergency's status (respond, resolve, reopen)"""
    return await update_status(store, emergency_id, body.status, current_user)

@router.delete("/{emergency_id}")
async def delete(
    emergency_id: str,
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    """Delete an emergency"""
    return await delete_emergency(store, emergency_id, current_user)
