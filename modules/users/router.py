from fastapi import APIRouter, Depends, Query
from .models import RequestorCreate, ResponderCreate, UserCreate
from .manager import (
    list_users, list_requestors, list_responders, create_requestor, create_responder,
    create_user_with_profile, delete_record,
)
from modules.auth.manager import get_current_admin
from modules.shared.store import REQUESTORS, RESPONDERS, RecordStore, get_store

router = APIRouter()

@router.get("/")
async def get_users(
    role: str = Query(None),
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    return await list_users(store, role, current_user)

@router.post("/")
async def add_user(
    user: UserCreate,
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    """Add a requestor or responder account"""
    return await create_user_with_profile(store, user, current_user)

@router.get("/requestors")
async def get_requestors(
    search: str = Query(None),
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    return await list_requestors(store, search, current_user)

@router.post("/requestors")
async def add_requestor(
    requestor: RequestorCreate,
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    return await create_requestor(store, requestor, current_user)

@router.delete("/requestors/{requestor_id}")
async def remove_requestor(
    requestor_id: str,
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    return await delete_record(store, REQUESTORS, requestor_id, current_user)

@router.get("/responders")
async def get_responders(
    search: str = Query(None),
    status: str = Query(None),
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    return await list_responders(store, search, status, current_user)

@router.post("/responders")
async def add_responder(
    responder: ResponderCreate,
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    return await create_responder(store, responder, current_user)

@router.delete("/responders/{responder_id}")
async def remove_responder(
    responder_id: str,
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    return await delete_record(store, RESPONDERS, responder_id, current_user)
