from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from .manager import get_emergency_locations
from modules.auth.manager import get_current_admin
from modules.shared.response import success_response
from modules.shared.store import RecordStore, get_store

router = APIRouter()

@router.get("/")
async def get_map_locations(
    type: Optional[List[str]] = Query(None),
    status: Optional[List[str]] = Query(None),
    priority: Optional[List[str]] = Query(None),
    store: RecordStore = Depends(get_store),
    current_user: dict = Depends(get_current_admin),
):
    """
    Endpoint to fetch emergency map markers.
    Repeat a query parameter to enable several values, e.g. ?status=pending&status=resolved.
    """
    locations = await get_emergency_locations(store, type, status, priority)
    return success_response(locations, "Map data fetched successfully")
