from fastapi import APIRouter, Depends
from .manager import get_dashboard_stats
from modules.auth.manager import get_current_admin
from modules.shared.store import RecordStore, get_store

router = APIRouter()

@router.get("/stats")
async def get_stats(store: RecordStore = Depends(get_store), current_user: dict = Depends(get_current_admin)):
    """Get dashboard statistics"""
    return await get_dashboard_stats(store, current_user)
