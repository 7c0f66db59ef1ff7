from fastapi import APIRouter, Depends
from .manager import get_current_user
from modules.shared.response import success_response
router = APIRouter()

@router.get("/me")
async def get_me(current_user: dict = Depends(get_current_user)):
    """Get current user details"""
    return success_response(current_user, "User details retrieved")
