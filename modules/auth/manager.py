import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from modules.auth.utils import decode_token
from modules.shared.errors import RecordNotFound, StoreError
from modules.shared.store import USERS, RecordStore, get_store

logger = logging.getLogger("auth.manager")

# Tokens are issued by the identity backend; this service only verifies them.
bearer_scheme = HTTPBearer(auto_error=False)

async def user_from_token(token: Optional[str], store: RecordStore) -> dict:
    """Resolve a bearer token to its user record; HTTPException (401/503) otherwise"""
    payload = decode_token(token) if token else None
    if not payload or not payload.get("sub"):
        logger.warning("Invalid token provided.")
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload["sub"]
    logger.info(f"Fetching user with id: {user_id}")
    try:
        user = await store.get(USERS, user_id)
    except RecordNotFound:
        logger.warning(f"User not found for id: {user_id}")
        raise HTTPException(status_code=401, detail="User not found")
    except StoreError as e:
        logger.error(f"Could not load user {user_id}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail="Could not verify user")

    logger.info(f"User fetched successfully: {user.get('name')} (id: {user['id']})")
    return user

def require_admin(user: dict) -> dict:
    if user.get("role") != "admin":
        logger.warning(f"Non-admin user {user['id']} denied access")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: RecordStore = Depends(get_store),
) -> dict:
    """Get current user from JWT"""
    return await user_from_token(credentials.credentials if credentials else None, store)

async def get_current_admin(current_user: dict = Depends(get_current_user)) -> dict:
    """Require the admin role"""
    return require_admin(current_user)
