import logging
from jose import JWTError, jwt
import os

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

def _secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET environment variable is not set.")
    return secret

def decode_token(token: str) -> dict:
    """Decode JWT token; None when invalid or expired"""
    logger.debug("Decoding JWT token.")
    try:
        decoded = jwt.decode(token, _secret(), algorithms=[ALGORITHM])
        logger.debug(f"Token decoded successfully for subject: {decoded.get('sub')}")
        return decoded
    except JWTError as e:
        logger.error(f"Failed to decode token: {e}")
        return None
