from pydantic import BaseModel
from typing import Literal, Optional

ResponderStatus = Literal["available", "responding", "unavailable"]

class RequestorCreate(BaseModel):
    user_id: str
    name: str
    email: str
    phone: str = ""
    situation: Optional[str] = None
    concern: Optional[str] = None

class ResponderCreate(BaseModel):
    user_id: str
    name: str
    email: str
    phone: str = ""
    type: Optional[str] = None
    status: ResponderStatus = "available"

class UserCreate(BaseModel):
    """A new account together with its requestor or responder profile"""
    name: str
    email: str
    phone: Optional[str] = None
    role: Literal["requestor", "responder"] = "responder"
    type: Optional[str] = None
    status: ResponderStatus = "available"
