from pydantic import BaseModel, Field
from typing import Literal, Optional, Union

EmergencyType = Literal["medical", "fire", "police", "disaster", "other"]
EmergencyStatus = Literal["pending", "responding", "resolved", "cancelled"]
Priority = Literal["high", "medium", "low"]

class Location(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

class EmergencyCreate(BaseModel):
    user_id: str
    type: EmergencyType
    description: str
    location: Optional[Union[Location, str]] = None
    address: Optional[str] = None
    priority: Priority = "medium"

class EmergencyStatusUpdate(BaseModel):
    status: EmergencyStatus

class ResponderAssignment(BaseModel):
    responder_id: str
