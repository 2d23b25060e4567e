from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from stagecue.schemas.cue import Color


class DeviceState(BaseModel):
    """Live state reported by a device"""
    on: bool = False
    brightness: int = Field(0, ge=0, le=255)
    color: Optional[Color] = None  # first color slot of the main segment

class ConnectionStatus(BaseModel):
    """Last known reachability of a device"""
    device_id: int
    is_connected: bool
    last_ping_at: Optional[datetime] = None
    error_count: int = 0

class ReconnectResponse(BaseModel):
    device_id: int
    is_connected: bool
    status: Optional[ConnectionStatus] = None