from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class ExecutionStatus(BaseModel):
    """Process-wide state of the cue engine"""
    is_running: bool = False
    cue_id: Optional[int] = None
    current_step: Optional[int] = None  # order of the most recently started step
    start_time: Optional[datetime] = None
    total_steps: int = 0

class StopExecutionResponse(BaseModel):
    message: str

# Preset application
class ApplyPresetRequest(BaseModel):
    """Apply a stored preset to one or more devices"""
    preset_id: int = Field(gt=0)
    device_ids: List[int] = Field(min_length=1)

class ApplyPresetResult(BaseModel):
    preset_id: int
    device_ids: List[int]
    failed_device_ids: List[int] = Field(default_factory=list)

class ApplyPresetResponse(ApplyPresetResult):
    message: str
