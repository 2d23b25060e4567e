from pydantic import BaseModel, Field
from typing import Optional


class GoToRequest(BaseModel):
    """Jump to a position in a cue list"""
    position: int = Field(ge=0)

class CueListPositionResponse(BaseModel):
    """Cue list position after navigation"""
    cue_list_id: int
    current_position: int
    current_cue_id: Optional[int] = None
