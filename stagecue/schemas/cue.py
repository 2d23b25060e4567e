from pydantic import BaseModel, Field, model_validator
from typing import Annotated, Optional, List

Channel = Annotated[int, Field(ge=0, le=255)]
Color = Annotated[List[Channel], Field(min_length=4, max_length=4)]


class CueStepPlan(BaseModel):
    """One step of a cue as the engine executes it"""
    step_id: int
    order: int
    time_offset: float = Field(ge=0)  # seconds from cue start
    transition_duration: float = Field(ge=0)  # seconds
    target_color: Optional[Color] = None
    target_brightness: Optional[int] = Field(None, ge=0, le=255)
    start_color: Optional[Color] = None
    start_brightness: Optional[int] = Field(None, ge=0, le=255)
    turn_off: bool = False
    device_ids: List[int] = Field(min_length=1)

    @model_validator(mode="after")
    def require_target(self) -> "CueStepPlan":
        if not self.turn_off and self.target_color is None and self.target_brightness is None:
            raise ValueError("step needs a target color or brightness unless turn_off is set")
        return self

    @property
    def end_time(self) -> float:
        return self.time_offset + self.transition_duration


class CuePlan(BaseModel):
    """Read-only snapshot of a cue loaded for one execution"""
    cue_id: int
    name: str
    steps: List[CueStepPlan]

    @property
    def horizon(self) -> float:
        """Seconds from cue start until the last step's transition ends"""
        return max((step.end_time for step in self.steps), default=0.0)

class ExecuteCueResponse(BaseModel):
    message: str
    cue_id: int
