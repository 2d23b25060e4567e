from fastapi import APIRouter, Depends

from stagecue.api.dependencies import get_execution_service
from stagecue.schemas.cue import ExecuteCueResponse
from stagecue.services.cue_execution_service import CueExecutionService

router = APIRouter(prefix="/api/cues", tags=["cues"])


@router.post("/{cue_id}/execute", response_model=ExecuteCueResponse)
async def execute_cue(
    cue_id: int,
    engine: CueExecutionService = Depends(get_execution_service),
):
    """
    Start executing a cue.

    Returns as soon as every step is scheduled. Fails with 409 while another
    cue is running, 404 for an unknown cue and 400 for a cue without steps.
    """
    await engine.execute_cue(cue_id)
    return ExecuteCueResponse(message="Cue execution started", cue_id=cue_id)
