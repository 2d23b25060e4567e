from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stagecue.api.dependencies import get_execution_service
from stagecue.db.session import get_db
from stagecue.schemas.cue_list import CueListPositionResponse, GoToRequest
from stagecue.services.cue_execution_service import CueExecutionService
from stagecue.services.cue_list_service import CueListService

router = APIRouter(prefix="/api/cue-lists", tags=["cue-lists"])


async def _play(cue_list, cue_id: int, engine: CueExecutionService) -> CueListPositionResponse:
    await CueListService.play_cue(engine, cue_id)
    return CueListPositionResponse(
        cue_list_id=cue_list.id,
        current_position=cue_list.current_position,
        current_cue_id=cue_id,
    )


@router.post("/{cue_list_id}/step-forward", response_model=CueListPositionResponse)
async def step_forward(
    cue_list_id: int,
    engine: CueExecutionService = Depends(get_execution_service),
    db: Session = Depends(get_db),
):
    """Advance to the next cue and run it, replacing any running cue"""
    cue_list, cue_id = CueListService.step_forward(cue_list_id, db)
    return await _play(cue_list, cue_id, engine)


@router.post("/{cue_list_id}/step-backward", response_model=CueListPositionResponse)
async def step_backward(
    cue_list_id: int,
    engine: CueExecutionService = Depends(get_execution_service),
    db: Session = Depends(get_db),
):
    """Go back to the previous cue and run it, replacing any running cue"""
    cue_list, cue_id = CueListService.step_backward(cue_list_id, db)
    return await _play(cue_list, cue_id, engine)


@router.post("/{cue_list_id}/go-to", response_model=CueListPositionResponse)
async def go_to(
    cue_list_id: int,
    request: GoToRequest,
    engine: CueExecutionService = Depends(get_execution_service),
    db: Session = Depends(get_db),
):
    """Jump to a position and run the cue there"""
    cue_list, cue_id = CueListService.go_to(cue_list_id, request.position, db)
    return await _play(cue_list, cue_id, engine)
