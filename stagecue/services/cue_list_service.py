import logging
from typing import Optional, Tuple
from sqlalchemy.orm import Session, selectinload

from stagecue.core.errors import CueListNotFoundError, InvalidStateError, StageCueError
from stagecue.db.models import CueList
from stagecue.services.cue_execution_service import CueExecutionService

logger = logging.getLogger("stagecue.cue_lists")


class CueListService:
    """Service class for navigating cue lists"""

    @staticmethod
    def _load(cue_list_id: int, db: Session) -> CueList:
        cue_list = db.query(CueList).options(
            selectinload(CueList.cue_list_cues)
        ).filter(CueList.id == cue_list_id).first()

        if not cue_list:
            raise CueListNotFoundError(cue_list_id)
        if not cue_list.cue_list_cues:
            raise InvalidStateError("Cue list is empty")
        return cue_list

    @staticmethod
    def _move_to(cue_list: CueList, position: int, db: Session) -> Tuple[CueList, int]:
        cue_list.current_position = position
        db.commit()
        db.refresh(cue_list)
        return cue_list, cue_list.cue_list_cues[position].cue_id

    @staticmethod
    def step_forward(cue_list_id: int, db: Session) -> Tuple[CueList, int]:
        """Advance one position, staying on the last cue at the end of the list"""
        cue_list = CueListService._load(cue_list_id, db)
        position = min(cue_list.current_position + 1, len(cue_list.cue_list_cues) - 1)
        return CueListService._move_to(cue_list, position, db)

    @staticmethod
    def step_backward(cue_list_id: int, db: Session) -> Tuple[CueList, int]:
        """Go back one position, staying on the first cue at the start"""
        cue_list = CueListService._load(cue_list_id, db)
        position = max(0, cue_list.current_position - 1)
        return CueListService._move_to(cue_list, position, db)

    @staticmethod
    def go_to(cue_list_id: int, position: int, db: Session) -> Tuple[CueList, int]:
        """
        Jump to a position in the list.

        Raises:
            CueListNotFoundError: If the cue list does not exist
            InvalidStateError: If the list is empty or position is out of range
        """
        cue_list = CueListService._load(cue_list_id, db)
        if position < 0 or position >= len(cue_list.cue_list_cues):
            raise InvalidStateError(
                f"Invalid position. Must be between 0 and {len(cue_list.cue_list_cues) - 1}"
            )
        return CueListService._move_to(cue_list, position, db)

    @staticmethod
    async def play_cue(engine: CueExecutionService, cue_id: Optional[int]):
        """
        Replace whatever is running with the given cue.

        Start failures are logged; navigation has already succeeded.
        """
        if cue_id is None:
            return
        if engine.is_executing():
            engine.stop_execution()
        try:
            await engine.execute_cue(cue_id)
        except StageCueError as e:
            logger.error("Error executing cue %s: %s", cue_id, e)
