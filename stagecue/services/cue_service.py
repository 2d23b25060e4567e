import logging
from typing import Optional, List
from pydantic import ValidationError
from sqlalchemy.orm import Session, selectinload

from stagecue.core.errors import InvalidStateError
from stagecue.db.models import Cue, CueStep, Device
from stagecue.schemas.cue import CuePlan, CueStepPlan

logger = logging.getLogger("stagecue.cues")


class CueService:
    """Service class for reading cues into executable plans"""

    @staticmethod
    def _step_plan(step: CueStep) -> CueStepPlan:
        """Convert a stored step into its plan form"""
        return CueStepPlan(
            step_id=step.id,
            order=step.order,
            time_offset=float(step.time_offset),
            transition_duration=float(step.transition_duration),
            # Empty arrays mean "not set"
            target_color=list(step.target_color) if step.target_color else None,
            target_brightness=step.target_brightness,
            start_color=list(step.start_color) if step.start_color else None,
            start_brightness=step.start_brightness,
            turn_off=bool(step.turn_off),
            device_ids=[link.device_id for link in step.cue_step_devices],
        )

    @staticmethod
    def load_cue_plan(cue_id: int, db: Session) -> Optional[CuePlan]:
        """
        Load a cue with its steps and device assignments.

        Args:
            cue_id: ID of the cue
            db: Database session

        Returns:
            CuePlan with steps sorted by (time_offset, order), or None if the
            cue does not exist

        Raises:
            InvalidStateError: If a stored step breaks the step rules (no
                devices, or neither a target nor turn_off)
        """
        cue = db.query(Cue).options(
            selectinload(Cue.cue_steps).selectinload(CueStep.cue_step_devices)
        ).filter(Cue.id == cue_id).first()

        if not cue:
            return None

        steps = []
        for step in cue.cue_steps:
            try:
                steps.append(CueService._step_plan(step))
            except ValidationError as e:
                logger.warning("Cue %s step %s failed validation: %s", cue_id, step.id, e)
                raise InvalidStateError(f"Cue {cue_id} step {step.order} is invalid") from e

        steps.sort(key=lambda s: (s.time_offset, s.order))
        return CuePlan(cue_id=cue.id, name=cue.name, steps=steps)


class DeviceService:
    """Service class for device lookups"""

    @staticmethod
    def get_device(device_id: int, db: Session) -> Optional[Device]:
        return db.query(Device).filter(Device.id == device_id).first()

    @staticmethod
    def list_device_ids(db: Session) -> List[int]:
        """IDs of every registered device, in id order"""
        rows = db.query(Device.id).order_by(Device.id).all()
        return [row[0] for row in rows]
