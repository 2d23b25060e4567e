"""
Cue execution engine.

One CueExecutionService exists per process. It runs at most one cue at a
time: every step is scheduled at its offset from the cue start, each step
fans out to a TransitionRunner per device, and a completion deadline returns
the engine to idle once the last transition has finished.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.orm import Session

from stagecue.core.config import settings
from stagecue.core.errors import AlreadyExecutingError, CueNotFoundError, EmptyCueError
from stagecue.schemas.cue import CuePlan, CueStepPlan
from stagecue.schemas.execution import ExecutionStatus
from stagecue.services.cue_service import CueService
from stagecue.services.device_transport import DeviceTransport
from stagecue.services.task_registry import TaskRegistry
from stagecue.services.transition_runner import TransitionRunner

logger = logging.getLogger("stagecue.execution")

STEP = "step"
TRANSITION = "transition"
DEADLINE = "deadline"


class CueExecutionService:
    """Runs cues against devices; owns the process-wide ExecutionStatus"""

    def __init__(
        self,
        transport: DeviceTransport,
        session_factory: Callable[[], Session],
        frame_interval: float = None,
        completion_grace: float = None,
        default_brightness: int = None,
    ):
        self.transport = transport
        self.session_factory = session_factory
        self.frame_interval = frame_interval or settings.frame_interval
        self.completion_grace = (
            completion_grace if completion_grace is not None else settings.COMPLETION_GRACE_SECONDS
        )
        self.default_brightness = (
            default_brightness if default_brightness is not None else settings.DEFAULT_START_BRIGHTNESS
        )
        self.tasks = TaskRegistry()
        self._status = ExecutionStatus()
        # Bumped on every start and stop so stale tasks can tell they are stale
        self._generation = 0

    def _load_plan(self, cue_id: int) -> CuePlan:
        with self.session_factory() as db:
            plan = CueService.load_cue_plan(cue_id, db)
        if plan is None:
            raise CueNotFoundError(cue_id)
        if not plan.steps:
            logger.info("Cue %s has no steps", cue_id)
            raise EmptyCueError(cue_id)
        return plan

    async def execute_cue(self, cue_id: int):
        """
        Start executing a cue and return once every step is scheduled.

        Raises:
            AlreadyExecutingError: If a cue is already running
            CueNotFoundError: If the cue does not exist
            EmptyCueError: If the cue has no steps
        """
        logger.info("execute_cue called for cue %s", cue_id)
        if self._status.is_running:
            logger.info("Already executing cue %s", self._status.cue_id)
            raise AlreadyExecutingError(self._status.cue_id)

        # Nothing between the running check and the status update may await
        plan = self._load_plan(cue_id)

        self._generation += 1
        generation = self._generation
        self._status = ExecutionStatus(
            is_running=True,
            cue_id=cue_id,
            start_time=datetime.now(timezone.utc),
            total_steps=len(plan.steps),
        )
        logger.info("Execution started for cue %s, %d steps", cue_id, len(plan.steps))

        started_at = asyncio.get_running_loop().time()
        for step in plan.steps:
            logger.info("Scheduling step %s to start at %ss", step.order, step.time_offset)
            self.tasks.spawn(STEP, step.step_id, self._run_step(step, started_at, generation))

        self.tasks.spawn(DEADLINE, cue_id, self._complete(plan, started_at, generation))

    async def _run_step(self, step: CueStepPlan, started_at: float, generation: int):
        loop = asyncio.get_running_loop()
        await asyncio.sleep(max(0.0, started_at + step.time_offset - loop.time()))
        if generation != self._generation:
            return

        self._status.current_step = step.order
        logger.info("Step %s started on devices %s", step.order, step.device_ids)

        runners = [
            self.tasks.spawn(
                TRANSITION,
                device_id,
                TransitionRunner(
                    device_id,
                    step,
                    self.transport,
                    frame_interval=self.frame_interval,
                    default_brightness=self.default_brightness,
                ).run(),
            )
            for device_id in step.device_ids
        ]
        await asyncio.wait(runners)
        logger.info("Step %s completed", step.order)

    async def _complete(self, plan: CuePlan, started_at: float, generation: int):
        loop = asyncio.get_running_loop()
        await asyncio.sleep(max(0.0, started_at + plan.horizon - loop.time()))

        # Give in-flight frame writes a bounded chance to land
        pending = self.tasks.tasks(STEP) + self.tasks.tasks(TRANSITION)
        if pending and self.completion_grace > 0:
            await asyncio.wait(pending, timeout=self.completion_grace)

        if generation != self._generation:
            return

        leftover = self.tasks.cancel_kind(STEP) + self.tasks.cancel_kind(TRANSITION)
        if leftover:
            logger.warning("Cue %s: cancelled %d tasks still running after completion", plan.cue_id, leftover)

        self._status = ExecutionStatus()
        logger.info("Cue %s completed", plan.cue_id)

    def stop_execution(self):
        """Cancel every pending step, transition and deadline; safe when idle"""
        cancelled = self.tasks.cancel_all()
        self._generation += 1
        was_running = self._status.cue_id
        self._status = ExecutionStatus()
        if was_running is not None or cancelled:
            logger.info("Execution of cue %s stopped, %d tasks cancelled", was_running, cancelled)

    def get_execution_status(self) -> ExecutionStatus:
        return self._status.model_copy()

    def is_executing(self) -> bool:
        return self._status.is_running
