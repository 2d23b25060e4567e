import asyncio
import logging
import math
from typing import List, Optional, Tuple

from stagecue.core.config import settings
from stagecue.core.errors import TransportError
from stagecue.schemas.cue import CueStepPlan
from stagecue.schemas.device import DeviceState
from stagecue.services.device_transport import DeviceTransport

logger = logging.getLogger("stagecue.transitions")

BLACK = [0, 0, 0, 0]


def _round(value: float) -> int:
    """Round half away from zero for non-negative channel values"""
    return int(math.floor(value + 0.5))


def resolve_start_values(
    step: CueStepPlan,
    live_state: Optional[DeviceState],
    default_brightness: int = 128,
) -> Tuple[List[int], int]:
    """
    Pick the color and brightness a transition starts from.

    Values set on the step win. Missing ones come from the device's live
    state, and fall back to black / default_brightness when there is no
    live state (device unreachable) or it lacks a color.
    """
    if step.start_color is not None:
        color = list(step.start_color)
    elif live_state is not None and live_state.color is not None:
        color = list(live_state.color)
    else:
        color = list(BLACK)

    if step.start_brightness is not None:
        brightness = step.start_brightness
    elif live_state is not None:
        brightness = live_state.brightness
    else:
        brightness = default_brightness

    return color, brightness


def interpolate_frame(
    start_color: List[int],
    start_brightness: int,
    target_color: List[int],
    target_brightness: int,
    progress: float,
) -> Tuple[List[int], int]:
    """Linear per-channel interpolation at progress in [0, 1]"""
    progress = min(max(progress, 0.0), 1.0)
    color = [
        _round(start + (target - start) * progress)
        for start, target in zip(start_color, target_color)
    ]
    brightness = _round(start_brightness + (target_brightness - start_brightness) * progress)
    return color, brightness


def frame_count(duration: float, frame_interval: float) -> int:
    """Number of frames for a transition, at least one"""
    if duration <= 0:
        return 1
    # Tolerance keeps float noise such as 30.000000000000004 from adding a frame
    return max(1, math.ceil(duration / frame_interval - 1e-9))


class TransitionRunner:
    """
    Drives one device from its start state to a step's target.

    The runner owns no scheduling of its own; the cue engine runs `run()` as
    a task registered per device so a newer runner cancels an older one.
    """

    def __init__(
        self,
        device_id: int,
        step: CueStepPlan,
        transport: DeviceTransport,
        frame_interval: float = None,
        default_brightness: int = None,
    ):
        self.device_id = device_id
        self.step = step
        self.transport = transport
        self.frame_interval = frame_interval or settings.frame_interval
        self.default_brightness = (
            default_brightness if default_brightness is not None else settings.DEFAULT_START_BRIGHTNESS
        )
        self.frames_written = 0

    async def run(self):
        if self.step.turn_off:
            await self._turn_off()
            return

        start_color, start_brightness = await self._start_values()
        target_color = list(self.step.target_color) if self.step.target_color is not None else start_color
        target_brightness = (
            self.step.target_brightness if self.step.target_brightness is not None else start_brightness
        )

        num_frames = frame_count(self.step.transition_duration, self.frame_interval)
        logger.debug(
            "Device %s: %d frames from %s/%s to %s/%s",
            self.device_id, num_frames, start_color, start_brightness, target_color, target_brightness,
        )

        if self.step.transition_duration <= 0:
            await self._write_frame(target_color, target_brightness)
            return

        loop = asyncio.get_running_loop()
        started_at = loop.time()
        frame = 0
        while True:
            frame += 1
            # Sleep to this frame's slot on the monotonic clock; a slow write delays, never overlaps
            delay = started_at + frame * self.frame_interval - loop.time()
            await asyncio.sleep(max(0.0, delay))

            progress = min(frame / num_frames, 1.0)
            color, brightness = interpolate_frame(
                start_color, start_brightness, target_color, target_brightness, progress
            )
            await self._write_frame(color, brightness)

            if progress >= 1.0:
                break

    async def _start_values(self) -> Tuple[List[int], int]:
        live_state = None
        if self.step.start_color is None or self.step.start_brightness is None:
            try:
                live_state = await self.transport.get_state(self.device_id)
            except (TransportError, ValueError) as e:
                logger.error("Failed to get current state for device %s: %s", self.device_id, e)
        return resolve_start_values(self.step, live_state, self.default_brightness)

    async def _write_frame(self, color: List[int], brightness: int):
        try:
            await self.transport.set_state(self.device_id, brightness=brightness, color=color, transition=0)
            self.frames_written += 1
        except TransportError as e:
            logger.error("Failed to update device %s during transition: %s", self.device_id, e)

    async def _turn_off(self):
        transition = _round(self.step.transition_duration * 10)  # WLED units of 100 ms
        try:
            await self.transport.set_state(self.device_id, on=False, transition=transition)
            self.frames_written += 1
        except TransportError as e:
            logger.error("Failed to turn off device %s: %s", self.device_id, e)
