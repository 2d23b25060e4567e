"""
Exception types raised by the cue engine and its collaborators.

Errors that decide whether a cue starts (conflict, missing records, invalid
state) are raised to the caller. Device I/O problems are raised as
TransportError and are normally absorbed inside a running execution.
"""

from typing import Any, Optional


class StageCueError(Exception):
    """Base class for all stagecue errors"""


class AlreadyExecutingError(StageCueError):
    """A cue is already running; the caller must stop it first"""

    def __init__(self, running_cue_id: Optional[int] = None):
        self.running_cue_id = running_cue_id
        super().__init__("A cue is already executing. Stop it first.")


class NotFoundError(StageCueError):
    """Referenced record does not exist"""

    entity = "Record"

    def __init__(self, entity_id: Any):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} with id {entity_id} not found")


class CueNotFoundError(NotFoundError):
    entity = "Cue"


class DeviceNotFoundError(NotFoundError):
    entity = "Device"


class PresetNotFoundError(NotFoundError):
    entity = "Preset"


class CueListNotFoundError(NotFoundError):
    entity = "Cue list"


class InvalidStateError(StageCueError):
    """Operation is not valid for the current data"""


class EmptyCueError(InvalidStateError):
    """Cue has no steps to execute"""

    def __init__(self, cue_id: int):
        self.cue_id = cue_id
        super().__init__(f"Cue {cue_id} has no steps")


class TransportError(RuntimeError):
    """A device request failed (timeout, unreachable host or non-2xx response)"""

    def __init__(self, device_id: Any, message: str):
        self.device_id = device_id
        super().__init__(message)
