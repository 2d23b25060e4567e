from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stagecue.api.dependencies import get_execution_service, get_transport
from stagecue.db.session import get_db
from stagecue.schemas.execution import (
    ApplyPresetRequest,
    ApplyPresetResponse,
    ExecutionStatus,
    StopExecutionResponse,
)
from stagecue.services.cue_execution_service import CueExecutionService
from stagecue.services.device_transport import DeviceTransport
from stagecue.services.preset_service import PresetService

router = APIRouter(prefix="/api/execution", tags=["execution"])


@router.get("/status", response_model=ExecutionStatus)
async def get_status(engine: CueExecutionService = Depends(get_execution_service)):
    """Current execution status"""
    return engine.get_execution_status()


@router.post("/stop", response_model=StopExecutionResponse)
async def stop_execution(engine: CueExecutionService = Depends(get_execution_service)):
    """Stop the running cue; devices keep their last written state"""
    engine.stop_execution()
    return StopExecutionResponse(message="Execution stopped")


@router.post("/apply-preset", response_model=ApplyPresetResponse)
async def apply_preset(
    request: ApplyPresetRequest,
    transport: DeviceTransport = Depends(get_transport),
    db: Session = Depends(get_db),
):
    """
    Apply a stored preset to devices immediately.

    Per-device failures are listed in failed_device_ids; a missing preset is
    a 404.
    """
    result = await PresetService.apply_preset_to_devices(
        preset_id=request.preset_id,
        device_ids=request.device_ids,
        db=db,
        transport=transport,
    )
    if result.failed_device_ids:
        message = f"Preset applied to {len(result.device_ids) - len(result.failed_device_ids)} of {len(result.device_ids)} devices"
    else:
        message = "Preset applied successfully"
    return ApplyPresetResponse(message=message, **result.model_dump())
