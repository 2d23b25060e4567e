from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stagecue.api.dependencies import get_connection_monitor
from stagecue.core.errors import DeviceNotFoundError
from stagecue.db.session import get_db
from stagecue.schemas.device import ConnectionStatus, ReconnectResponse
from stagecue.services.connection_service import ConnectionMonitor
from stagecue.services.cue_service import DeviceService

router = APIRouter(prefix="/api/devices", tags=["devices"])


def _require_device(device_id: int, db: Session):
    if not DeviceService.get_device(device_id, db):
        raise DeviceNotFoundError(device_id)


@router.get("/status", response_model=List[ConnectionStatus])
async def get_all_statuses(monitor: ConnectionMonitor = Depends(get_connection_monitor)):
    """Connection status of every device, probing any not yet checked"""
    return await monitor.get_all_connection_statuses()


@router.get("/{device_id}/status", response_model=ConnectionStatus)
async def get_device_status(
    device_id: int,
    monitor: ConnectionMonitor = Depends(get_connection_monitor),
    db: Session = Depends(get_db),
):
    """Connection status of one device; probes first if it has never been checked"""
    _require_device(device_id, db)
    status = monitor.get_connection_status(device_id)
    if status is None:
        await monitor.check_device_connection(device_id)
        status = monitor.get_connection_status(device_id)
    return status


@router.post("/{device_id}/check", response_model=ConnectionStatus)
async def check_device(
    device_id: int,
    monitor: ConnectionMonitor = Depends(get_connection_monitor),
    db: Session = Depends(get_db),
):
    """Probe a device now"""
    _require_device(device_id, db)
    await monitor.check_device_connection(device_id)
    return monitor.get_connection_status(device_id)


@router.post("/{device_id}/reconnect", response_model=ReconnectResponse)
async def reconnect_device(
    device_id: int,
    monitor: ConnectionMonitor = Depends(get_connection_monitor),
    db: Session = Depends(get_db),
):
    """Clear a device's failure history and probe it again"""
    _require_device(device_id, db)
    is_connected = await monitor.reconnect_device(device_id)
    return ReconnectResponse(
        device_id=device_id,
        is_connected=is_connected,
        status=monitor.get_connection_status(device_id),
    )
