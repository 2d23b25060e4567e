from fastapi import Request

from stagecue.services.connection_service import ConnectionMonitor
from stagecue.services.cue_execution_service import CueExecutionService
from stagecue.services.device_transport import DeviceTransport


def get_execution_service(request: Request) -> CueExecutionService:
    """
    FastAPI dependency returning the process-wide cue engine built in the
    application lifespan.
    """
    return request.app.state.execution_service

def get_connection_monitor(request: Request) -> ConnectionMonitor:
    return request.app.state.connection_monitor

def get_transport(request: Request) -> DeviceTransport:
    return request.app.state.transport
