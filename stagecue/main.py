from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stagecue.core.config import settings
from stagecue.core.logging import RequestLoggingMiddleware, install_error_handlers, logger
from stagecue.db.session import SessionLocal
from stagecue.api import cue, cue_list, device, execution
from stagecue.services.connection_service import ConnectionMonitor
from stagecue.services.cue_execution_service import CueExecutionService
from stagecue.services.cue_service import DeviceService
from stagecue.services.device_transport import WledDeviceTransport


def list_registered_devices() -> List[int]:
    """IDs of all devices in the database"""
    with SessionLocal() as db:
        return DeviceService.list_device_ids(db)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine and connection monitor once per process"""
    transport = WledDeviceTransport(SessionLocal)
    app.state.transport = transport
    app.state.execution_service = CueExecutionService(transport, SessionLocal)
    app.state.connection_monitor = ConnectionMonitor(transport, list_registered_devices)

    app.state.connection_monitor.start_monitoring()
    logger.info("stagecue started (%s), %d FPS transitions", settings.ENVIRONMENT, settings.FRAME_RATE)
    try:
        yield
    finally:
        app.state.execution_service.stop_execution()
        app.state.connection_monitor.stop_monitoring()
        app.state.transport.close()
        logger.info("stagecue stopped")


app = FastAPI(
    title="stagecue",
    description="Cue execution engine for WLED stage lighting",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Install RFC 7807 Problem Details error handlers
install_error_handlers(app)

app.include_router(cue.router)
app.include_router(execution.router)
app.include_router(device.router)
app.include_router(cue_list.router)


@app.get("/health")
def health():
    """Health check endpoint"""
    return {"status": "ok", "service": "stagecue"}

@app.get("/")
def root():
    """Root endpoint with API info"""
    return {
        "service": "stagecue",
        "version": "1.0.0",
        "documentation": "/docs",
        "health": "/health"
    }
