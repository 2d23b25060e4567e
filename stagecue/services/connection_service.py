import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from stagecue.core.config import settings
from stagecue.schemas.device import ConnectionStatus
from stagecue.services.device_transport import DeviceTransport

logger = logging.getLogger("stagecue.connections")


class ConnectionMonitor:
    """
    Tracks device reachability with hysteresis.

    A device only counts as disconnected after max_error_count consecutive
    failed probes; one successful probe resets it. Nothing here raises to
    the caller: a probe that errors counts as a failed probe.
    """

    def __init__(
        self,
        transport: DeviceTransport,
        device_lister: Callable[[], List[int]],
        interval: float = None,
        max_error_count: int = None,
    ):
        self.transport = transport
        self.device_lister = device_lister
        self.interval = interval if interval is not None else settings.MONITOR_INTERVAL_SECONDS
        self.max_error_count = max_error_count if max_error_count is not None else settings.MAX_ERROR_COUNT
        self._statuses: Dict[int, ConnectionStatus] = {}
        self._monitor_task: Optional[asyncio.Task] = None

    @property
    def is_monitoring(self) -> bool:
        return self._monitor_task is not None and not self._monitor_task.done()

    def start_monitoring(self):
        """Start the periodic sweep; the first sweep runs immediately"""
        if self.is_monitoring:
            return
        self._monitor_task = asyncio.create_task(self._monitor_loop(), name="connection-monitor")
        logger.info("Device monitoring started, interval %ss", self.interval)

    def stop_monitoring(self):
        if self._monitor_task is None:
            return
        self._monitor_task.cancel()
        self._monitor_task = None
        logger.info("Device monitoring stopped")

    async def _monitor_loop(self):
        while True:
            try:
                await self.check_all_devices()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Error during device monitoring")
            await asyncio.sleep(self.interval)

    async def check_all_devices(self):
        """Probe every registered device concurrently"""
        device_ids = await asyncio.to_thread(self.device_lister)
        await asyncio.gather(*(self.check_device_connection(device_id) for device_id in device_ids))

    async def _probe(self, device_id: int) -> bool:
        try:
            return bool(await self.transport.probe(device_id))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Probe of device %s raised %s: %s", device_id, type(e).__name__, e)
            return False

    async def check_device_connection(self, device_id: int) -> bool:
        """Probe one device and fold the result into its status"""
        logger.debug("Checking connection for device %s", device_id)
        reachable = await self._probe(device_id)
        now = datetime.now(timezone.utc)

        if reachable:
            self._statuses[device_id] = ConnectionStatus(
                device_id=device_id, is_connected=True, last_ping_at=now, error_count=0
            )
            logger.debug("Device %s is connected", device_id)
            return True

        previous = self._statuses.get(device_id)
        error_count = (previous.error_count if previous else 0) + 1
        is_connected = error_count < self.max_error_count
        self._statuses[device_id] = ConnectionStatus(
            device_id=device_id, is_connected=is_connected, last_ping_at=now, error_count=error_count
        )
        logger.info(
            "Device %s connection check failed (error_count: %d, is_connected: %s)",
            device_id, error_count, is_connected,
        )
        return is_connected

    def get_connection_status(self, device_id: int) -> Optional[ConnectionStatus]:
        status = self._statuses.get(device_id)
        return status.model_copy() if status else None

    def get_connected_devices(self) -> List[int]:
        return [device_id for device_id, status in self._statuses.items() if status.is_connected]

    async def get_all_connection_statuses(self) -> List[ConnectionStatus]:
        """
        One status per registered device.

        Devices that have never been probed are probed first, concurrently.
        """
        device_ids = await asyncio.to_thread(self.device_lister)
        unchecked = [device_id for device_id in device_ids if device_id not in self._statuses]
        if unchecked:
            logger.debug("Checking %d unchecked devices: %s", len(unchecked), unchecked)
            await asyncio.gather(*(self.check_device_connection(device_id) for device_id in unchecked))

        return [
            self.get_connection_status(device_id)
            or ConnectionStatus(device_id=device_id, is_connected=False)
            for device_id in device_ids
        ]

    async def reconnect_device(self, device_id: int) -> bool:
        """Forget the device's history and probe it again"""
        self._statuses.pop(device_id, None)
        return await self.check_device_connection(device_id)
