import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional

from sqlalchemy.orm import Session

from stagecue.core.config import settings
from stagecue.core.errors import DeviceNotFoundError, TransportError
from stagecue.schemas.device import DeviceState
from stagecue.services.cue_service import DeviceService
from stagecue.services.wled_service import WledService

logger = logging.getLogger("stagecue.transport")


class DeviceTransport:
    """Async access to a device's live state"""

    async def get_state(self, device_id: int) -> DeviceState:
        raise NotImplementedError

    async def set_state(
        self,
        device_id: int,
        on: Optional[bool] = None,
        brightness: Optional[int] = None,
        color: Optional[List[int]] = None,
        transition: Optional[int] = None,
    ) -> DeviceState:
        raise NotImplementedError

    async def probe(self, device_id: int) -> bool:
        raise NotImplementedError

    def close(self):
        """Release any resources held by the transport"""


class WledDeviceTransport(DeviceTransport):
    """
    DeviceTransport backed by the WLED JSON API.

    Every call looks the device up in the database, so address changes apply
    to the next call. Lookups and HTTP calls run in dedicated thread pools,
    one each for reads, writes and probes, so dead fixtures timing out in one
    pool never hold up frames written through another.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        state_timeout: float = None,
        probe_timeout: float = None,
        write_workers: int = None,
        read_workers: int = None,
        probe_workers: int = None,
    ):
        self.session_factory = session_factory
        self.state_timeout = state_timeout or settings.WLED_STATE_TIMEOUT
        self.probe_timeout = probe_timeout or settings.WLED_PROBE_TIMEOUT
        self._write_executor = ThreadPoolExecutor(
            max_workers=write_workers or settings.WLED_WRITE_WORKERS, thread_name_prefix="wled-write"
        )
        self._read_executor = ThreadPoolExecutor(
            max_workers=read_workers or settings.WLED_READ_WORKERS, thread_name_prefix="wled-read"
        )
        self._probe_executor = ThreadPoolExecutor(
            max_workers=probe_workers or settings.WLED_PROBE_WORKERS, thread_name_prefix="wled-probe"
        )

    def resolve_address(self, device_id: int) -> str:
        """Return the device's IP address, raising DeviceNotFoundError if unknown"""
        with self.session_factory() as db:
            device = DeviceService.get_device(device_id, db)
            if device is None:
                raise DeviceNotFoundError(device_id)
            return device.ip_address

    def _call_device(self, device_id: int, func: Callable[..., Any], *args) -> Any:
        """Resolve the device and call func(ip_address, *args); runs in a worker thread"""
        return func(self.resolve_address(device_id), *args)

    async def _submit(self, executor: ThreadPoolExecutor, device_id: int, func: Callable[..., Any], *args) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, self._call_device, device_id, func, *args)

    async def get_state(self, device_id: int) -> DeviceState:
        try:
            raw = await self._submit(self._read_executor, device_id, WledService.get_state, self.state_timeout)
            return WledService.parse_state(raw)
        except (DeviceNotFoundError, RuntimeError, ValueError, AttributeError) as e:
            raise TransportError(device_id, str(e)) from e

    async def set_state(
        self,
        device_id: int,
        on: Optional[bool] = None,
        brightness: Optional[int] = None,
        color: Optional[List[int]] = None,
        transition: Optional[int] = None,
    ) -> DeviceState:
        payload = WledService.build_state_payload(on=on, brightness=brightness, color=color, transition=transition)
        try:
            raw = await self._submit(
                self._write_executor, device_id, WledService.set_state, payload, self.state_timeout
            )
            # WLED echoes the full state only when asked with "v": true
            if "on" in raw or "bri" in raw:
                return WledService.parse_state(raw)
        except (DeviceNotFoundError, RuntimeError, ValueError, AttributeError) as e:
            raise TransportError(device_id, str(e)) from e

        return DeviceState(
            on=on if on is not None else True,
            brightness=brightness if brightness is not None else 0,
            color=color,
        )

    async def probe(self, device_id: int) -> bool:
        try:
            return await self._submit(self._probe_executor, device_id, WledService.probe, self.probe_timeout)
        except DeviceNotFoundError:
            logger.warning("Probe skipped, device %s does not exist", device_id)
            return False

    def close(self):
        """Stop the worker pools without waiting on in-flight device calls"""
        for executor in (self._write_executor, self._read_executor, self._probe_executor):
            executor.shutdown(wait=False, cancel_futures=True)
