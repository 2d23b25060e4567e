import asyncio
import logging
from typing import Optional, List
from sqlalchemy.orm import Session

from stagecue.core.errors import PresetNotFoundError
from stagecue.db.models import Preset
from stagecue.schemas.execution import ApplyPresetResult
from stagecue.services.device_transport import DeviceTransport

logger = logging.getLogger("stagecue.presets")


class PresetService:
    """Service class for stored presets"""

    @staticmethod
    def get_preset(preset_id: int, db: Session) -> Optional[Preset]:
        return db.query(Preset).filter(Preset.id == preset_id).first()

    @staticmethod
    async def apply_preset_to_devices(
        preset_id: int,
        device_ids: List[int],
        db: Session,
        transport: DeviceTransport,
    ) -> ApplyPresetResult:
        """
        Write a preset's color and brightness to each device in one shot.

        Devices are written in parallel with no interpolation. A device that
        fails is reported in failed_device_ids and does not stop the others.

        Raises:
            PresetNotFoundError: If the preset does not exist
        """
        preset = PresetService.get_preset(preset_id, db)
        if not preset:
            raise PresetNotFoundError(preset_id)

        color = list(preset.color) if preset.color else None
        results = await asyncio.gather(
            *(
                transport.set_state(device_id, brightness=preset.brightness, color=color)
                for device_id in device_ids
            ),
            return_exceptions=True,
        )

        failed = []
        for device_id, result in zip(device_ids, results):
            if isinstance(result, BaseException):
                logger.warning("Failed to apply preset %s to device %s: %s", preset_id, device_id, result)
                failed.append(device_id)

        logger.info("Applied preset %s to %d of %d devices", preset_id, len(device_ids) - len(failed), len(device_ids))
        return ApplyPresetResult(preset_id=preset_id, device_ids=list(device_ids), failed_device_ids=failed)
