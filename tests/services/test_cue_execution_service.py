"""
Tests for CueExecutionService - single active cue, step scheduling,
per-device transition exclusivity, stop and completion.
"""

import asyncio

import pytest

from stagecue.core.errors import AlreadyExecutingError, CueNotFoundError, EmptyCueError, InvalidStateError
from stagecue.services.cue_execution_service import CueExecutionService
from tests.utils.factories import create_cue, create_device


async def stop(engine: CueExecutionService):
    engine.stop_execution()
    # Let cancelled tasks unwind before the loop closes
    await asyncio.sleep(0)


class TestExecuteCue:
    """Tests for starting a cue"""

    @pytest.mark.asyncio
    async def test_initializes_status(self, engine_service, db_session):
        device = create_device(db_session)
        cue = create_cue(db_session, steps=[
            {"transition_duration": 0.3, "target_brightness": 255, "device_ids": [device.id]},
            {"time_offset": 0.1, "transition_duration": 0.1, "target_brightness": 10, "device_ids": [device.id]},
        ])

        await engine_service.execute_cue(cue.id)
        status = engine_service.get_execution_status()

        assert status.is_running is True
        assert status.cue_id == cue.id
        assert status.total_steps == 2
        assert status.start_time is not None
        assert status.current_step is None
        assert engine_service.is_executing() is True

        await asyncio.sleep(0.05)
        assert engine_service.get_execution_status().current_step == 0

        await stop(engine_service)

    @pytest.mark.asyncio
    async def test_second_cue_is_rejected(self, engine_service, db_session):
        """Should raise AlreadyExecutingError and leave the running cue untouched"""
        device = create_device(db_session)
        running = create_cue(db_session, steps=[
            {"transition_duration": 0.5, "target_brightness": 255, "device_ids": [device.id]},
        ])
        other = create_cue(db_session, name="Cue 2", steps=[
            {"transition_duration": 0.5, "target_brightness": 10, "device_ids": [device.id]},
        ])

        await engine_service.execute_cue(running.id)
        before = engine_service.get_execution_status()
        tasks_before = set(engine_service.tasks.keys())

        with pytest.raises(AlreadyExecutingError) as exc_info:
            await engine_service.execute_cue(other.id)

        assert exc_info.value.running_cue_id == running.id
        assert engine_service.get_execution_status() == before
        assert set(engine_service.tasks.keys()) == tasks_before

        await stop(engine_service)

    @pytest.mark.asyncio
    async def test_unknown_cue(self, engine_service):
        with pytest.raises(CueNotFoundError):
            await engine_service.execute_cue(999)

        assert engine_service.is_executing() is False

    @pytest.mark.asyncio
    async def test_empty_cue(self, engine_service, db_session):
        """Should reject a cue without steps and stay idle"""
        cue = create_cue(db_session, steps=[])

        with pytest.raises(EmptyCueError):
            await engine_service.execute_cue(cue.id)

        assert engine_service.is_executing() is False
        assert len(engine_service.tasks) == 0

    @pytest.mark.asyncio
    async def test_step_without_devices_is_rejected(self, engine_service, db_session):
        cue = create_cue(db_session, steps=[{"target_brightness": 100, "device_ids": []}])

        with pytest.raises(InvalidStateError):
            await engine_service.execute_cue(cue.id)

        assert engine_service.is_executing() is False


class TestScenarios:
    """End-to-end timing scenarios against the fake transport"""

    @pytest.mark.asyncio
    async def test_two_step_ramp_up_then_down(self, engine_service, fake_transport, db_session):
        """Brightness ramps up over the first step, down over the second, then the cue ends"""
        device = create_device(db_session)
        cue = create_cue(db_session, steps=[
            {"order": 0, "time_offset": 0, "transition_duration": 0.2, "target_brightness": 255, "device_ids": [device.id]},
            {"order": 1, "time_offset": 0.2, "transition_duration": 0.2, "target_brightness": 0, "device_ids": [device.id]},
        ])

        await engine_service.execute_cue(cue.id)

        await asyncio.sleep(0.3)
        assert engine_service.is_executing() is True
        assert engine_service.get_execution_status().current_step == 1

        await asyncio.sleep(0.5)
        assert engine_service.is_executing() is False
        assert len(engine_service.tasks) == 0

        brightnesses = [write["brightness"] for write in fake_transport.writes_for(device.id)]
        peak = brightnesses.index(max(brightnesses))
        assert max(brightnesses) >= 200
        assert brightnesses[:peak + 1] == sorted(brightnesses[:peak + 1])
        assert brightnesses[peak:] == sorted(brightnesses[peak:], reverse=True)
        assert brightnesses[-1] == 0

    @pytest.mark.asyncio
    async def test_newer_step_supersedes_running_transition(self, engine_service, fake_transport, db_session):
        """Once a later step starts on a device, the earlier transition writes nothing more"""
        device = create_device(db_session)
        cue = create_cue(db_session, steps=[
            {
                "order": 0, "time_offset": 0, "transition_duration": 0.3,
                "start_color": [0, 0, 0, 0], "start_brightness": 100, "target_color": [255, 0, 0, 0],
                "device_ids": [device.id],
            },
            {
                "order": 1, "time_offset": 0.1, "transition_duration": 0.1,
                "start_color": [0, 0, 255, 0], "start_brightness": 100, "target_color": [0, 0, 255, 0],
                "device_ids": [device.id],
            },
        ])

        await engine_service.execute_cue(cue.id)
        await asyncio.sleep(0.5)

        colors = [write["color"] for write in fake_transport.writes_for(device.id)]
        first_blue = next(index for index, color in enumerate(colors) if color[2] > 0)
        assert any(color[0] > 0 for color in colors[:first_blue])
        assert all(color[0] == 0 for color in colors[first_blue:])

        await stop(engine_service)

    @pytest.mark.asyncio
    async def test_failing_device_does_not_block_others(self, engine_service, fake_transport, db_session):
        healthy = create_device(db_session, name="Healthy")
        broken = create_device(db_session, name="Broken")
        fake_transport.fail_get.add(broken.id)
        fake_transport.fail_set.add(broken.id)
        cue = create_cue(db_session, steps=[
            {"transition_duration": 0.05, "target_brightness": 200, "device_ids": [healthy.id, broken.id]},
        ])

        await engine_service.execute_cue(cue.id)
        await asyncio.sleep(0.2)

        assert fake_transport.writes_for(healthy.id)[-1]["brightness"] == 200
        assert fake_transport.writes_for(broken.id) == []

        await stop(engine_service)

    @pytest.mark.asyncio
    async def test_turn_off_step(self, engine_service, fake_transport, db_session):
        """A turn-off step sends one off command and no frames"""
        device = create_device(db_session)
        cue = create_cue(db_session, steps=[
            {"transition_duration": 2, "turn_off": True, "device_ids": [device.id]},
        ])

        await engine_service.execute_cue(cue.id)
        await asyncio.sleep(0.05)

        writes = fake_transport.writes_for(device.id)
        assert len(writes) == 1
        assert writes[0]["on"] is False
        assert writes[0]["transition"] == 20

        await stop(engine_service)


class TestStopExecution:
    """Tests for stopping a cue"""

    @pytest.mark.asyncio
    async def test_stop_is_idempotent_and_silences_devices(self, engine_service, fake_transport, db_session):
        device = create_device(db_session)
        cue = create_cue(db_session, steps=[
            {"transition_duration": 0.3, "target_brightness": 255, "device_ids": [device.id]},
            {"time_offset": 0.2, "transition_duration": 0.1, "target_brightness": 5, "device_ids": [device.id]},
        ])

        await engine_service.execute_cue(cue.id)
        await asyncio.sleep(0.05)

        engine_service.stop_execution()
        engine_service.stop_execution()
        write_count = len(fake_transport.writes)

        assert engine_service.is_executing() is False
        assert engine_service.get_execution_status().cue_id is None
        assert len(engine_service.tasks) == 0

        await asyncio.sleep(0.5)
        assert len(fake_transport.writes) == write_count

    @pytest.mark.asyncio
    async def test_stop_when_idle(self, engine_service):
        engine_service.stop_execution()

        assert engine_service.is_executing() is False
        assert len(engine_service.tasks) == 0

    @pytest.mark.asyncio
    async def test_new_cue_after_stop(self, engine_service, db_session):
        """Stopping and starting another cue leaves only the new cue running"""
        device = create_device(db_session)
        first = create_cue(db_session, steps=[
            {"transition_duration": 0.1, "target_brightness": 255, "device_ids": [device.id]},
        ])
        second = create_cue(db_session, name="Cue 2", steps=[
            {"transition_duration": 0.6, "target_brightness": 10, "device_ids": [device.id]},
        ])

        await engine_service.execute_cue(first.id)
        engine_service.stop_execution()
        await engine_service.execute_cue(second.id)

        await asyncio.sleep(0.3)
        assert engine_service.get_execution_status().cue_id == second.id

        await stop(engine_service)


class TestCompletion:

    @pytest.mark.asyncio
    async def test_status_resets_after_last_transition(self, engine_service, db_session):
        device = create_device(db_session)
        cue = create_cue(db_session, steps=[
            {"transition_duration": 0.05, "target_brightness": 255, "device_ids": [device.id]},
        ])

        await engine_service.execute_cue(cue.id)
        await asyncio.sleep(0.3)

        status = engine_service.get_execution_status()
        assert status.is_running is False
        assert status.cue_id is None
        assert status.total_steps == 0
        assert len(engine_service.tasks) == 0

    @pytest.mark.asyncio
    async def test_status_snapshot_is_a_copy(self, engine_service, db_session):
        device = create_device(db_session)
        cue = create_cue(db_session, steps=[
            {"transition_duration": 0.2, "target_brightness": 255, "device_ids": [device.id]},
        ])
        await engine_service.execute_cue(cue.id)

        snapshot = engine_service.get_execution_status()
        snapshot.is_running = False

        assert engine_service.is_executing() is True

        await stop(engine_service)
