import asyncio

from src.attendance_sync.attendance_sync.sync.background import BackgroundSyncService

from tests.fakes import make_record, ms

SESSION = ("ann@example.com", "u1")


async def _wait_for(condition, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def test_trigger_sync_needs_a_session(sync_stack, network, server_api):
    service = BackgroundSyncService(sync_stack.coordinator, network, lambda: None)

    assert asyncio.run(service.trigger_sync()) is None
    assert server_api.days_calls == []


def test_trigger_sync_runs_sync_and_drains_queue(sync_stack, network, attendance_repo):
    service = BackgroundSyncService(sync_stack.coordinator, network, lambda: SESSION)

    async def run():
        await attendance_repo.insert(make_record(ms(2025, 1, 13, 9), "IN"))
        return await service.trigger_sync()

    result, drained = asyncio.run(run())

    assert result.success is True
    assert result.attendance.success == 1
    assert drained.processed == 0


def test_trigger_sync_skipped_offline(sync_stack, network, server_api):
    network.set_connected(False)
    service = BackgroundSyncService(sync_stack.coordinator, network, lambda: SESSION)

    assert asyncio.run(service.trigger_sync()) is None


def test_overlapping_triggers_run_once(sync_stack, network, server_api):
    service = BackgroundSyncService(sync_stack.coordinator, network, lambda: SESSION)

    async def run():
        return await asyncio.gather(service.trigger_sync(), service.trigger_sync())

    first, second = asyncio.run(run())

    assert first is not None
    assert second is None
    assert len(server_api.days_calls) == 1


def test_reconnect_triggers_sync(sync_stack, network, server_api):
    network.set_connected(False)
    service = BackgroundSyncService(sync_stack.coordinator, network, lambda: SESSION, interval_seconds=3600)

    async def run():
        service.start()
        await asyncio.sleep(0.01)
        assert server_api.days_calls == []
        network.set_connected(True)
        await _wait_for(lambda: len(server_api.days_calls) == 1)
        await service.stop()

    asyncio.run(run())

    assert service.started is False


def test_periodic_sync(sync_stack, network, server_api):
    service = BackgroundSyncService(sync_stack.coordinator, network, lambda: SESSION, interval_seconds=0.01)

    async def run():
        service.start()
        await _wait_for(lambda: len(server_api.days_calls) >= 2)
        await service.stop()

    asyncio.run(run())
