import asyncio

import pytest

from src.attendance_sync.attendance_sync.sync.attendance_sync import AttendanceSyncService

from tests.fakes import make_record, ms, server_error


@pytest.fixture
def service(attendance_repo, server_api, network, sync_queue):
    return AttendanceSyncService(attendance_repo, server_api, network, sync_queue)


def _server_day(date, *records):
    return {"dateOfPunch": date, "records": list(records)}


def test_push_marks_records_synced_with_server_timestamp(service, attendance_repo, server_api):
    server_api.punch_response_timestamp = "2025-01-13T09:00:00.500Z"

    async def run():
        await attendance_repo.insert(make_record(ms(2025, 1, 13, 9), "IN", address="Gate 1"))
        result = await service.push_all_unsynced("u1")
        return result, await attendance_repo.get(ms(2025, 1, 13, 9))

    result, stored = asyncio.run(run())

    assert (result.success, result.failed) == (1, 0)
    assert server_api.punches[0]["direction"] == "IN"
    assert server_api.punches[0]["address"] == "Gate 1"
    assert stored.synced
    assert stored.server_timestamp == ms(2025, 1, 13, 9) + 500


def test_push_uses_out_endpoint_for_check_out(service, attendance_repo, server_api):
    async def run():
        await attendance_repo.insert(make_record(ms(2025, 1, 13, 18), "OUT"))
        await service.push_all_unsynced("u1")

    asyncio.run(run())

    assert [p["direction"] for p in server_api.punches] == ["OUT"]


def test_failed_push_is_queued_once(service, attendance_repo, server_api, sync_queue):
    server_api.fail_with = server_error(500)

    async def run():
        await attendance_repo.insert(make_record(ms(2025, 1, 13, 9), "IN"))
        await attendance_repo.insert(make_record(ms(2025, 1, 13, 18), "OUT"))
        first = await service.push_all_unsynced("u1")
        await service.push_all_unsynced("u1")
        return first, await sync_queue.size(), await attendance_repo.list_unsynced("u1")

    first, size, unsynced = asyncio.run(run())

    assert (first.success, first.failed) == (0, 2)
    assert size == 2
    assert len(unsynced) == 2


def test_offline_push_leaves_records_local(service, attendance_repo, server_api, network):
    network.set_connected(False)

    async def run():
        await attendance_repo.insert(make_record(ms(2025, 1, 13, 9), "IN"))
        return await service.push_all_unsynced("u1")

    result = asyncio.run(run())

    assert result.failed == 1
    assert server_api.punches == []


def test_successful_push_clears_queued_retry(service, attendance_repo, server_api, sync_queue, clock):
    record = make_record(ms(2025, 1, 13, 9), "IN")

    async def run():
        await attendance_repo.insert(record)
        server_api.fail_with = server_error(503)
        await service.push_all_unsynced("u1")
        server_api.fail_with = None
        clock.advance(5_000)
        item = (await sync_queue.drainable_pending_items())[0]
        ok = await service.push_one(item)
        return ok, await sync_queue.size()

    ok, size = asyncio.run(run())

    assert ok is True
    assert size == 0


def test_push_one_treats_synced_or_missing_rows_as_done(service, attendance_repo, sync_queue, server_api):
    async def run():
        await attendance_repo.insert(make_record(ms(2025, 1, 13, 9), "IN", synced=True))
        synced_item = await sync_queue.enqueue("attendance", str(ms(2025, 1, 13, 9)), data={})
        missing_item = await sync_queue.enqueue("attendance", "12345", data={})
        return await service.push_one(synced_item), await service.push_one(missing_item)

    assert asyncio.run(run()) == (True, True)
    assert server_api.punches == []


def test_merge_keeps_local_unsynced_records(service, attendance_repo):
    local = make_record(ms(2025, 1, 13, 9), "IN")

    async def run():
        await attendance_repo.insert(local)
        inserted = await service.merge_server_data(
            "u1", [_server_day("2025-01-12", {"Timestamp": ms(2025, 1, 12, 9), "PunchDirection": "IN"})]
        )
        return inserted, await attendance_repo.list_for_user("u1")

    inserted, records = asyncio.run(run())

    assert inserted == 1
    assert {r.timestamp for r in records} == {ms(2025, 1, 12, 9), ms(2025, 1, 13, 9)}
    kept = next(r for r in records if r.timestamp == local.timestamp)
    assert not kept.synced


def test_merge_does_not_overwrite_existing_fields(service, attendance_repo):
    ts = ms(2025, 1, 13, 9)

    async def run():
        await attendance_repo.insert(make_record(ts, "IN", address="Local address"))
        await service.merge_server_data(
            "u1",
            [_server_day("2025-01-13", {"timestamp": ts, "punchDirection": "OUT", "address": "Server address"})],
        )
        return await attendance_repo.get(ts)

    stored = asyncio.run(run())

    assert stored.address == "Local address"
    assert stored.is_in
    assert stored.synced


def test_merge_accepts_iso_timestamps_and_skips_bad_ones(service, attendance_repo):
    async def run():
        inserted = await service.merge_server_data(
            "u1",
            [
                _server_day(
                    "2025-01-12",
                    {"Timestamp": "2025-01-12T09:00:00Z", "PunchDirection": "IN"},
                    {"Timestamp": "not a time", "PunchDirection": "OUT"},
                )
            ],
        )
        return inserted, await attendance_repo.get(ms(2025, 1, 12, 9))

    inserted, stored = asyncio.run(run())

    assert inserted == 1
    assert stored.synced
    assert stored.date_of_punch == "2025-01-12"


def test_repeated_pull_does_not_duplicate_rows(service, attendance_repo, server_api):
    server_api.days = [
        _server_day(
            "2025-01-12",
            {"Timestamp": ms(2025, 1, 12, 9), "PunchDirection": "IN"},
            {"Timestamp": ms(2025, 1, 12, 18), "PunchDirection": "OUT"},
        )
    ]
    seen = []
    service.add_change_listener(lambda user_id, records: seen.append((user_id, len(records))))

    async def run():
        await service.pull_from_server("u1", start_date="2025-01-01", end_date="2025-01-31")
        await service.pull_from_server("u1")
        return await attendance_repo.list_for_user("u1")

    records = asyncio.run(run())

    assert len(records) == 2
    assert seen == [("u1", 2), ("u1", 2)]
    assert server_api.days_calls[0] == {"start_date": "2025-01-01", "end_date": "2025-01-31"}


def test_pull_skipped_offline(service, server_api, network):
    network.set_connected(False)

    assert asyncio.run(service.pull_from_server("u1")) is None
    assert server_api.days_calls == []


def test_merge_marks_local_row_synced_when_it_wins_the_insert(service, attendance_repo, monkeypatch):
    ts = ms(2025, 1, 13, 9)

    async def nothing_local(user_id, newest_first=True):
        return []

    async def run():
        await attendance_repo.insert(make_record(ts, "IN", address="Local"))
        monkeypatch.setattr(attendance_repo, "list_for_user", nothing_local)
        inserted = await service.merge_server_data(
            "u1", [_server_day("2025-01-13", {"Timestamp": ts, "PunchDirection": "IN", "address": "Server"})]
        )
        return inserted, await attendance_repo.get(ts)

    inserted, stored = asyncio.run(run())

    assert inserted == 0
    assert stored.synced
    assert stored.address == "Local"


def test_merge_accepts_seven_digit_fractions(service, attendance_repo):
    async def run():
        inserted = await service.merge_server_data(
            "u1",
            [_server_day("2025-01-12", {"Timestamp": "2025-01-12T09:00:00.1234567Z", "PunchDirection": "IN"})],
        )
        return inserted, await attendance_repo.get(ms(2025, 1, 12, 9) + 123)

    inserted, stored = asyncio.run(run())

    assert inserted == 1
    assert stored is not None
