import asyncio

import pytest

from src.attendance_sync.attendance_sync.core.exceptions import AuthorizationError, ValidationError
from src.attendance_sync.attendance_sync.profile.model import ServerProfile
from src.attendance_sync.attendance_sync.sync.profile_sync import (
    MSG_FORBIDDEN,
    MSG_SAVED_OFFLINE,
    MSG_SAVED_RETRY,
    ProfileSyncService,
)

from tests.fakes import ms, server_error

EMAIL = "ann@example.com"


@pytest.fixture
def service(profile_repo, server_api, network, sync_queue, clock):
    return ProfileSyncService(profile_repo, server_api, network, sync_queue, clock=clock)


def test_server_copy_older_than_local_edit_is_ignored(service, profile_repo):
    async def run():
        await profile_repo.save_properties(EMAIL, {"firstName": "Local"}, now=100)
        applied = await service.merge_server_data(
            EMAIL, ServerProfile(values={"firstName": "Server"}, last_synced_at=50)
        )
        return applied, await profile_repo.get(EMAIL)

    applied, profile = asyncio.run(run())

    assert applied is False
    assert profile.get("firstName") == "Local"
    assert profile.server_last_synced_at == 50
    assert profile.is_synced is False


def test_newer_server_copy_overwrites_local(service, profile_repo):
    async def run():
        await profile_repo.save_properties(EMAIL, {"firstName": "Local"}, now=100)
        applied = await service.merge_server_data(
            EMAIL, ServerProfile(values={"firstName": "Server"}, last_synced_at=150)
        )
        return applied, await profile_repo.get(EMAIL)

    applied, profile = asyncio.run(run())

    assert applied is True
    assert profile.get("firstName") == "Server"
    assert profile.last_updated_at == 100
    assert profile.server_last_synced_at == 150
    assert profile.is_synced is True


def test_pull_creates_profile_and_maps_photo_url(service, profile_repo, server_api):
    server_api.profile = {
        "data": {
            "firstName": "Ann",
            "profilePhotoUrl": "https://cdn.example.com/ann.png",
            "unknownField": "ignored",
            "lastSyncedAt": "2025-01-15T05:00:00Z",
        }
    }

    async def run():
        await service.pull_from_server(EMAIL)
        return await profile_repo.get(EMAIL)

    profile = asyncio.run(run())

    assert profile.get("firstName") == "Ann"
    assert profile.get("profilePhoto") == "https://cdn.example.com/ann.png"
    assert "unknownField" not in profile.properties
    assert profile.server_last_synced_at == ms(2025, 1, 15, 5)


def test_update_profile_online_syncs(service, profile_repo, server_api, sync_queue):
    async def run():
        outcome = await service.update_profile(EMAIL, {"firstName": "Ann", "designation": "Driver"})
        return outcome, await profile_repo.get(EMAIL), await sync_queue.size()

    outcome, profile, queued = asyncio.run(run())

    assert outcome.saved_locally and outcome.synced
    assert outcome.message is None
    assert server_api.profile_updates == [{"firstName": "Ann"}, {"designation": "Driver"}]
    assert profile.is_synced
    assert profile.server_last_synced_at == ms(2025, 1, 15, 5)
    assert queued == 0


def test_update_profile_offline_saves_and_queues(service, network, sync_queue, server_api):
    network.set_connected(False)

    async def run():
        outcome = await service.update_profile(EMAIL, {"firstName": "Ann"})
        return outcome, await sync_queue.size()

    outcome, queued = asyncio.run(run())

    assert outcome.synced is False
    assert outcome.message == MSG_SAVED_OFFLINE
    assert queued == 1
    assert server_api.profile_updates == []


def test_update_profile_forbidden_keeps_local_copy(service, profile_repo, server_api):
    server_api.fail_with = AuthorizationError("forbidden")

    async def run():
        outcome = await service.update_profile(EMAIL, {"designation": "Manager"})
        return outcome, await profile_repo.get(EMAIL)

    outcome, profile = asyncio.run(run())

    assert outcome.message == MSG_FORBIDDEN
    assert profile.get("designation") == "Manager"
    assert profile.is_synced is False


def test_update_profile_server_error_asks_for_retry(service, server_api, sync_queue):
    server_api.fail_with = server_error(502)

    async def run():
        outcome = await service.update_profile(EMAIL, {"lastName": "Lee"})
        return outcome, await sync_queue.size()

    outcome, queued = asyncio.run(run())

    assert outcome.message == MSG_SAVED_RETRY
    assert queued == 1


def test_unknown_property_is_rejected(service):
    with pytest.raises(ValidationError):
        asyncio.run(service.update_profile(EMAIL, {"salary": 1}))


def test_photo_goes_to_upload_endpoint(service, server_api):
    async def run():
        await service.save_property(EMAIL, "profilePhoto", "file:///tmp/me.jpg")
        await service.save_property(EMAIL, "firstName", "Ann")
        return await service.push_all_unsynced(EMAIL)

    result = asyncio.run(run())

    assert (result.success, result.failed) == (2, 0)
    assert server_api.photo_uploads == ["file:///tmp/me.jpg"]
    assert server_api.profile_updates == [{"firstName": "Ann"}]


def test_corrupt_column_only_loses_that_property(conn, profile_repo):
    async def run():
        await profile_repo.save_properties(EMAIL, {"firstName": "Ann", "lastName": "Lee"}, now=10)
        raw = conn.connect()
        raw.execute("UPDATE profile SET firstName=? WHERE email=?", ("{not json", EMAIL))
        raw.commit()
        return await profile_repo.get(EMAIL)

    profile = asyncio.run(run())

    assert profile.get("firstName") is None
    assert profile.get("lastName") == "Lee"


def test_sync_status_for_unknown_user(service):
    status = asyncio.run(service.sync_status("nobody@example.com"))

    assert status.is_synced is True
    assert status.properties == {}


def test_load_profile_returns_saved_values(service):
    async def run():
        await service.save_property(EMAIL, "minimumWorkingHours", 7.5)
        return await service.load_profile(EMAIL), await service.load_profile("nobody@example.com")

    profile, missing = asyncio.run(run())

    assert profile.get("minimumWorkingHours") == 7.5
    assert profile.is_synced is False
    assert missing is None
