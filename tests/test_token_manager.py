import asyncio
import json
from pathlib import Path

import httpx
import pytest
import respx

from conftest import TEST_REFRESH_URL, build_credential
from gemini_bridge.credential_store import FileCredentialStore, MemoryCredentialStore
from gemini_bridge.error_handler import AuthConfigError, AuthRefreshError
from gemini_bridge.token_manager import Credential, TokenLifecycleManager


def _manager(store, clock, **kwargs) -> TokenLifecycleManager:
    return TokenLifecycleManager(
        store,
        refresh_url=TEST_REFRESH_URL,
        max_refresh_retries=1,
        clock=clock,
        **kwargs,
    )


def test_credential_from_dict_requires_refresh_token():
    with pytest.raises(AuthConfigError):
        Credential.from_dict({"access_token": "abc"})


def test_credential_from_dict_tolerates_bad_expiry():
    credential = Credential.from_dict({"refresh_token": "rt", "expiry_date": "soon"})
    assert credential.expiry_date == 0
    assert credential.access_token == ""


@pytest.mark.asyncio
async def test_fresh_token_is_served_without_network(clock, fresh_credential):
    manager = _manager(MemoryCredentialStore(), clock, credential_source=json.dumps(fresh_credential))

    with respx.mock(assert_all_called=False) as mock_router:
        refresh_route = mock_router.post(TEST_REFRESH_URL)
        token = await manager.ensure_valid()

    assert token == "ya29.cached-token"
    assert not refresh_route.called


@pytest.mark.asyncio
async def test_token_inside_buffer_is_refreshed_once_and_persisted(clock, expiring_credential):
    store = MemoryCredentialStore()
    manager = _manager(store, clock, credential_source=expiring_credential)

    with respx.mock(assert_all_called=True) as mock_router:
        route = mock_router.post(TEST_REFRESH_URL).mock(
            return_value=httpx.Response(
                200, json={"access_token": "ya29.new-token", "expires_in": 3600}
            )
        )
        first = await manager.ensure_valid()
        second = await manager.ensure_valid()

    assert first == second == "ya29.new-token"
    assert route.call_count == 1

    form = dict(httpx.QueryParams(route.calls[0].request.content.decode("utf-8")))
    assert form["grant_type"] == "refresh_token"
    assert form["refresh_token"] == "1//refresh-token"

    record = await store.get()
    assert record["access_token"] == "ya29.new-token"
    assert record["refresh_token"] == "1//refresh-token"
    assert record["expiry_date"] == int((clock.now + 3600) * 1000)


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_refresh(clock, expired_credential):
    manager = _manager(MemoryCredentialStore(), clock, credential_source=expired_credential)

    with respx.mock(assert_all_called=True) as mock_router:
        route = mock_router.post(TEST_REFRESH_URL).mock(
            return_value=httpx.Response(
                200, json={"access_token": "ya29.shared", "expires_in": 3600}
            )
        )
        tokens = await asyncio.gather(*[manager.ensure_valid() for _ in range(10)])

    assert set(tokens) == {"ya29.shared"}
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_cached_record_takes_priority_over_source(clock, fresh_credential):
    cached = build_credential(clock.now, 3600, access_token="ya29.from-cache")
    manager = _manager(
        MemoryCredentialStore(cached), clock, credential_source=fresh_credential
    )

    assert await manager.ensure_valid() == "ya29.from-cache"


@pytest.mark.asyncio
async def test_credential_file_is_loaded(tmp_path: Path, clock, fresh_credential):
    creds_path = tmp_path / "oauth_creds.json"
    creds_path.write_text(json.dumps(fresh_credential))
    manager = _manager(MemoryCredentialStore(), clock, credential_file=creds_path)

    assert await manager.ensure_valid() == "ya29.cached-token"


@pytest.mark.asyncio
async def test_refresh_failure_falls_back_to_unexpired_token(clock, expiring_credential):
    manager = _manager(MemoryCredentialStore(), clock, credential_source=expiring_credential)

    with respx.mock(assert_all_called=True) as mock_router:
        mock_router.post(TEST_REFRESH_URL).mock(
            return_value=httpx.Response(400, json={"error": "invalid_grant"})
        )
        token = await manager.ensure_valid()

    assert token == "ya29.cached-token"


@pytest.mark.asyncio
async def test_refresh_failure_is_fatal_when_token_expired(clock, expired_credential):
    manager = _manager(MemoryCredentialStore(), clock, credential_source=expired_credential)

    with respx.mock(assert_all_called=True) as mock_router:
        mock_router.post(TEST_REFRESH_URL).mock(
            return_value=httpx.Response(400, json={"error": "invalid_grant"})
        )
        with pytest.raises(AuthRefreshError):
            await manager.ensure_valid()


@pytest.mark.asyncio
async def test_refresh_retries_server_errors(clock, expired_credential, monkeypatch):
    async def no_sleep(_seconds):
        return None

    monkeypatch.setattr("gemini_bridge.token_manager.asyncio.sleep", no_sleep)
    manager = TokenLifecycleManager(
        MemoryCredentialStore(),
        credential_source=expired_credential,
        refresh_url=TEST_REFRESH_URL,
        max_refresh_retries=3,
        clock=clock,
    )

    with respx.mock(assert_all_called=True) as mock_router:
        route = mock_router.post(TEST_REFRESH_URL).mock(
            side_effect=[
                httpx.Response(503, text="unavailable"),
                httpx.Response(200, json={"access_token": "ya29.after-retry", "expires_in": 60 * 60}),
            ]
        )
        token = await manager.ensure_valid()

    assert token == "ya29.after-retry"
    assert route.call_count == 2


@pytest.mark.asyncio
async def test_missing_configuration_raises_config_error(clock):
    manager = _manager(MemoryCredentialStore(), clock)
    assert manager.has_credential_source is False

    with pytest.raises(AuthConfigError):
        await manager.ensure_valid()


@pytest.mark.asyncio
async def test_malformed_inline_json_raises_config_error(clock):
    manager = _manager(MemoryCredentialStore(), clock, credential_source="{not json")

    with pytest.raises(AuthConfigError):
        await manager.ensure_valid()


@pytest.mark.asyncio
async def test_invalidate_forces_refresh_and_clears_store(clock, fresh_credential):
    store = MemoryCredentialStore(fresh_credential)
    manager = _manager(store, clock)

    assert await manager.ensure_valid() == "ya29.cached-token"
    await manager.invalidate()
    assert await store.get() is None

    with respx.mock(assert_all_called=True) as mock_router:
        route = mock_router.post(TEST_REFRESH_URL).mock(
            return_value=httpx.Response(
                200, json={"access_token": "ya29.reissued", "expires_in": 3600}
            )
        )
        token = await manager.ensure_valid()

    assert token == "ya29.reissued"
    assert route.call_count == 1
    assert (await store.get())["access_token"] == "ya29.reissued"


@pytest.mark.asyncio
async def test_refresh_failure_after_invalidate_is_fatal(clock, fresh_credential):
    manager = _manager(MemoryCredentialStore(), clock, credential_source=fresh_credential)
    await manager.ensure_valid()
    await manager.invalidate()

    with respx.mock(assert_all_called=True) as mock_router:
        mock_router.post(TEST_REFRESH_URL).mock(return_value=httpx.Response(401, text="denied"))
        with pytest.raises(AuthRefreshError):
            await manager.ensure_valid()


@pytest.mark.asyncio
async def test_persistence_failure_is_not_fatal(clock, expired_credential):
    class FailingStore(MemoryCredentialStore):
        async def put(self, record):
            raise IOError("disk full")

    manager = _manager(FailingStore(), clock, credential_source=expired_credential)

    with respx.mock(assert_all_called=True) as mock_router:
        mock_router.post(TEST_REFRESH_URL).mock(
            return_value=httpx.Response(
                200, json={"access_token": "ya29.memory-only", "expires_in": 3600}
            )
        )
        assert await manager.ensure_valid() == "ya29.memory-only"


@pytest.mark.asyncio
async def test_file_store_round_trip_and_cache_info(tmp_path: Path, clock, fresh_credential):
    store = FileCredentialStore(tmp_path / "cache" / "oauth_token_cache.json")
    manager = _manager(store, clock)

    assert (await manager.get_cached_token_info())["cached"] is False

    await store.put(fresh_credential)
    on_disk = json.loads((tmp_path / "cache" / "oauth_token_cache.json").read_text())
    assert on_disk["oauth_token_cache"]["access_token"] == "ya29.cached-token"

    info = await manager.get_cached_token_info()
    assert info["cached"] is True
    assert info["is_expired"] is False
    assert info["time_until_expiry_seconds"] == 3600
    assert info["token_preview"] == "ya29****oken"
    assert "ya29.cached-token" not in json.dumps(info)

    await store.delete()
    assert await store.get() is None
