import asyncio

import pytest

from appauth.errors import RefreshError, StaleSessionError, TokenRequestError
from appauth.guard import SessionGuard
from appauth.session_store import MemorySessionStore
from appauth.state import SessionState
from tests.flow_helpers import authorized_session, make_token_response


class ActionRecorder:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    async def __call__(self, access_token, id_token, error):
        self.calls.append((access_token, id_token, error))
        return access_token


@pytest.mark.asyncio
async def test_fresh_token_is_passed_through() -> None:
    async def refresh(request, *, client=None):
        raise AssertionError("refresh should not be called")

    guard = SessionGuard(SessionState(MemorySessionStore()), refresh_token_fn=refresh)
    action = ActionRecorder()

    result = await guard.with_fresh_token(authorized_session(), action)

    assert result == "access-1"
    assert action.calls == [("access-1", "id-1", None)]


@pytest.mark.asyncio
async def test_sync_action_result_is_returned() -> None:
    guard = SessionGuard(SessionState(MemorySessionStore()))

    result = await guard.with_fresh_token(authorized_session(), lambda token, id_token, error: token.upper())

    assert result == "ACCESS-1"


@pytest.mark.asyncio
async def test_expired_token_is_refreshed_and_persisted_before_action() -> None:
    store = MemorySessionStore()
    state = SessionState(store)
    session = authorized_session(expires_in=-10)
    await state.replace(session)
    persisted_at_action: list = []

    async def refresh(request, *, client=None):
        assert request.refresh_token == "refresh-1"
        return make_token_response("access-2", refresh_token=None, id_token="id-2")

    async def action(access_token, id_token, error):
        persisted_at_action.append(await store.load())
        return access_token

    result = await SessionGuard(state, refresh_token_fn=refresh).with_fresh_token(session, action)

    assert result == "access-2"
    stored = persisted_at_action[0]
    assert stored.access_token == "access-2"
    assert stored.refresh_token == "refresh-1"
    assert stored.access_token_expires_at > session.access_token_expires_at
    assert state.current == stored


@pytest.mark.asyncio
async def test_refresh_failure_reaches_action_as_error() -> None:
    async def refresh(request, *, client=None):
        raise TokenRequestError("invalid_grant", "revoked", status_code=400)

    store = MemorySessionStore()
    state = SessionState(store)
    session = authorized_session(expires_in=-10)
    await state.replace(session)
    action = ActionRecorder()

    await SessionGuard(state, refresh_token_fn=refresh).with_fresh_token(session, action)

    access_token, id_token, error = action.calls[0]
    assert access_token is None
    assert id_token is None
    assert isinstance(error, RefreshError)
    assert await store.load() == session


@pytest.mark.asyncio
async def test_expired_without_refresh_token_is_an_error() -> None:
    guard = SessionGuard(SessionState(MemorySessionStore()))
    action = ActionRecorder()

    await guard.with_fresh_token(authorized_session(expires_in=-10, refresh_token=None), action)

    assert action.calls[0][0] is None
    assert isinstance(action.calls[0][2], RefreshError)


@pytest.mark.asyncio
async def test_refresh_completing_after_sign_out_is_discarded() -> None:
    release = asyncio.Event()

    async def refresh(request, *, client=None):
        await release.wait()
        return make_token_response("access-2")

    store = MemorySessionStore()
    state = SessionState(store)
    session = authorized_session(expires_in=-10)
    await state.replace(session)
    action = ActionRecorder()

    pending = asyncio.create_task(SessionGuard(state, refresh_token_fn=refresh).with_fresh_token(session, action))
    await asyncio.sleep(0)
    await state.sign_out()
    release.set()
    await pending

    assert isinstance(action.calls[0][2], StaleSessionError)
    assert action.calls[0][0] is None
    assert await store.load() is None
    assert state.current is None


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_refresh() -> None:
    release = asyncio.Event()
    refresh_calls: list = []

    async def refresh(request, *, client=None):
        refresh_calls.append(request)
        await release.wait()
        return make_token_response("access-2")

    state = SessionState(MemorySessionStore())
    session = authorized_session(expires_in=-10)
    await state.replace(session)
    guard = SessionGuard(state, refresh_token_fn=refresh)
    first_action = ActionRecorder()
    second_action = ActionRecorder()

    first = asyncio.create_task(guard.with_fresh_token(session, first_action))
    second = asyncio.create_task(guard.with_fresh_token(session, second_action))
    await asyncio.sleep(0)
    release.set()
    await asyncio.gather(first, second)

    assert len(refresh_calls) == 1
    assert first_action.calls[0][0] == "access-2"
    assert second_action.calls[0][0] == "access-2"
