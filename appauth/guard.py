from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable

import httpx

from appauth import oauth2
from appauth.constants import LOGGER
from appauth.errors import AppAuthError, RefreshError, StaleSessionError, TokenRequestError
from appauth.models import Session
from appauth.state import SessionState

TokenAction = Callable[[str | None, str | None, AppAuthError | None], Any]


async def _invoke(action: TokenAction, *args) -> Any:
    result = action(*args)
    if inspect.isawaitable(result):
        return await result
    return result


class SessionGuard:
    """Hands protected calls an access token that is known to be fresh.

    An expired token is refreshed and the new session stored before the
    action runs, so the action never sees the expired token.
    """

    def __init__(
        self,
        state: SessionState,
        *,
        client: httpx.AsyncClient | None = None,
        refresh_token_fn=oauth2.refresh_token,
    ) -> None:
        self._state = state
        self._client = client
        self._refresh_token_fn = refresh_token_fn
        self._lock = asyncio.Lock()

    async def with_fresh_token(self, session: Session, action: TokenAction) -> Any:
        if not session.is_expired():
            return await _invoke(action, session.access_token, session.id_token, None)

        if session.refresh_token is None:
            error = RefreshError("Access token expired and no refresh token is available.")
            LOGGER.warning("%s", error)
            return await _invoke(action, None, None, error)

        try:
            fresh = await self._refresh(session)
        except AppAuthError as error:
            return await _invoke(action, None, None, error)
        return await _invoke(action, fresh.access_token, fresh.id_token, None)

    async def _refresh(self, session: Session) -> Session:
        generation = self._state.generation
        async with self._lock:
            current = self._state.current
            if (
                current is not None
                and current is not session
                and generation == self._state.generation
                and current.refresh_token is not None
                and not current.is_expired()
            ):
                return current

            try:
                token = await self._refresh_token_fn(
                    session.create_refresh_request(),
                    client=self._client,
                )
            except TokenRequestError as error:
                LOGGER.warning(
                    "Token refresh failed: %s (%s)",
                    error.error,
                    error.description or "No description",
                )
                raise RefreshError(str(error)) from error

            refreshed = session.with_token_response(token)
            if not await self._state.replace(refreshed, generation=generation):
                raise StaleSessionError()

            LOGGER.info("Access token refreshed; expires at %s", refreshed.access_token_expires_at)
            return refreshed
