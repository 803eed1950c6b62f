from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from appauth import oauth2
from appauth.constants import LOGGER
from appauth.errors import AppAuthError, StaleSessionError, TokenExchangeError, TokenRequestError
from appauth.models import Session, TokenRequest
from appauth.state import SessionState


@dataclass
class ExchangeResult:
    session: Session
    error: AppAuthError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class TokenExchanger:
    def __init__(
        self,
        state: SessionState,
        *,
        client: httpx.AsyncClient | None = None,
        exchange_code_fn=oauth2.exchange_code,
    ) -> None:
        self._state = state
        self._client = client
        self._exchange_code_fn = exchange_code_fn
        self._tasks: set[asyncio.Task] = set()

    def exchange(self, session: Session, request: TokenRequest) -> asyncio.Task[ExchangeResult]:
        """Start the code-for-token exchange and return its task.

        Must be called from a running event loop. The returned task never
        raises for token endpoint failures; they are reported on the result.
        """
        generation = self._state.generation
        task = asyncio.create_task(self._run(session, request, generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(
        self,
        session: Session,
        request: TokenRequest,
        generation: int,
    ) -> ExchangeResult:
        try:
            token = await self._exchange_code_fn(request, client=self._client)
        except TokenRequestError as error:
            LOGGER.warning(
                "Token exchange failed: %s (%s)",
                error.error,
                error.description or "No description",
            )
            failure = TokenExchangeError(str(error))
            failure.__cause__ = error
            return ExchangeResult(session=session, error=failure)

        updated = session.with_token_response(token)
        if not await self._state.replace(updated, generation=generation):
            return ExchangeResult(session=session, error=StaleSessionError())

        LOGGER.info(
            "Token exchange complete (refresh token: %s, id token: %s)",
            updated.refresh_token is not None,
            updated.id_token is not None,
        )
        return ExchangeResult(session=updated)
