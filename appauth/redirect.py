from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass

from appauth.constants import HANDLE_AUTHORIZATION_RESPONSE, LOGGER
from appauth.errors import AuthorizationError
from appauth.exchanger import ExchangeResult, TokenExchanger
from appauth.models import AuthorizationRequest, AuthorizationResponse, Session
from appauth.urls import matches_redirect_target, parse_redirect_params


class RedirectState(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    HANDLED = "handled"


@dataclass
class RedirectEvent:
    """An inbound redirect delivered by the host.

    ``used`` is set once the event has been handled; the host may deliver the
    same event object again (for example when the app returns to the
    foreground) and it is then ignored.
    """

    uri: str
    action: str = HANDLE_AUTHORIZATION_RESPONSE
    used: bool = False


@dataclass
class HandledRedirect:
    session: Session
    response: AuthorizationResponse | None = None
    error: AuthorizationError | None = None
    exchange: asyncio.Task[ExchangeResult] | None = None


class RedirectHandler:
    def __init__(self, exchanger: TokenExchanger) -> None:
        self._exchanger = exchanger
        self._state = RedirectState.IDLE
        self._pending: AuthorizationRequest | None = None

    @property
    def state(self) -> RedirectState:
        return self._state

    @property
    def pending_request(self) -> AuthorizationRequest | None:
        return self._pending

    def expect(self, request: AuthorizationRequest) -> None:
        self._pending = request
        self._state = RedirectState.PENDING

    def handle(self, event: RedirectEvent) -> HandledRedirect | None:
        if event.action != HANDLE_AUTHORIZATION_RESPONSE:
            return None
        if event.used:
            LOGGER.debug("Ignoring already handled redirect %s", event.uri)
            return None
        event.used = True

        response, error = self._parse(event.uri)
        session = Session.from_authorization(response, error)
        self._pending = None
        self._state = RedirectState.HANDLED

        if response is None:
            LOGGER.warning("Authorization failed: %s", error)
            return HandledRedirect(session=session, error=error)

        LOGGER.info("Handled authorization response (scopes: %s)", " ".join(sorted(response.scopes)))
        exchange = self._exchanger.exchange(session, response.create_token_exchange_request())
        return HandledRedirect(session=session, response=response, exchange=exchange)

    def _parse(self, uri: str) -> tuple[AuthorizationResponse | None, AuthorizationError | None]:
        request = self._pending
        if request is None:
            return None, AuthorizationError("invalid_request", "No authorization request is pending.")
        if not matches_redirect_target(uri, request.redirect_uri):
            return None, AuthorizationError("invalid_request", "Unexpected redirect target.")

        params = parse_redirect_params(uri)
        if "error" in params:
            return None, AuthorizationError(params["error"], params.get("error_description"))
        if params.get("state") != request.state:
            return None, AuthorizationError("state_mismatch", "Redirect state does not match the request.")

        code = params.get("code")
        if not code:
            return None, AuthorizationError("invalid_request", "Redirect is missing the authorization code.")

        scope = params.get("scope")
        scopes = frozenset(scope.split()) if scope else frozenset(request.scopes)
        return (
            AuthorizationResponse(request=request, code=code, state=request.state, scopes=scopes),
            None,
        )
