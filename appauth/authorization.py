from __future__ import annotations

import webbrowser
from typing import Protocol

from appauth.constants import AUTHORIZATION_ENDPOINT, CLIENT_ID, LOGGER, REDIRECT_URI, SCOPES, TOKEN_ENDPOINT
from appauth.errors import RestrictionsPendingError
from appauth.models import AuthorizationRequest
from appauth.oauth2 import build_authorization_url
from appauth.redirect import RedirectHandler
from appauth.restrictions import ManagedConfiguration


class UserAgent(Protocol):
    def open(self, url: str) -> None: ...


class BrowserUserAgent:
    def open(self, url: str) -> None:
        if not webbrowser.open(url):
            raise RuntimeError("No browser is available to complete authorization.")


class AuthorizationInitiator:
    def __init__(
        self,
        handler: RedirectHandler,
        *,
        user_agent: UserAgent | None = None,
        configuration: ManagedConfiguration | None = None,
        client_id: str = CLIENT_ID,
        redirect_uri: str = REDIRECT_URI,
        scopes: tuple[str, ...] = SCOPES,
    ) -> None:
        self._handler = handler
        self._user_agent = user_agent or BrowserUserAgent()
        self._configuration = configuration
        self._client_id = client_id
        self._redirect_uri = redirect_uri
        self._scopes = tuple(scopes)

    def begin_authorization(self, login_hint: str | None = None) -> AuthorizationRequest:
        if self._configuration is not None:
            restrictions = self._configuration.current()
            if restrictions.pending:
                raise RestrictionsPendingError()
            if login_hint is None:
                login_hint = restrictions.login_hint

        request = AuthorizationRequest(
            authorization_endpoint=AUTHORIZATION_ENDPOINT,
            token_endpoint=TOKEN_ENDPOINT,
            client_id=self._client_id,
            redirect_uri=self._redirect_uri,
            scopes=self._scopes,
            login_hint=login_hint,
        )
        if login_hint is not None:
            LOGGER.info("login_hint: %s", login_hint)

        self._handler.expect(request)
        self._user_agent.open(build_authorization_url(request))
        return request
