from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from appauth.constants import (
    AUTHORIZATION_ENDPOINT,
    CLIENT_ID,
    EXPIRY_TOLERANCE_SECONDS,
    REDIRECT_URI,
    SCOPES,
    TOKEN_ENDPOINT,
)
from appauth.errors import AuthorizationError

if TYPE_CHECKING:
    from appauth.oauth2 import TokenResponse


def generate_state() -> str:
    return secrets.token_urlsafe(16)


@dataclass(frozen=True)
class AuthorizationRequest:
    authorization_endpoint: str = AUTHORIZATION_ENDPOINT
    token_endpoint: str = TOKEN_ENDPOINT
    client_id: str = CLIENT_ID
    redirect_uri: str = REDIRECT_URI
    scopes: tuple[str, ...] = SCOPES
    login_hint: str | None = None
    state: str = field(default_factory=generate_state)


@dataclass(frozen=True)
class TokenRequest:
    token_endpoint: str
    client_id: str
    grant_type: str
    redirect_uri: str | None = None
    code: str | None = None
    refresh_token: str | None = None

    def to_form(self) -> dict[str, str]:
        form = {"grant_type": self.grant_type, "client_id": self.client_id}
        if self.code is not None:
            form["code"] = self.code
        if self.redirect_uri is not None:
            form["redirect_uri"] = self.redirect_uri
        if self.refresh_token is not None:
            form["refresh_token"] = self.refresh_token
        return form


@dataclass(frozen=True)
class AuthorizationResponse:
    request: AuthorizationRequest
    code: str
    state: str
    scopes: frozenset[str]

    def create_token_exchange_request(self) -> TokenRequest:
        return TokenRequest(
            token_endpoint=self.request.token_endpoint,
            client_id=self.request.client_id,
            grant_type="authorization_code",
            redirect_uri=self.request.redirect_uri,
            code=self.code,
        )


@dataclass(frozen=True)
class Session:
    """Persisted OAuth2 state for the single signed-in user.

    Instances are immutable; every change produces a new Session which is
    then stored as a whole.
    """

    scopes: frozenset[str] = frozenset()
    access_token: str | None = None
    access_token_expires_at: float | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    authorization_error: AuthorizationError | None = None
    token_endpoint: str = TOKEN_ENDPOINT
    client_id: str = CLIENT_ID

    @classmethod
    def from_authorization(
        cls,
        response: AuthorizationResponse | None,
        error: AuthorizationError | None,
    ) -> "Session":
        if response is not None:
            return cls(
                scopes=response.scopes,
                token_endpoint=response.request.token_endpoint,
                client_id=response.request.client_id,
            )
        return cls(authorization_error=error)

    def is_expired(self, *, now: float | None = None) -> bool:
        if self.access_token is None:
            return True
        # Tokens issued without an expiry are used until the server rejects them.
        if self.access_token_expires_at is None:
            return False
        current = time.time() if now is None else now
        return current + EXPIRY_TOLERANCE_SECONDS >= self.access_token_expires_at

    @property
    def is_authorized(self) -> bool:
        if self.authorization_error is not None or self.access_token is None:
            return False
        return not self.is_expired() or self.refresh_token is not None

    def with_token_response(self, token: "TokenResponse") -> "Session":
        scopes = frozenset(token.scope.split()) if token.scope else self.scopes
        return replace(
            self,
            scopes=scopes,
            access_token=token.access_token,
            access_token_expires_at=token.expires_at,
            refresh_token=token.refresh_token or self.refresh_token,
            id_token=token.id_token or self.id_token,
            authorization_error=None,
        )

    def create_refresh_request(self) -> TokenRequest:
        if self.refresh_token is None:
            raise RuntimeError("Session has no refresh token.")
        return TokenRequest(
            token_endpoint=self.token_endpoint,
            client_id=self.client_id,
            grant_type="refresh_token",
            refresh_token=self.refresh_token,
        )

    def to_dict(self) -> dict:
        return {
            "scopes": sorted(self.scopes),
            "access_token": self.access_token,
            "access_token_expires_at": self.access_token_expires_at,
            "refresh_token": self.refresh_token,
            "id_token": self.id_token,
            "authorization_error": (
                None if self.authorization_error is None else self.authorization_error.to_dict()
            ),
            "token_endpoint": self.token_endpoint,
            "client_id": self.client_id,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "Session":
        if not isinstance(payload, dict):
            raise ValueError("Session record must be a JSON object.")

        scopes = payload.get("scopes", [])
        if not isinstance(scopes, list) or not all(isinstance(item, str) for item in scopes):
            raise ValueError("Session scopes must be a list of strings.")

        for key in ("access_token", "refresh_token", "id_token"):
            value = payload.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Session {key} must be a string.")

        expires_at = payload.get("access_token_expires_at")
        if expires_at is not None:
            if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
                raise ValueError("Session access_token_expires_at must be a number.")
            expires_at = float(expires_at)

        raw_error = payload.get("authorization_error")
        error = None if raw_error is None else AuthorizationError.from_dict(raw_error)

        return cls(
            scopes=frozenset(scopes),
            access_token=payload.get("access_token"),
            access_token_expires_at=expires_at,
            refresh_token=payload.get("refresh_token"),
            id_token=payload.get("id_token"),
            authorization_error=error,
            token_endpoint=payload.get("token_endpoint") or TOKEN_ENDPOINT,
            client_id=payload.get("client_id") or CLIENT_ID,
        )
