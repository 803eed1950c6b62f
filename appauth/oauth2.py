from __future__ import annotations

import time
import urllib.parse
from dataclasses import dataclass

import httpx

from appauth.constants import LOGIN_HINT
from appauth.errors import TokenRequestError
from appauth.models import AuthorizationRequest, TokenRequest


@dataclass
class TokenResponse:
    access_token: str
    expires_in: int | None
    expires_at: float | None
    scope: str = ""
    refresh_token: str | None = None
    id_token: str | None = None

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return time.time() >= self.expires_at

    @classmethod
    def from_payload(cls, payload: dict) -> "TokenResponse":
        if not isinstance(payload, dict):
            raise TokenRequestError("invalid_response", "Token response must be a JSON object.")

        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        id_token = payload.get("id_token")
        expires_in = payload.get("expires_in")
        scope = payload.get("scope", "")

        if not isinstance(access_token, str) or not access_token:
            raise TokenRequestError("invalid_response", "Token response missing access_token.")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise TokenRequestError("invalid_response", "Token response refresh_token must be a string.")
        if id_token is not None and not isinstance(id_token, str):
            raise TokenRequestError("invalid_response", "Token response id_token must be a string.")
        if expires_in is not None and (isinstance(expires_in, bool) or not isinstance(expires_in, int)):
            raise TokenRequestError("invalid_response", "Token response expires_in must be an integer.")
        if not isinstance(scope, str):
            raise TokenRequestError("invalid_response", "Token response scope must be a string.")

        return cls(
            access_token=access_token,
            expires_in=expires_in,
            expires_at=None if expires_in is None else time.time() + expires_in,
            scope=scope,
            refresh_token=refresh_token or None,
            id_token=id_token or None,
        )


def build_authorization_url(request: AuthorizationRequest) -> str:
    query = {
        "client_id": request.client_id,
        "redirect_uri": request.redirect_uri,
        "response_type": "code",
        "state": request.state,
        "scope": " ".join(request.scopes),
    }
    if request.login_hint is not None:
        query[LOGIN_HINT] = request.login_hint
    return f"{request.authorization_endpoint}?{urllib.parse.urlencode(query)}"


def _error_from_response(response: httpx.Response) -> TokenRequestError:
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and isinstance(body.get("error"), str):
        description = body.get("error_description")
        return TokenRequestError(
            body["error"],
            description if isinstance(description, str) else None,
            status_code=response.status_code,
        )
    return TokenRequestError("server_error", response.text or None, status_code=response.status_code)


async def _token_request(
    request: TokenRequest,
    *,
    client: httpx.AsyncClient | None = None,
) -> TokenResponse:
    own_client = client is None
    http_client = client or httpx.AsyncClient()

    try:
        response = await http_client.post(request.token_endpoint, data=request.to_form())
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as error:
        raise _error_from_response(error.response) from error
    except httpx.HTTPError as error:
        raise TokenRequestError("network_error", str(error) or type(error).__name__) from error
    except ValueError as error:
        raise TokenRequestError("invalid_response", "Token response is not valid JSON.") from error
    finally:
        if own_client:
            await http_client.aclose()

    return TokenResponse.from_payload(payload)


async def exchange_code(
    request: TokenRequest,
    *,
    client: httpx.AsyncClient | None = None,
) -> TokenResponse:
    if request.grant_type != "authorization_code" or not request.code:
        raise ValueError("exchange_code requires an authorization_code request with a code.")
    return await _token_request(request, client=client)


async def refresh_token(
    request: TokenRequest,
    *,
    client: httpx.AsyncClient | None = None,
) -> TokenResponse:
    if request.grant_type != "refresh_token" or not request.refresh_token:
        raise ValueError("refresh_token requires a refresh_token request with a token.")
    return await _token_request(request, client=client)
