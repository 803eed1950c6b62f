from __future__ import annotations

import httpx

from taskqueue.constants import LOGGER


def bearer_headers(access_token: str | None) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


def error_kind(payload: dict) -> str:
    error = payload.get("error")
    if isinstance(error, str) and error:
        return error
    if isinstance(error, dict):
        status = error.get("status") or error.get("code")
        if status is not None:
            return str(status)
    return "request_failed"


def error_description(payload: dict) -> str | None:
    description = payload.get("error_description")
    if isinstance(description, str) and description:
        return description

    # Google APIs nest the details in an error object.
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    return None


async def log_request(request: httpx.Request) -> None:
    LOGGER.info("Taskqueue request %s %s", request.method, request.url)


async def log_response(response: httpx.Response) -> None:
    LOGGER.info(
        "Taskqueue response %s %s -> %s",
        response.request.method,
        response.request.url,
        response.status_code,
    )
    if response.status_code >= 400:
        body = await response.aread()
        text = body.decode("utf-8", errors="replace")
        if len(text) > 1000:
            text = text[:1000] + "...<truncated>"
        LOGGER.warning("Taskqueue error body: %s", text)


def create_http_client(*, timeout: float, debug: bool = True) -> httpx.AsyncClient:
    event_hooks: dict[str, list] = {"request": [], "response": []}
    if debug:
        event_hooks["request"].append(log_request)
        event_hooks["response"].append(log_response)
    return httpx.AsyncClient(timeout=timeout, event_hooks=event_hooks)
