from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv

from appauth.constants import CLIENT_ID
from appauth.constants import LOGGER as AUTH_LOGGER
from appauth.env import is_truthy
from appauth.session_store import DEFAULT_SESSION_PATH
from taskqueue.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_LEASE_SECONDS,
    DEFAULT_PROJECT,
    DEFAULT_QUEUE,
    DEFAULT_TIMEOUT_SECONDS,
    LOGGER,
)


@dataclass(frozen=True)
class Settings:
    client_id: str = CLIENT_ID
    session_path: str = DEFAULT_SESSION_PATH
    base_url: str = DEFAULT_BASE_URL
    project: str = DEFAULT_PROJECT
    queue: str = DEFAULT_QUEUE
    lease_seconds: int = DEFAULT_LEASE_SECONDS
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    debug: bool = True


def _get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer value.")


def _get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number.")


def load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    load_dotenv(env_path, override=True)


def load_settings() -> Settings:
    lease_seconds = _get_env_int("TASKQUEUE_LEASE_SECS", DEFAULT_LEASE_SECONDS)
    if lease_seconds <= 0:
        raise RuntimeError("TASKQUEUE_LEASE_SECS must be a positive integer.")

    base_url = os.getenv("TASKQUEUE_BASE_URL", "").strip() or DEFAULT_BASE_URL
    parsed = urlparse(base_url)
    if parsed.scheme != "https" or not parsed.netloc:
        raise RuntimeError("TASKQUEUE_BASE_URL must be an HTTPS URL.")

    return Settings(
        client_id=os.getenv("APPAUTH_CLIENT_ID", "").strip() or CLIENT_ID,
        session_path=os.getenv("APPAUTH_SESSION_PATH", "").strip() or DEFAULT_SESSION_PATH,
        base_url=base_url.rstrip("/"),
        project=os.getenv("TASKQUEUE_PROJECT", "").strip() or DEFAULT_PROJECT,
        queue=os.getenv("TASKQUEUE_NAME", "").strip() or DEFAULT_QUEUE,
        lease_seconds=lease_seconds,
        timeout=_get_env_float("TASKQUEUE_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        debug=is_truthy(os.getenv("TASKQUEUE_DEBUG", "1")),
    )


def setup_logging(settings: Settings) -> bool:
    if settings.debug:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
        AUTH_LOGGER.setLevel(logging.INFO)
    return settings.debug
