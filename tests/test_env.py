import subprocess
import sys
from pathlib import Path

import pytest

from appauth.constants import CLIENT_ID
from appauth.env import is_truthy
from appauth.restrictions import EnvManagedConfiguration, Restrictions
from taskqueue.env import load_settings

ROOT = Path(__file__).resolve().parent.parent

ENV_KEYS = (
    "APPAUTH_CLIENT_ID",
    "APPAUTH_SESSION_PATH",
    "APPAUTH_LOGIN_HINT",
    "APPAUTH_RESTRICTIONS_PENDING",
    "TASKQUEUE_BASE_URL",
    "TASKQUEUE_PROJECT",
    "TASKQUEUE_NAME",
    "TASKQUEUE_LEASE_SECS",
    "TASKQUEUE_TIMEOUT",
    "TASKQUEUE_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    settings = load_settings()

    assert settings.client_id == CLIENT_ID
    assert settings.lease_seconds == 60
    assert settings.queue == "pull-queue"
    assert settings.session_path == ".appauth/auth_state.json"
    assert settings.debug is True


def test_overrides(monkeypatch) -> None:
    monkeypatch.setenv("TASKQUEUE_LEASE_SECS", "120")
    monkeypatch.setenv("TASKQUEUE_PROJECT", "my-project")
    monkeypatch.setenv("TASKQUEUE_BASE_URL", "https://tasks.example.com/v1/")
    monkeypatch.setenv("TASKQUEUE_DEBUG", "0")

    settings = load_settings()

    assert settings.lease_seconds == 120
    assert settings.project == "my-project"
    assert settings.base_url == "https://tasks.example.com/v1"
    assert settings.debug is False


def test_lease_seconds_must_be_integer(monkeypatch) -> None:
    monkeypatch.setenv("TASKQUEUE_LEASE_SECS", "soon")

    with pytest.raises(RuntimeError, match="TASKQUEUE_LEASE_SECS must be an integer"):
        load_settings()


def test_lease_seconds_must_be_positive(monkeypatch) -> None:
    monkeypatch.setenv("TASKQUEUE_LEASE_SECS", "0")

    with pytest.raises(RuntimeError, match="positive"):
        load_settings()


def test_base_url_must_be_https(monkeypatch) -> None:
    monkeypatch.setenv("TASKQUEUE_BASE_URL", "http://tasks.example.com")

    with pytest.raises(RuntimeError, match="HTTPS"):
        load_settings()


def test_is_truthy() -> None:
    assert is_truthy("Yes") is True
    assert is_truthy(" on ") is True
    assert is_truthy("0") is False
    assert is_truthy(None) is False


def test_appauth_imports_without_taskqueue() -> None:
    code = (
        "import sys\n"
        "import appauth.restrictions, appauth.authorization, appauth.guard\n"
        "assert not [name for name in sys.modules if name.split('.')[0] == 'taskqueue'], sys.modules\n"
    )

    completed = subprocess.run([sys.executable, "-c", code], cwd=ROOT, capture_output=True, text=True)

    assert completed.returncode == 0, completed.stderr


def test_env_managed_configuration(monkeypatch) -> None:
    configuration = EnvManagedConfiguration()
    assert configuration.current() == Restrictions()

    monkeypatch.setenv("APPAUTH_LOGIN_HINT", "user@example.com")
    monkeypatch.setenv("APPAUTH_RESTRICTIONS_PENDING", "true")
    seen: list[Restrictions] = []
    unsubscribe = configuration.subscribe(seen.append)
    configuration.reload()
    unsubscribe()
    configuration.reload()

    assert seen == [Restrictions(login_hint="user@example.com", pending=True)]
