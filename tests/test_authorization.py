import urllib.parse

import pytest

from appauth.authorization import AuthorizationInitiator
from appauth.constants import AUTHORIZATION_ENDPOINT
from appauth.errors import RestrictionsPendingError
from appauth.redirect import RedirectState
from appauth.restrictions import Restrictions, StaticManagedConfiguration
from tests.flow_helpers import RecordingUserAgent, build_flow


def _query(url: str) -> dict[str, list[str]]:
    return urllib.parse.parse_qs(urllib.parse.urlparse(url).query)


def test_begin_authorization_opens_user_agent() -> None:
    flow = build_flow()
    agent = RecordingUserAgent()
    initiator = AuthorizationInitiator(flow["handler"], user_agent=agent)

    request = initiator.begin_authorization()

    assert len(agent.urls) == 1
    assert agent.urls[0].startswith(AUTHORIZATION_ENDPOINT)
    assert _query(agent.urls[0])["state"] == [request.state]
    assert "login_hint" not in _query(agent.urls[0])
    assert flow["handler"].state is RedirectState.PENDING
    assert flow["handler"].pending_request is request


def test_begin_authorization_reads_login_hint_from_configuration() -> None:
    flow = build_flow()
    agent = RecordingUserAgent()
    configuration = StaticManagedConfiguration(Restrictions(login_hint="user@example.com"))
    initiator = AuthorizationInitiator(flow["handler"], user_agent=agent, configuration=configuration)

    request = initiator.begin_authorization()

    assert request.login_hint == "user@example.com"
    assert _query(agent.urls[0])["login_hint"] == ["user@example.com"]


def test_explicit_login_hint_wins() -> None:
    flow = build_flow()
    agent = RecordingUserAgent()
    configuration = StaticManagedConfiguration(Restrictions(login_hint="admin@example.com"))
    initiator = AuthorizationInitiator(flow["handler"], user_agent=agent, configuration=configuration)

    request = initiator.begin_authorization("user@example.com")

    assert request.login_hint == "user@example.com"


def test_configuration_change_is_used_by_next_attempt() -> None:
    flow = build_flow()
    agent = RecordingUserAgent()
    configuration = StaticManagedConfiguration()
    initiator = AuthorizationInitiator(flow["handler"], user_agent=agent, configuration=configuration)
    seen: list[Restrictions] = []
    configuration.subscribe(seen.append)

    first = initiator.begin_authorization()
    configuration.update(Restrictions(login_hint="new@example.com"))
    second = initiator.begin_authorization()

    assert first.login_hint is None
    assert second.login_hint == "new@example.com"
    assert seen == [Restrictions(login_hint="new@example.com")]
    assert first.state != second.state


def test_pending_restrictions_block_authorization() -> None:
    flow = build_flow()
    agent = RecordingUserAgent()
    configuration = StaticManagedConfiguration(Restrictions(pending=True))
    initiator = AuthorizationInitiator(flow["handler"], user_agent=agent, configuration=configuration)

    with pytest.raises(RestrictionsPendingError):
        initiator.begin_authorization()

    assert agent.urls == []
    assert flow["handler"].state is RedirectState.IDLE
