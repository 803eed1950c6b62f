from __future__ import annotations

import httpx

from appauth.authorization import AuthorizationInitiator, UserAgent
from appauth.constants import LOGGER
from appauth.errors import AppAuthError
from appauth.exchanger import TokenExchanger
from appauth.guard import SessionGuard
from appauth.models import AuthorizationRequest, Session
from appauth.redirect import HandledRedirect, RedirectEvent, RedirectHandler
from appauth.restrictions import EnvManagedConfiguration, ManagedConfiguration
from appauth.session_store import FileSessionStore, SessionStore
from appauth.state import SessionState
from taskqueue.client import TaskQueueClient, TaskQueueConfig, TaskResult
from taskqueue.env import Settings, load_env, load_settings, setup_logging
from taskqueue.http import create_http_client


class TaskQueueApp:
    """Host-facing wiring of the sign-in flow and the task queue call.

    ``api_call_enabled`` and ``sign_out_enabled`` mirror whether the stored
    session is authorized and are re-evaluated on every session change.
    """

    def __init__(
        self,
        *,
        state: SessionState,
        initiator: AuthorizationInitiator,
        redirect_handler: RedirectHandler,
        guard: SessionGuard,
        resource_client: TaskQueueClient,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.state = state
        self.initiator = initiator
        self.redirect_handler = redirect_handler
        self.guard = guard
        self.resource_client = resource_client
        self._http_client = http_client
        self.api_call_enabled = False
        self.sign_out_enabled = False
        self.state.add_listener(self._enable_post_authorization_flows)

    def _enable_post_authorization_flows(self, session: Session | None) -> None:
        authorized = session is not None and session.is_authorized
        self.api_call_enabled = authorized
        self.sign_out_enabled = authorized

    async def start(self) -> Session | None:
        return await self.state.restore()

    def authorize(self, login_hint: str | None = None) -> AuthorizationRequest:
        return self.initiator.begin_authorization(login_hint)

    def on_redirect(self, event: RedirectEvent) -> HandledRedirect | None:
        return self.redirect_handler.handle(event)

    async def make_api_call(self) -> TaskResult:
        session = self.state.current
        if session is None or not session.is_authorized:
            return TaskResult.failed("not_authorized", "Not signed in")

        async def consume(
            access_token: str | None,
            id_token: str | None,
            error: AppAuthError | None,
        ) -> TaskResult:
            del id_token
            if error is not None:
                LOGGER.warning("Cannot call task queue without a fresh token: %s", error)
                return TaskResult.failed("token_error", str(error))
            return await self.resource_client.fetch_and_consume_task(access_token)

        return await self.guard.with_fresh_token(session, consume)

    async def sign_out(self) -> None:
        await self.state.sign_out()

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()


def create_app(
    settings: Settings | None = None,
    *,
    store: SessionStore | None = None,
    user_agent: UserAgent | None = None,
    configuration: ManagedConfiguration | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> TaskQueueApp:
    if settings is None:
        load_env()
        settings = load_settings()
        setup_logging(settings)

    client = http_client or create_http_client(timeout=settings.timeout, debug=settings.debug)
    state = SessionState(store or FileSessionStore(settings.session_path))
    exchanger = TokenExchanger(state, client=client)
    handler = RedirectHandler(exchanger)
    initiator = AuthorizationInitiator(
        handler,
        user_agent=user_agent,
        configuration=configuration or EnvManagedConfiguration(),
        client_id=settings.client_id,
    )
    guard = SessionGuard(state, client=client)
    resource_client = TaskQueueClient(
        TaskQueueConfig(
            project=settings.project,
            queue=settings.queue,
            lease_seconds=settings.lease_seconds,
            base_url=settings.base_url,
        ),
        client=client,
    )
    return TaskQueueApp(
        state=state,
        initiator=initiator,
        redirect_handler=handler,
        guard=guard,
        resource_client=resource_client,
        http_client=client if http_client is None else None,
    )
