from __future__ import annotations

from typing import Callable

from appauth.constants import LOGGER
from appauth.models import Session
from appauth.session_store import SessionStore

SessionListener = Callable[["Session | None"], None]


class SessionState:
    """In-memory view of the stored session.

    ``generation`` increases on every sign-out. Work that awaits the network
    captures it first and hands it back to :meth:`replace`; a result for an
    older generation is dropped instead of resurrecting a cleared session.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self._session: Session | None = None
        self._generation = 0
        self._listeners: list[SessionListener] = []

    @property
    def current(self) -> Session | None:
        return self._session

    @property
    def generation(self) -> int:
        return self._generation

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def restore(self) -> Session | None:
        self._session = await self._store.load()
        self._notify()
        return self._session

    async def replace(self, session: Session, *, generation: int | None = None) -> bool:
        if generation is not None and generation != self._generation:
            LOGGER.info(
                "Discarding stale session update (generation %s, current %s)",
                generation,
                self._generation,
            )
            return False

        await self._store.save(session)
        self._session = session
        self._notify()
        return True

    async def sign_out(self) -> None:
        self._generation += 1
        self._session = None
        await self._store.clear()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._session)
