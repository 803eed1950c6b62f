from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Protocol

from appauth.constants import LOGGER
from appauth.env import is_truthy

LOGIN_HINT_ENV = "APPAUTH_LOGIN_HINT"
RESTRICTIONS_PENDING_ENV = "APPAUTH_RESTRICTIONS_PENDING"


@dataclass(frozen=True)
class Restrictions:
    login_hint: str | None = None
    pending: bool = False


RestrictionsListener = Callable[[Restrictions], None]


class ManagedConfiguration(Protocol):
    def current(self) -> Restrictions: ...

    def subscribe(self, listener: RestrictionsListener) -> Callable[[], None]: ...


class _Subscribers:
    def __init__(self) -> None:
        self._listeners: list[RestrictionsListener] = []

    def subscribe(self, listener: RestrictionsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, restrictions: Restrictions) -> None:
        for listener in list(self._listeners):
            listener(restrictions)


class StaticManagedConfiguration(_Subscribers):
    def __init__(self, restrictions: Restrictions | None = None) -> None:
        super().__init__()
        self._restrictions = restrictions or Restrictions()

    def current(self) -> Restrictions:
        return self._restrictions

    def update(self, restrictions: Restrictions) -> None:
        self._restrictions = restrictions
        LOGGER.info("Managed configuration changed (login_hint set: %s)", restrictions.login_hint is not None)
        self.publish(restrictions)


class EnvManagedConfiguration(_Subscribers):
    """Reads administrator-supplied restrictions from the environment on each call."""

    def current(self) -> Restrictions:
        hint = os.getenv(LOGIN_HINT_ENV, "").strip() or None
        return Restrictions(
            login_hint=hint,
            pending=is_truthy(os.getenv(RESTRICTIONS_PENDING_ENV)),
        )

    def reload(self) -> None:
        self.publish(self.current())
