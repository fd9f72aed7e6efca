"""
Session gate: resolves the current identity from an auth provider and
redirects to the login route when there is none.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from taskboard.auth import AuthProvider, IdentityListener

logger = logging.getLogger(__name__)

LOGIN_ROUTE = "/login"


class Navigator(Protocol):
    def navigate(self, route: str) -> None:
        ...


class Session(Protocol):
    """What dependents of the gate get to see."""

    def current_identity(self) -> Optional[str]:
        ...

    def on_change(self, callback: IdentityListener) -> Callable[[], None]:
        ...


class RecordingNavigator:
    """Keeps navigation history; the web layer turns `pending` into a redirect."""

    def __init__(self):
        self.history: list[str] = []
        self.pending: Optional[str] = None

    def navigate(self, route: str) -> None:
        self.history.append(route)
        self.pending = route

    def take_pending(self) -> Optional[str]:
        route, self.pending = self.pending, None
        return route


class SessionGate:
    def __init__(
        self,
        provider: AuthProvider,
        navigator: Navigator,
        login_route: str = LOGIN_ROUTE,
    ):
        self.provider = provider
        self.navigator = navigator
        self.login_route = login_route
        self._identity: Optional[str] = None
        self._redirected = False
        self._listeners: list[IdentityListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_open(self) -> bool:
        return self._unsubscribe is not None

    def open(self) -> "SessionGate":
        if self._unsubscribe is None:
            self._unsubscribe = self.provider.subscribe(self._on_auth_state)
        return self

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def current_identity(self) -> Optional[str]:
        return self._identity

    def on_change(self, callback: IdentityListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def logout(self) -> None:
        """Signs out, then sends the caller to the login route."""
        try:
            self.provider.sign_out()
        except Exception:
            logger.exception("Sign-out failed for %s", self._identity)
            self._on_auth_state(None)
        if not self._redirected:
            self._redirect()

    def _redirect(self) -> None:
        self._redirected = True
        logger.info("No signed-in user; redirecting to %s", self.login_route)
        self.navigator.navigate(self.login_route)

    def _on_auth_state(self, identity: Optional[str]) -> None:
        if identity is None:
            if not self._redirected:
                self._redirect()
        else:
            self._redirected = False

        if identity == self._identity:
            return
        self._identity = identity
        for listener in list(self._listeners):
            listener(identity)
