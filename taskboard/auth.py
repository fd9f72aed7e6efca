"""
Authentication providers and session backends.

An AuthProvider is the per-session identity stream consumed by the session
gate. An AuthBackend exchanges sign-in credentials for session tokens and
builds providers for them. Both come in a Firebase flavour for production
and an in-memory flavour for tests and local runs.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import timedelta
from typing import Callable, Optional, Protocol

from firebase_admin import auth
from firebase_admin import exceptions as firebase_exceptions

from taskboard.errors import InvalidCredentialsError

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[str]], None]


class AuthProvider(Protocol):
    """Identity stream for a single signed-in session.

    `lookup` may block on the network and never notifies subscribers;
    `publish` notifies them and never blocks. `refresh` does both.
    """

    def subscribe(self, callback: IdentityListener) -> Callable[[], None]:
        ...

    def lookup(self) -> Optional[str]:
        ...

    def publish(self, identity: Optional[str]) -> None:
        ...

    def refresh(self) -> None:
        ...

    def sign_out(self) -> None:
        ...


class AuthBackend(Protocol):
    def create_session(self, id_token: str) -> str:
        ...

    def provider_for(self, session_token: str) -> AuthProvider:
        ...


class ObservableAuthState:
    """Holds the resolved identity and fans changes out to subscribers.

    New subscribers are called immediately with the current identity, then
    once per change.
    """

    def __init__(self, identity: Optional[str] = None):
        self._identity = identity
        self._listeners: list[IdentityListener] = []

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    def subscribe(self, callback: IdentityListener) -> Callable[[], None]:
        self._listeners.append(callback)
        callback(self._identity)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def publish(self, identity: Optional[str]) -> None:
        if identity == self._identity:
            return
        self._identity = identity
        for listener in list(self._listeners):
            listener(identity)


class InMemoryAuthProvider(ObservableAuthState):
    """Test double for an identity provider."""

    def sign_in(self, identity: str) -> None:
        self.publish(identity)

    def lookup(self) -> Optional[str]:
        return self.identity

    def refresh(self) -> None:
        return

    def sign_out(self) -> None:
        self.publish(None)


class InMemorySessionProvider(ObservableAuthState):
    """Identity of one session held by an InMemoryAuthBackend."""

    def __init__(self, backend: "InMemoryAuthBackend", session_token: str):
        self.backend = backend
        self.session_token = session_token
        super().__init__(backend.identity_for(session_token))

    def lookup(self) -> Optional[str]:
        return self.backend.identity_for(self.session_token)

    def refresh(self) -> None:
        self.publish(self.lookup())

    def sign_out(self) -> None:
        self.backend.end_session(self.session_token)
        self.publish(None)


class FirebaseAuthProvider(ObservableAuthState):
    """Identity resolved from a Firebase session cookie."""

    def __init__(self, session_cookie: str):
        self.session_cookie = session_cookie
        self._uid: Optional[str] = None
        super().__init__(self.lookup())

    def lookup(self) -> Optional[str]:
        if not self.session_cookie:
            return None
        try:
            claims = auth.verify_session_cookie(
                self.session_cookie, check_revoked=True
            )
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            logger.info("Session cookie rejected: %s", e)
            self._uid = None
            return None
        self._uid = claims.get("uid") or claims.get("sub")
        return claims.get("email") or self._uid

    def refresh(self) -> None:
        self.publish(self.lookup())

    def sign_out(self) -> None:
        uid = self._uid
        self.session_cookie = ""
        self._uid = None
        try:
            if uid:
                auth.revoke_refresh_tokens(uid)
        finally:
            self.publish(None)


class InMemoryAuthBackend:
    """Development backend: the sign-in credential is the identity itself.

    Sessions expire after `session_max_age`, like Firebase session cookies.
    Providers are built per request and hold no backend state of their own.
    """

    def __init__(
        self,
        session_max_age: timedelta = timedelta(days=5),
        clock: Callable[[], float] = time.time,
    ):
        self.session_max_age = session_max_age
        self.clock = clock
        # session token -> (identity, expires at)
        self.sessions: dict[str, tuple[str, float]] = {}

    def create_session(self, id_token: str) -> str:
        identity = (id_token or "").strip()
        if not identity:
            raise InvalidCredentialsError("An identity is required")
        logger.warning("In-memory sign-in for %s; do not use in production", identity)
        self._expire()
        session_token = uuid.uuid4().hex
        expires_at = self.clock() + self.session_max_age.total_seconds()
        self.sessions[session_token] = (identity, expires_at)
        return session_token

    def identity_for(self, session_token: str) -> Optional[str]:
        session = self.sessions.get(session_token)
        if session is None:
            return None
        identity, expires_at = session
        if expires_at <= self.clock():
            self.sessions.pop(session_token, None)
            return None
        return identity

    def end_session(self, session_token: str) -> None:
        self.sessions.pop(session_token, None)

    def _expire(self) -> None:
        now = self.clock()
        for session_token, (_, expires_at) in list(self.sessions.items()):
            if expires_at <= now:
                del self.sessions[session_token]

    def provider_for(self, session_token: str) -> InMemorySessionProvider:
        return InMemorySessionProvider(self, session_token)


class FirebaseAuthBackend:
    """Exchanges Firebase ID tokens for session cookies."""

    def __init__(self, session_max_age: timedelta = timedelta(days=5)):
        self.session_max_age = session_max_age

    def create_session(self, id_token: str) -> str:
        if not id_token:
            raise InvalidCredentialsError("An ID token is required")
        try:
            return auth.create_session_cookie(
                id_token, expires_in=self.session_max_age
            )
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            logger.info("ID token rejected: %s", e)
            raise InvalidCredentialsError("Invalid ID token") from e

    def provider_for(self, session_token: str) -> FirebaseAuthProvider:
        return FirebaseAuthProvider(session_token)
