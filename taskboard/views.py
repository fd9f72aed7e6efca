"""
Per-session views: one session gate and task board for each signed-in
browser session, kept for the lifetime of the session cookie.

The registry is only touched from the event loop. Blocking identity lookups
run in a worker thread, and their results are published back on the loop so
gates and boards never change state from another thread.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Dict, Optional

from taskboard.auth import AuthBackend, AuthProvider
from taskboard.board import TaskBoard
from taskboard.db import TaskStore
from taskboard.session_gate import LOGIN_ROUTE, RecordingNavigator, SessionGate

logger = logging.getLogger(__name__)


@dataclass
class BoardView:
    provider: AuthProvider
    navigator: RecordingNavigator
    gate: SessionGate
    board: TaskBoard

    @property
    def identity(self) -> Optional[str]:
        return self.gate.current_identity()

    def close(self) -> None:
        self.board.close()
        self.gate.close()


class ViewRegistry:
    def __init__(
        self,
        auth_backend: AuthBackend,
        store: TaskStore,
        login_route: str = LOGIN_ROUTE,
        max_idle: Optional[timedelta] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.auth_backend = auth_backend
        self.store = store
        self.login_route = login_route
        self.max_idle = max_idle
        self.clock = clock
        self.views: Dict[str, BoardView] = {}
        self._last_seen: Dict[str, float] = {}

    async def open(self, session_token: str) -> Optional[BoardView]:
        """Returns the view for a session, building it on first use.

        Sessions without an identity get no view.
        """
        existing = self.views.get(session_token)
        if existing is not None:
            return existing
        provider = await asyncio.to_thread(
            self.auth_backend.provider_for, session_token
        )
        # Another request for the same session may have opened it meanwhile.
        existing = self.views.get(session_token)
        if existing is not None:
            return existing
        navigator = RecordingNavigator()
        gate = SessionGate(provider, navigator, login_route=self.login_route).open()
        if gate.current_identity() is None:
            gate.close()
            logger.debug("Session has no identity; no view opened")
            return None
        board = TaskBoard(gate, self.store)
        view = BoardView(provider=provider, navigator=navigator, gate=gate, board=board)
        self.views[session_token] = view
        self._last_seen[session_token] = self.clock()
        logger.info("Opened view for %s", view.identity)
        return view

    async def get(self, session_token: Optional[str]) -> Optional[BoardView]:
        """Returns the view for a session if it is still signed in.

        Views whose identity is gone are torn down.
        """
        if not session_token:
            return None
        self.evict_idle()
        view = self.views.get(session_token)
        if view is None:
            return await self.open(session_token)
        identity = await asyncio.to_thread(view.provider.lookup)
        if self.views.get(session_token) is not view:
            # Closed by a logout while the lookup ran.
            return None
        view.provider.publish(identity)
        if view.identity is None:
            self.close(session_token)
            return None
        self._last_seen[session_token] = self.clock()
        return view

    def close(self, session_token: str) -> None:
        view = self.views.pop(session_token, None)
        self._last_seen.pop(session_token, None)
        if view is None:
            return
        view.close()
        logger.info("Closed view for %s", view.identity)

    def evict_idle(self) -> None:
        if self.max_idle is None:
            return
        cutoff = self.clock() - self.max_idle.total_seconds()
        for session_token, last_seen in list(self._last_seen.items()):
            if last_seen < cutoff:
                logger.info("Evicting idle view")
                self.close(session_token)

    async def logout(self, session_token: Optional[str]) -> str:
        """Signs the session out and tears its view down; returns the redirect route."""
        view = await self.get(session_token)
        if view is None:
            return self.login_route
        view.gate.logout()
        route = view.navigator.take_pending() or self.login_route
        self.close(session_token)
        return route

    def close_all(self) -> None:
        for session_token in list(self.views):
            self.close(session_token)
