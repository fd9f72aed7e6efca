"""
Task board: the owner-scoped task list and its mutations.

The board keeps an in-memory mirror of the remote store. Every mutation is a
single-record write; the mirror changes only once the write is confirmed,
except for deletes, which always drop the entry from the list. Store failures
are logged and reported as a None/False result.

Blocking store calls run in a worker thread so the event loop stays
responsive. Results that arrive after the board was closed or re-scoped to a
different identity are dropped.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Iterator, Optional

from shared.firebase_constants import (
    FIELD_COMPLETED,
    FIELD_DESCRIPTION,
    FIELD_PRIORITY,
    FIELD_TITLE,
)
from shared.types import Priority, Task
from taskboard.db import TaskStore
from taskboard.errors import (
    BoardBusyError,
    NotAuthenticatedError,
    UnknownTaskError,
)
from taskboard.session_gate import Session

logger = logging.getLogger(__name__)


class BoardState(enum.Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    LOADING = "LOADING"
    READY = "READY"


@dataclass
class TaskForm:
    title: str = ""
    description: str = ""
    priority: Priority = Priority.LOW
    editing_id: Optional[str] = None

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None


class TaskBoard:
    def __init__(self, session: Session, store: TaskStore):
        self.session = session
        self.store = store
        self.form = TaskForm()
        self._tasks: list[Task] = []
        self._in_flight: set[str] = set()
        self._loading: Optional[asyncio.Future] = None
        self._generation = 0
        self._closed = False
        self._identity: Optional[str] = None
        self.state = BoardState.UNAUTHENTICATED
        self._unsubscribe: Optional[Callable[[], None]] = session.on_change(
            self._on_identity_change
        )
        self._on_identity_change(session.current_identity())

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def closed(self) -> bool:
        return self._closed

    def _find(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def get(self, task_id: str) -> Task:
        task = self._find(task_id)
        if task is None:
            raise UnknownTaskError(task_id)
        return task

    def close(self) -> None:
        """Detaches from the session; pending results are dropped from now on."""
        self._closed = True
        self._generation += 1
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_identity_change(self, identity: Optional[str]) -> None:
        if identity == self._identity and self.state != BoardState.UNAUTHENTICATED:
            return
        self._generation += 1
        self._identity = identity
        self._tasks = []
        self.form = TaskForm()
        self._loading = None
        self.state = BoardState.LOADING if identity else BoardState.UNAUTHENTICATED

    def _require_identity(self) -> str:
        if self._closed or not self._identity:
            raise NotAuthenticatedError("No signed-in user")
        return self._identity

    @contextmanager
    def _guard(self, action: str) -> Iterator[int]:
        if action in self._in_flight:
            raise BoardBusyError(action)
        self._in_flight.add(action)
        try:
            yield self._generation
        finally:
            self._in_flight.discard(action)

    def _is_stale(self, generation: int, action: str) -> bool:
        if self._closed or generation != self._generation:
            logger.debug("Dropping stale result of %s", action)
            return True
        return False

    async def _call_store(self, action: str, fn, *args):
        """Runs a blocking store call; returns (ok, result)."""
        try:
            return True, await asyncio.to_thread(fn, *args)
        except Exception:
            logger.exception("Task store call failed: %s", action)
            return False, None

    def _replace(self, updated: Task) -> None:
        self._tasks = [updated if t.id == updated.id else t for t in self._tasks]

    async def load(self) -> Optional[list[Task]]:
        """Replaces the list with every task owned by the current identity.

        Callers arriving while a load is in flight wait for that same load.
        """
        identity = self._require_identity()
        if self._loading is None or self._loading.done():
            self._loading = asyncio.ensure_future(self._load(identity))
        return await asyncio.shield(self._loading)

    async def _load(self, identity: str) -> Optional[list[Task]]:
        generation = self._generation
        ok, tasks = await self._call_store("load", self.store.list_tasks, identity)
        if not ok or self._is_stale(generation, "load"):
            return None
        self._tasks = [t for t in tasks if t.owner_identity == identity]
        self.state = BoardState.READY
        logger.info("Loaded %d tasks for %s", len(self._tasks), identity)
        return self.tasks

    async def ensure_loaded(self) -> list[Task]:
        if self.state == BoardState.LOADING:
            await self.load()
        return self.tasks

    async def create(
        self,
        title: str,
        description: str = "",
        priority: Priority | str = Priority.LOW,
    ) -> Optional[Task]:
        identity = self._require_identity()
        title = (title or "").strip()
        if not title:
            raise ValueError("Task title must not be empty")
        draft = Task(
            id="",
            title=title,
            description=description or "",
            priority=Priority.parse(priority),
            completed=False,
            owner_identity=identity,
        )
        with self._guard("create") as generation:
            ok, task_id = await self._call_store(
                "create", self.store.create_task, draft.to_document()
            )
            if not ok or self._is_stale(generation, "create"):
                return None
            task = replace(draft, id=task_id)
            self._tasks.append(task)
            self.form = TaskForm()
            return task

    async def update(
        self,
        task_id: str,
        title: str,
        description: str = "",
        priority: Priority | str = Priority.LOW,
    ) -> Optional[Task]:
        self._require_identity()
        self.get(task_id)
        title = (title or "").strip()
        if not title:
            raise ValueError("Task title must not be empty")
        fields = {
            FIELD_TITLE: title,
            FIELD_DESCRIPTION: description or "",
            FIELD_PRIORITY: Priority.parse(priority).value,
        }
        action = f"update:{task_id}"
        with self._guard(action) as generation:
            ok, _ = await self._call_store(
                action, self.store.update_task, task_id, fields
            )
            if not ok or self._is_stale(generation, action):
                return None
            latest = self._find(task_id)
            if latest is None:
                return None
            updated = latest.with_fields(fields)
            self._replace(updated)
            if self.form.editing_id == task_id:
                self.form = TaskForm()
            return updated

    async def delete(self, task_id: str) -> bool:
        """Removes the task; returns whether the remote delete succeeded.

        The entry leaves the in-memory list either way.
        """
        self._require_identity()
        self.get(task_id)
        action = f"delete:{task_id}"
        with self._guard(action) as generation:
            ok, _ = await self._call_store(action, self.store.delete_task, task_id)
            if self._is_stale(generation, action):
                return ok
            self._tasks = [t for t in self._tasks if t.id != task_id]
            if self.form.editing_id == task_id:
                self.form = TaskForm()
            return ok

    async def toggle(self, task_id: str) -> Optional[Task]:
        self._require_identity()
        current = self.get(task_id)
        fields = {FIELD_COMPLETED: not current.completed}
        action = f"toggle:{task_id}"
        with self._guard(action) as generation:
            ok, _ = await self._call_store(
                action, self.store.update_task, task_id, fields
            )
            if not ok or self._is_stale(generation, action):
                return None
            # An edit may have landed while the write was in flight.
            latest = self._find(task_id)
            if latest is None:
                return None
            updated = latest.with_fields(fields)
            self._replace(updated)
            return updated

    def begin_edit(self, task_id: str) -> TaskForm:
        task = self.get(task_id)
        self.form = TaskForm(
            title=task.title,
            description=task.description,
            priority=task.priority,
            editing_id=task.id,
        )
        return self.form

    def cancel_edit(self) -> TaskForm:
        self.form = TaskForm()
        return self.form

    async def submit(
        self,
        title: Optional[str] = None,
        description: Optional[str] = None,
        priority: Priority | str | None = None,
    ) -> Optional[Task]:
        """Submits the form: update in edit mode, create otherwise.

        Arguments override the current form fields.
        """
        if title is not None:
            self.form.title = title
        if description is not None:
            self.form.description = description
        if priority is not None:
            self.form.priority = Priority.parse(priority)
        form = self.form
        if form.is_editing:
            return await self.update(
                form.editing_id, form.title, form.description, form.priority
            )
        return await self.create(form.title, form.description, form.priority)
