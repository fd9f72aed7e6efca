"""
Task store abstraction: Firestore, SQL (SQLAlchemy) and an in-memory test
implementation.

Every store speaks in stored document fields (see shared.firebase_constants)
and returns shared.types.Task instances from queries.
"""

from __future__ import annotations

import copy
import time
import uuid
from typing import Any, Dict, Protocol

from firebase_admin import firestore
from google.api_core import exceptions
from google.cloud.firestore_v1.base_query import FieldFilter
from sqlalchemy import Boolean, Column, Float, String, Text, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.firebase_constants import (
    FIELD_COMPLETED,
    FIELD_DESCRIPTION,
    FIELD_OWNER_IDENTITY,
    FIELD_PRIORITY,
    FIELD_TITLE,
    TASKS_COLLECTION,
)
from shared.types import Priority, Task
from taskboard.errors import TaskNotFoundError


class TaskStore(Protocol):
    """Interface for the remote document store holding tasks."""

    def list_tasks(self, owner_identity: str) -> list[Task]:
        ...

    def create_task(self, fields: dict) -> str:
        ...

    def update_task(self, task_id: str, fields: dict) -> None:
        ...

    def delete_task(self, task_id: str) -> None:
        ...


class InMemoryTaskStore:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.documents: Dict[str, dict] = {}

    def list_tasks(self, owner_identity: str) -> list[Task]:
        return [
            Task.from_document(task_id, data)
            for task_id, data in self.documents.items()
            if data.get(FIELD_OWNER_IDENTITY) == owner_identity
        ]

    def create_task(self, fields: dict) -> str:
        task_id = uuid.uuid4().hex
        self.documents[task_id] = copy.deepcopy(fields)
        return task_id

    def update_task(self, task_id: str, fields: dict) -> None:
        document = self.documents.get(task_id)
        if document is None:
            raise TaskNotFoundError(task_id)
        document.update(copy.deepcopy(fields))

    def delete_task(self, task_id: str) -> None:
        self.documents.pop(task_id, None)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.documents.clear()


class FirestoreTaskStore:
    """Cloud Firestore implementation backed by the firebase_admin client."""

    def __init__(self, client: Any = None, collection: str = TASKS_COLLECTION):
        self.client = client if client is not None else firestore.client()
        self.collection = collection

    def _tasks(self):
        return self.client.collection(self.collection)

    def list_tasks(self, owner_identity: str) -> list[Task]:
        query = self._tasks().where(
            filter=FieldFilter(FIELD_OWNER_IDENTITY, "==", owner_identity)
        )
        return [
            Task.from_document(snapshot.id, snapshot.to_dict() or {})
            for snapshot in query.stream()
        ]

    def create_task(self, fields: dict) -> str:
        _, doc_ref = self._tasks().add(fields)
        return doc_ref.id

    def update_task(self, task_id: str, fields: dict) -> None:
        try:
            self._tasks().document(task_id).update(fields)
        except exceptions.NotFound as e:
            raise TaskNotFoundError(task_id) from e

    def delete_task(self, task_id: str) -> None:
        self._tasks().document(task_id).delete()


class SqlTaskStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlTaskStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_task(self, row: "TaskRow") -> Task:
        return Task(
            id=row.id,
            title=row.title,
            description=row.description or "",
            priority=Priority.parse(row.priority),
            completed=bool(row.completed),
            owner_identity=row.owner_identity,
        )

    def list_tasks(self, owner_identity: str) -> list[Task]:
        with self.Session() as session:
            stmt = (
                select(TaskRow)
                .where(TaskRow.owner_identity == owner_identity)
                .order_by(TaskRow.created_at.asc())
            )
            return [self._to_task(row) for row in session.execute(stmt).scalars()]

    def create_task(self, fields: dict) -> str:
        now = time.time()
        task_id = uuid.uuid4().hex
        with self.Session() as session:
            row = TaskRow(
                id=task_id,
                title=fields.get(FIELD_TITLE, ""),
                description=fields.get(FIELD_DESCRIPTION) or "",
                priority=Priority.parse(fields.get(FIELD_PRIORITY)).value,
                completed=bool(fields.get(FIELD_COMPLETED, False)),
                owner_identity=fields[FIELD_OWNER_IDENTITY],
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
        return task_id

    def update_task(self, task_id: str, fields: dict) -> None:
        with self.Session() as session:
            row = session.get(TaskRow, task_id)
            if not row:
                raise TaskNotFoundError(task_id)
            if FIELD_TITLE in fields:
                row.title = fields[FIELD_TITLE]
            if FIELD_DESCRIPTION in fields:
                row.description = fields[FIELD_DESCRIPTION] or ""
            if FIELD_PRIORITY in fields:
                row.priority = Priority.parse(fields[FIELD_PRIORITY]).value
            if FIELD_COMPLETED in fields:
                row.completed = bool(fields[FIELD_COMPLETED])
            row.updated_at = time.time()
            session.commit()

    def delete_task(self, task_id: str) -> None:
        with self.Session() as session:
            row = session.get(TaskRow, task_id)
            if not row:
                return
            session.delete(row)
            session.commit()


Base = declarative_base()


class TaskRow(Base):
    __tablename__ = "tasks"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    priority = Column(String, nullable=False, default=Priority.LOW.value)
    completed = Column(Boolean, nullable=False, default=False)
    owner_identity = Column(String, nullable=False, index=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)
