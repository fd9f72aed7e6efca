"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from datetime import timedelta

import firebase_admin
from firebase_admin import credentials

from taskboard.auth import AuthBackend, FirebaseAuthBackend, InMemoryAuthBackend
from taskboard.config import Settings, get_settings
from taskboard.db import FirestoreTaskStore, InMemoryTaskStore, SqlTaskStore, TaskStore
from taskboard.views import ViewRegistry

logger = logging.getLogger(__name__)

_task_store: TaskStore | None = None
_auth_backend: AuthBackend | None = None
_view_registry: ViewRegistry | None = None


def _ensure_firebase_app(settings: Settings) -> None:
    try:
        firebase_admin.get_app()
    except ValueError:
        cred = (
            credentials.Certificate(settings.firebase_credentials_path)
            if settings.firebase_credentials_path
            else None
        )
        firebase_admin.initialize_app(
            cred, options={"projectId": settings.firebase_project_id}
        )


def _use_firebase(settings: Settings) -> bool:
    return not settings.use_in_memory_backends and bool(settings.firebase_project_id)


def get_task_store() -> TaskStore:
    """
    Return a singleton task store so data persists across requests.
    """
    global _task_store
    if _task_store:
        return _task_store

    settings = get_settings()
    if settings.use_in_memory_backends:
        _task_store = InMemoryTaskStore()
    elif settings.database_url:
        _task_store = SqlTaskStore(settings.database_url)
    elif _use_firebase(settings):
        _ensure_firebase_app(settings)
        _task_store = FirestoreTaskStore(collection=settings.tasks_collection)
    else:
        logger.warning("No task database configured; using in-memory store")
        _task_store = InMemoryTaskStore()
    return _task_store


def get_auth_backend() -> AuthBackend:
    global _auth_backend
    if _auth_backend:
        return _auth_backend

    settings = get_settings()
    if _use_firebase(settings):
        _ensure_firebase_app(settings)
        _auth_backend = FirebaseAuthBackend(
            session_max_age=timedelta(days=settings.session_max_age_days)
        )
    else:
        logger.warning("Firebase is not configured; using in-memory sign-in")
        _auth_backend = InMemoryAuthBackend(
            session_max_age=timedelta(days=settings.session_max_age_days)
        )
    return _auth_backend


def get_view_registry() -> ViewRegistry:
    global _view_registry
    if _view_registry:
        return _view_registry

    settings = get_settings()
    _view_registry = ViewRegistry(
        auth_backend=get_auth_backend(),
        store=get_task_store(),
        login_route=settings.login_route,
        max_idle=timedelta(days=settings.session_max_age_days),
    )
    return _view_registry
