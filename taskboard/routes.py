"""
HTTP routes for the task board JSON API.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from taskboard.auth import AuthBackend
from taskboard.config import Settings, get_settings
from taskboard.dependencies import get_auth_backend, get_view_registry
from taskboard.errors import (
    BoardBusyError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    UnknownTaskError,
)
from taskboard.schemas import (
    BoardResponse,
    DeleteResponse,
    FormPayload,
    FormResponse,
    HealthResponse,
    LogoutResponse,
    SessionRequest,
    SessionResponse,
    TaskPayload,
    TaskResponse,
)
from taskboard.views import BoardView, ViewRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

STORE_FAILURE_DETAIL = "Task store write failed"


def session_token(request: Request, settings: Settings = Depends(get_settings)):
    return request.cookies.get(settings.session_cookie_name)


async def get_view(
    token: str | None = Depends(session_token),
    registry: ViewRegistry = Depends(get_view_registry),
) -> BoardView:
    view = await registry.get(token)
    if view is None:
        raise HTTPException(status_code=401, detail="Not signed in")
    return view


@contextmanager
def board_errors():
    """Translates task board exceptions into HTTP errors."""
    try:
        yield
    except NotAuthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except UnknownTaskError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except BoardBusyError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


def set_session_cookie(response: Response, settings: Settings, token: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=int(timedelta(days=settings.session_max_age_days).total_seconds()),
        httponly=True,
        samesite="lax",
    )


@router.get("/healthz", response_model=HealthResponse)
def healthz():
    return HealthResponse(status="ok")


@router.post("/session", response_model=SessionResponse)
async def create_session(
    payload: SessionRequest,
    response: Response,
    settings: Settings = Depends(get_settings),
    auth_backend: AuthBackend = Depends(get_auth_backend),
    registry: ViewRegistry = Depends(get_view_registry),
):
    """
    Exchange a sign-in credential for a session cookie.
    """
    try:
        token = await asyncio.to_thread(
            auth_backend.create_session, payload.id_token
        )
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    view = await registry.get(token)
    if view is None:
        raise HTTPException(status_code=401, detail="Sign-in was not accepted")
    set_session_cookie(response, settings, token)
    return SessionResponse(identity=view.identity)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    token: str | None = Depends(session_token),
    settings: Settings = Depends(get_settings),
    registry: ViewRegistry = Depends(get_view_registry),
):
    redirect = await registry.logout(token)
    response.delete_cookie(settings.session_cookie_name)
    return LogoutResponse(redirect=redirect)


@router.get("/board", response_model=BoardResponse)
async def get_board(view: BoardView = Depends(get_view)):
    with board_errors():
        await view.board.ensure_loaded()
    return BoardResponse.from_board(view.board)


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(payload: TaskPayload, view: BoardView = Depends(get_view)):
    with board_errors():
        await view.board.ensure_loaded()
        task = await view.board.create(
            payload.title, payload.description, payload.priority
        )
    if task is None:
        raise HTTPException(status_code=502, detail=STORE_FAILURE_DETAIL)
    return TaskResponse.from_task(task)


@router.put("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str, payload: TaskPayload, view: BoardView = Depends(get_view)
):
    with board_errors():
        await view.board.ensure_loaded()
        task = await view.board.update(
            task_id, payload.title, payload.description, payload.priority
        )
    if task is None:
        raise HTTPException(status_code=502, detail=STORE_FAILURE_DETAIL)
    return TaskResponse.from_task(task)


@router.delete("/tasks/{task_id}", response_model=DeleteResponse)
async def delete_task(task_id: str, view: BoardView = Depends(get_view)):
    with board_errors():
        await view.board.ensure_loaded()
        deleted = await view.board.delete(task_id)
    return DeleteResponse(id=task_id, deleted=deleted)


@router.post("/tasks/{task_id}/toggle", response_model=TaskResponse)
async def toggle_task(task_id: str, view: BoardView = Depends(get_view)):
    with board_errors():
        await view.board.ensure_loaded()
        task = await view.board.toggle(task_id)
    if task is None:
        raise HTTPException(status_code=502, detail=STORE_FAILURE_DETAIL)
    return TaskResponse.from_task(task)


@router.post("/tasks/{task_id}/edit", response_model=FormResponse)
async def begin_edit(task_id: str, view: BoardView = Depends(get_view)):
    with board_errors():
        await view.board.ensure_loaded()
        form = view.board.begin_edit(task_id)
    return FormResponse.from_form(form)


@router.delete("/edit", response_model=FormResponse)
async def cancel_edit(view: BoardView = Depends(get_view)):
    return FormResponse.from_form(view.board.cancel_edit())


@router.post("/form/submit", response_model=TaskResponse)
async def submit_form(payload: FormPayload, view: BoardView = Depends(get_view)):
    with board_errors():
        await view.board.ensure_loaded()
        task = await view.board.submit(
            payload.title, payload.description, payload.priority
        )
    if task is None:
        raise HTTPException(status_code=502, detail=STORE_FAILURE_DETAIL)
    return TaskResponse.from_task(task)
