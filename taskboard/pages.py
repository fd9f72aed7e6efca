"""
Server-rendered pages: the login page and the task dashboard.

Form posts redirect back to the dashboard (303) so a refresh never repeats a
write. Unauthenticated requests are sent to the login route.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from shared.types import Priority
from taskboard.auth import AuthBackend
from taskboard.config import Settings, get_settings
from taskboard.dependencies import get_auth_backend, get_view_registry
from taskboard.errors import (
    BoardBusyError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    UnknownTaskError,
)
from taskboard.routes import session_token, set_session_cookie
from taskboard.views import BoardView, ViewRegistry

logger = logging.getLogger(__name__)

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

DASHBOARD_ROUTE = "/dashboard"
PAGE_ERRORS = (BoardBusyError, NotAuthenticatedError, UnknownTaskError, ValueError)


async def get_page_view(
    token: str | None = Depends(session_token),
    registry: ViewRegistry = Depends(get_view_registry),
) -> BoardView | None:
    return await registry.get(token)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


def to_login(settings: Settings) -> RedirectResponse:
    response = redirect(settings.login_route)
    response.delete_cookie(settings.session_cookie_name)
    return response


def _login_page(
    request: Request,
    settings: Settings,
    error: str | None = None,
    status_code: int = 200,
):
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "firebase_web_api_key": settings.firebase_web_api_key,
            "firebase_auth_domain": settings.firebase_auth_domain,
            "firebase_project_id": settings.firebase_project_id,
            "api_prefix": settings.api_prefix,
            "dashboard_route": DASHBOARD_ROUTE,
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/", include_in_schema=False)
def index(
    view: BoardView | None = Depends(get_page_view),
    settings: Settings = Depends(get_settings),
):
    return redirect(DASHBOARD_ROUTE if view else settings.login_route)


@router.get("/login", response_class=HTMLResponse)
def login_page(
    request: Request,
    view: BoardView | None = Depends(get_page_view),
    settings: Settings = Depends(get_settings),
):
    if view is not None:
        return redirect(DASHBOARD_ROUTE)
    return _login_page(request, settings)


@router.post("/login")
async def login_submit(
    request: Request,
    id_token: str = Form(...),
    settings: Settings = Depends(get_settings),
    auth_backend: AuthBackend = Depends(get_auth_backend),
    registry: ViewRegistry = Depends(get_view_registry),
):
    try:
        token = await asyncio.to_thread(auth_backend.create_session, id_token)
    except InvalidCredentialsError:
        return _login_page(request, settings, error="Sign-in failed", status_code=401)
    if await registry.get(token) is None:
        return _login_page(request, settings, error="Sign-in failed", status_code=401)
    response = redirect(DASHBOARD_ROUTE)
    set_session_cookie(response, settings, token)
    return response


@router.get(DASHBOARD_ROUTE, response_class=HTMLResponse)
async def dashboard(
    request: Request,
    view: BoardView | None = Depends(get_page_view),
    settings: Settings = Depends(get_settings),
):
    if view is None:
        return to_login(settings)
    await view.board.ensure_loaded()
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "identity": view.identity,
            "board": view.board,
            "form": view.board.form,
            "priorities": list(Priority),
        },
    )


@router.post(DASHBOARD_ROUTE + "/tasks")
async def submit_task(
    title: str = Form(""),
    description: str = Form(""),
    priority: Priority = Form(Priority.LOW),
    view: BoardView | None = Depends(get_page_view),
    settings: Settings = Depends(get_settings),
):
    if view is None:
        return to_login(settings)
    try:
        await view.board.ensure_loaded()
        await view.board.submit(title, description, priority)
    except PAGE_ERRORS as e:
        logger.info("Form submit ignored: %s", e)
    return redirect(DASHBOARD_ROUTE)


@router.post(DASHBOARD_ROUTE + "/tasks/{task_id}/edit")
async def edit_task(
    task_id: str,
    view: BoardView | None = Depends(get_page_view),
    settings: Settings = Depends(get_settings),
):
    if view is None:
        return to_login(settings)
    try:
        await view.board.ensure_loaded()
        view.board.begin_edit(task_id)
    except PAGE_ERRORS as e:
        logger.info("Edit ignored: %s", e)
    return redirect(DASHBOARD_ROUTE)


@router.post(DASHBOARD_ROUTE + "/edit/cancel")
async def cancel_edit(
    view: BoardView | None = Depends(get_page_view),
    settings: Settings = Depends(get_settings),
):
    if view is None:
        return to_login(settings)
    view.board.cancel_edit()
    return redirect(DASHBOARD_ROUTE)


@router.post(DASHBOARD_ROUTE + "/tasks/{task_id}/delete")
async def delete_task(
    task_id: str,
    view: BoardView | None = Depends(get_page_view),
    settings: Settings = Depends(get_settings),
):
    if view is None:
        return to_login(settings)
    try:
        await view.board.ensure_loaded()
        await view.board.delete(task_id)
    except PAGE_ERRORS as e:
        logger.info("Delete ignored: %s", e)
    return redirect(DASHBOARD_ROUTE)


@router.post(DASHBOARD_ROUTE + "/tasks/{task_id}/toggle")
async def toggle_task(
    task_id: str,
    view: BoardView | None = Depends(get_page_view),
    settings: Settings = Depends(get_settings),
):
    if view is None:
        return to_login(settings)
    try:
        await view.board.ensure_loaded()
        await view.board.toggle(task_id)
    except PAGE_ERRORS as e:
        logger.info("Toggle ignored: %s", e)
    return redirect(DASHBOARD_ROUTE)


@router.post(DASHBOARD_ROUTE + "/logout")
async def logout(
    token: str | None = Depends(session_token),
    settings: Settings = Depends(get_settings),
    registry: ViewRegistry = Depends(get_view_registry),
):
    response = redirect(await registry.logout(token))
    response.delete_cookie(settings.session_cookie_name)
    return response
