"""
FastAPI application entry point for the task board.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from taskboard.config import get_settings
from taskboard.pages import router as pages_router
from taskboard.routes import router


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="Task Board", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(pages_router)
    return app


app = create_app()
