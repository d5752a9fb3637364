"""
FastAPI application entry point for the todo API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from todo_api.config import Settings, get_settings
from todo_api.db import DbClient
from todo_api.dependencies import build_db_client, build_token_service
from todo_api.errors import register_error_handlers
from todo_api.routes import router
from todo_api.schemas import HealthResponse
from todo_api.tokens import TokenService

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[DbClient] = None,
    tokens: Optional[TokenService] = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Todo API", version="0.1.0")

    app.state.settings = settings
    app.state.db = db if db is not None else build_db_client(settings)
    app.state.tokens = tokens if tokens is not None else build_token_service(settings)
    logger.info(
        "Todo API configured store=%s prefix=%s",
        app.state.db.__class__.__name__,
        settings.api_prefix,
    )

    register_error_handlers(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router, prefix=settings.api_prefix)

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "Todo App is running"

    @app.get("/health", response_model=HealthResponse)
    def health():
        return HealthResponse()

    return app
