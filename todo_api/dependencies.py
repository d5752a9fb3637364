"""
Dependency wiring for the FastAPI app.

The store client, token service and settings are built once in
``create_app`` and stored on ``app.state``; these providers hand them to
route handlers.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import Request

from todo_api.config import Settings
from todo_api.db import DbClient, InMemoryDbClient, SqlDbClient
from todo_api.tokens import TokenService

logger = logging.getLogger(__name__)


def build_db_client(settings: Settings) -> DbClient:
    if settings.use_in_memory_backends or not settings.database_url:
        logger.info("Using in-memory document store")
        return InMemoryDbClient()
    logger.info("Using SQL document store (schema=%s)", settings.db_name)
    return SqlDbClient(settings.database_url, schema=settings.db_name)


def build_token_service(settings: Settings) -> TokenService:
    secret = settings.access_token_secret
    if not secret:
        if not settings.use_in_memory_backends:
            raise RuntimeError("ACCESS_TOKEN_SECRET is not set in environment variables")
        logger.warning("ACCESS_TOKEN_SECRET not set; using a development-only secret")
        secret = "development-only-secret-do-not-deploy"
    return TokenService(
        secret=secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(hours=settings.token_ttl_hours),
    )


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db_client(request: Request) -> DbClient:
    return request.app.state.db


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens
