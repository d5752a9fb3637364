"""
Access guard: resolves the session cookie into a verified identity.

Every task, notification and search route depends on ``require_identity``;
login, logout, user registration and the liveness routes do not.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request

from todo_api.config import Settings
from todo_api.dependencies import get_app_settings, get_token_service
from todo_api.errors import Forbidden, InvalidToken, Unauthorized
from todo_api.tokens import Identity, TokenService

logger = logging.getLogger(__name__)


def require_identity(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    token = request.cookies.get(settings.cookie_name)
    if not token:
        raise Unauthorized()
    try:
        identity = tokens.verify(token)
    except InvalidToken:
        logger.warning("Rejected session token on %s", request.url.path)
        raise
    request.state.user = identity
    return identity


def ensure_owner(email: Optional[str], identity: Identity) -> str:
    """Return ``email`` if it names the verified caller, else raise Forbidden."""
    if email != identity.email:
        logger.warning(
            "Forbidden: %s requested data for %r", identity.email, email
        )
        raise Forbidden()
    return email
