"""
HTTP routes for the todo API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse

from todo_api.config import Settings
from todo_api.db import DbClient
from todo_api.dependencies import get_app_settings, get_db_client, get_token_service
from todo_api.guard import ensure_owner, require_identity
from todo_api.schemas import (
    DeleteResponse,
    InsertResponse,
    LoginFailedResponse,
    LoginPayload,
    NotificationPayload,
    RunningSummaryResponse,
    SearchHit,
    SuccessResponse,
    TaskPayload,
    TaskUpdatePayload,
    UpdateResponse,
    UserPayload,
    WelcomeResponse,
)
from todo_api.tokens import Identity, TokenService

logger = logging.getLogger(__name__)

router = APIRouter()


def _claim_owner(
    document: dict, query_email: Optional[str], identity: Identity
) -> dict:
    """
    Resolve who a new document belongs to and stamp it with that owner.

    The query parameter and the body email, whichever are given, must both
    name the caller; a body without an email is owned by the caller.
    """
    body_email = document.get("email")
    if query_email is not None:
        ensure_owner(query_email, identity)
    if body_email is not None:
        ensure_owner(body_email, identity)
    document["email"] = identity.email
    return document


def _ensure_task_access(
    db: DbClient, task_id: str, email: Optional[str], identity: Identity
) -> None:
    if email is not None:
        ensure_owner(email, identity)
    existing = db.find_task_by_id(task_id)
    if existing is not None:
        ensure_owner(existing.get("email"), identity)


def _set_session_cookie(response: Response, settings: Settings, token: str) -> None:
    response.set_cookie(
        settings.cookie_name,
        token,
        httponly=True,
        secure=True,
        samesite="none",
    )


# ---- auth ----


@router.post(
    "/auth/jwt",
    response_model=SuccessResponse,
    responses={400: {"model": LoginFailedResponse}},
)
def issue_session(
    response: Response,
    payload: Optional[LoginPayload] = None,
    settings: Settings = Depends(get_app_settings),
    tokens: TokenService = Depends(get_token_service),
):
    if payload is None or not payload.email:
        return JSONResponse(
            status_code=400,
            content=LoginFailedResponse(message="Unknown error occurred").model_dump(),
        )
    try:
        token = tokens.issue(payload.email)
    except Exception as exc:
        logger.exception("Failed to issue session token for %s", payload.email)
        return JSONResponse(status_code=500, content={"error": True, "message": str(exc)})

    _set_session_cookie(response, settings, token)
    logger.info("Issued session for %s", payload.email)
    return SuccessResponse()


@router.post("/user/logout", response_model=SuccessResponse)
def logout(response: Response, settings: Settings = Depends(get_app_settings)):
    response.delete_cookie(
        settings.cookie_name, httponly=True, secure=True, samesite="none"
    )
    return SuccessResponse()


# ---- users ----


@router.post("/create-user", response_model=InsertResponse | WelcomeResponse)
def create_user(payload: UserPayload, db: DbClient = Depends(get_db_client)):
    """Register a user once per email; repeat calls just welcome them back."""
    existing = db.find_user_by_email(payload.email)
    if existing:
        role = existing.get("role")
        greeting = f"Welcome back {existing.get('name')}"
        greeting += f" as {role}" if role else "."
        logger.info("User %s already registered", payload.email)
        return WelcomeResponse(message=greeting)

    result = db.insert_user(payload.as_document())
    logger.info("Registered user %s id=%s", payload.email, result.inserted_id)
    return InsertResponse(**result.as_dict())


# ---- tasks ----


@router.post("/create-task", response_model=InsertResponse)
def create_task(
    payload: TaskPayload,
    email: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    task = _claim_owner(payload.as_document(), email, identity)
    result = db.insert_task(task)
    logger.info("Task %s created for %s", result.inserted_id, identity.email)
    return InsertResponse(**result.as_dict())


@router.get("/tasks")
def list_tasks(
    email: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
) -> list[dict]:
    return db.list_active_tasks(ensure_owner(email, identity))


@router.get("/completed-tasks")
def list_completed_tasks(
    email: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
) -> list[dict]:
    return db.list_completed_tasks(ensure_owner(email, identity))


@router.get("/running-tasks", response_model=RunningSummaryResponse)
def running_tasks(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    # Deliberately global: counts running tasks across every user.
    return RunningSummaryResponse(**db.running_tasks_summary().as_dict())


@router.get("/single-task/{task_id}")
def get_task(
    task_id: str,
    email: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
) -> Optional[dict]:
    return db.get_task(task_id, ensure_owner(email, identity))


@router.patch("/update-tasks/{task_id}", response_model=UpdateResponse)
def update_task(
    task_id: str,
    payload: TaskUpdatePayload,
    email: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    _ensure_task_access(db, task_id, email, identity)
    fields = payload.as_document()
    if "email" in fields:
        ensure_owner(fields["email"], identity)
    result = db.update_task(task_id, fields)
    logger.info(
        "Task %s updated by %s (matched=%d modified=%d)",
        task_id,
        identity.email,
        result.matched_count,
        result.modified_count,
    )
    return UpdateResponse(**result.as_dict())


@router.delete("/delete-tasks/{task_id}", response_model=DeleteResponse)
def delete_task(
    task_id: str,
    email: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    _ensure_task_access(db, task_id, email, identity)
    result = db.delete_task(task_id)
    logger.info(
        "Task %s deleted by %s (deleted=%d)",
        task_id,
        identity.email,
        result.deleted_count,
    )
    return DeleteResponse(**result.as_dict())


# ---- search ----


@router.get("/search", response_model=list[SearchHit])
def search_tasks(
    search: str = Query(""),
    email: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    task_ids = db.search_task_ids(ensure_owner(email, identity), search)
    return [SearchHit(_id=task_id) for task_id in task_ids]


# ---- notifications ----


@router.post("/set-notifications", response_model=InsertResponse)
def create_notification(
    payload: NotificationPayload,
    email: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    notification = _claim_owner(payload.as_document(), email, identity)
    result = db.insert_notification(notification)
    logger.info("Notification %s created for %s", result.inserted_id, identity.email)
    return InsertResponse(**result.as_dict())


@router.get("/notifications")
def list_notifications(
    email: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
) -> list[dict]:
    return db.list_notifications(ensure_owner(email, identity))


@router.delete("/remove-notifications", response_model=DeleteResponse)
def clear_notifications(
    email: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    result = db.delete_notifications(ensure_owner(email, identity))
    logger.info(
        "Cleared %d notifications for %s", result.deleted_count, identity.email
    )
    return DeleteResponse(**result.as_dict())
