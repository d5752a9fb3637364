"""
Document store abstraction over SQLAlchemy and an in-memory test implementation.

Users, tasks and notifications are schemaless documents (plain dicts) keyed
by a generated ``_id``. Both implementations share the same query
semantics so the routes never care which one is wired in.
"""

from __future__ import annotations

import copy
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from sqlalchemy import (
    JSON,
    Column,
    Float,
    Integer,
    String,
    create_engine,
    delete,
    or_,
    select,
)
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.schema import CreateSchema

COMPLETED = "completed"
RUNNING = "running"


class DbClient(Protocol):
    """Interface for database access."""

    def find_user_by_email(self, email: str) -> Optional[dict]:
        ...

    def insert_user(self, user: dict) -> "InsertResult":
        ...

    def insert_task(self, task: dict) -> "InsertResult":
        ...

    def find_task_by_id(self, task_id: str) -> Optional[dict]:
        ...

    def get_task(self, task_id: str, email: str) -> Optional[dict]:
        ...

    def list_active_tasks(self, email: str) -> List[dict]:
        ...

    def list_completed_tasks(self, email: str) -> List[dict]:
        ...

    def running_tasks_summary(self) -> "RunningSummary":
        ...

    def update_task(self, task_id: str, fields: dict) -> "UpdateResult":
        ...

    def delete_task(self, task_id: str) -> "DeleteResult":
        ...

    def search_task_ids(self, email: str, text: str) -> List[str]:
        ...

    def insert_notification(self, notification: dict) -> "InsertResult":
        ...

    def list_notifications(self, email: str) -> List[dict]:
        ...

    def delete_notifications(self, email: str) -> "DeleteResult":
        ...


@dataclass
class InsertResult:
    inserted_id: Optional[str]
    acknowledged: bool = True

    def as_dict(self) -> dict:
        return {"acknowledged": self.acknowledged, "insertedId": self.inserted_id}


@dataclass
class UpdateResult:
    matched_count: int
    modified_count: int
    acknowledged: bool = True

    def as_dict(self) -> dict:
        return {
            "acknowledged": self.acknowledged,
            "matchedCount": self.matched_count,
            "modifiedCount": self.modified_count,
            "upsertedCount": 0,
            "upsertedId": None,
        }


@dataclass
class DeleteResult:
    deleted_count: int
    acknowledged: bool = True

    def as_dict(self) -> dict:
        return {"acknowledged": self.acknowledged, "deletedCount": self.deleted_count}


@dataclass
class RunningSummary:
    count: int = 0
    titles: str = ""

    def as_dict(self) -> dict:
        return {"count": self.count, "titles": self.titles}


def _new_id() -> str:
    return uuid.uuid4().hex


def _text_or_none(value) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _sort_active(tasks: List[dict]) -> List[dict]:
    # status descending, then date ascending; missing values sort lowest.
    by_date = sorted(tasks, key=lambda t: _text_or_none(t.get("date")) or "")
    return sorted(
        by_date,
        key=lambda t: _text_or_none(t.get("status")) or "",
        reverse=True,
    )


def _title_matches(title, text: Optional[str]) -> bool:
    """Case-insensitive literal substring match; untitled tasks never match."""
    if title is None:
        return False
    return (text or "").casefold() in _text_or_none(title).casefold()


def _is_memory_sqlite(url) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def _summarize(titles: List[str]) -> RunningSummary:
    return RunningSummary(count=len(titles), titles=", ".join(titles))


def _merge(document: dict, fields: dict) -> dict:
    merged = dict(document)
    for key, value in fields.items():
        if key == "_id":
            continue
        merged[key] = value
    return merged


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, dict] = {}
        self.tasks: Dict[str, dict] = {}
        self.notifications: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.users.clear()
            self.tasks.clear()
            self.notifications.clear()

    @staticmethod
    def _insert(collection: Dict[str, dict], document: dict) -> InsertResult:
        doc_id = _new_id()
        stored = copy.deepcopy(document)
        stored["_id"] = doc_id
        collection[doc_id] = stored
        return InsertResult(inserted_id=doc_id)

    def find_user_by_email(self, email: str) -> Optional[dict]:
        with self._lock:
            for user in self.users.values():
                if user.get("email") == email:
                    return copy.deepcopy(user)
        return None

    def insert_user(self, user: dict) -> InsertResult:
        with self._lock:
            return self._insert(self.users, user)

    def insert_task(self, task: dict) -> InsertResult:
        with self._lock:
            return self._insert(self.tasks, task)

    def find_task_by_id(self, task_id: str) -> Optional[dict]:
        with self._lock:
            task = self.tasks.get(task_id)
            return copy.deepcopy(task) if task else None

    def get_task(self, task_id: str, email: str) -> Optional[dict]:
        task = self.find_task_by_id(task_id)
        if task is None or task.get("email") != email:
            return None
        return task

    def list_active_tasks(self, email: str) -> List[dict]:
        with self._lock:
            tasks = [
                copy.deepcopy(t)
                for t in self.tasks.values()
                if t.get("email") == email and t.get("status") != COMPLETED
            ]
        return _sort_active(tasks)

    def list_completed_tasks(self, email: str) -> List[dict]:
        with self._lock:
            return [
                copy.deepcopy(t)
                for t in self.tasks.values()
                if t.get("email") == email and t.get("status") == COMPLETED
            ]

    def running_tasks_summary(self) -> RunningSummary:
        with self._lock:
            titles = [
                _text_or_none(t.get("title")) or ""
                for t in self.tasks.values()
                if t.get("status") == RUNNING
            ]
        return _summarize(titles)

    def update_task(self, task_id: str, fields: dict) -> UpdateResult:
        with self._lock:
            task = self.tasks.get(task_id)
            if task is None:
                return UpdateResult(matched_count=0, modified_count=0)
            merged = _merge(task, copy.deepcopy(fields))
            if merged == task:
                return UpdateResult(matched_count=1, modified_count=0)
            self.tasks[task_id] = merged
            return UpdateResult(matched_count=1, modified_count=1)

    def delete_task(self, task_id: str) -> DeleteResult:
        with self._lock:
            removed = self.tasks.pop(task_id, None)
        return DeleteResult(deleted_count=1 if removed else 0)

    def search_task_ids(self, email: str, text: str) -> List[str]:
        with self._lock:
            return [
                t["_id"]
                for t in self.tasks.values()
                if t.get("email") == email and _title_matches(t.get("title"), text)
            ]

    def insert_notification(self, notification: dict) -> InsertResult:
        with self._lock:
            return self._insert(self.notifications, notification)

    def list_notifications(self, email: str) -> List[dict]:
        with self._lock:
            return [
                copy.deepcopy(n)
                for n in self.notifications.values()
                if n.get("email") == email
            ]

    def delete_notifications(self, email: str) -> DeleteResult:
        with self._lock:
            doomed = [
                key for key, n in self.notifications.items() if n.get("email") == email
            ]
            for key in doomed:
                del self.notifications[key]
        return DeleteResult(deleted_count=len(doomed))


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).

    Each document is stored whole in a JSON column; the fields the API filters
    or sorts on are copied into indexed columns on every write.
    """

    def __init__(self, database_url: str, schema: Optional[str] = None):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        url = make_url(database_url)
        engine_kwargs = {"pool_pre_ping": True, "pool_recycle": 1800}
        if _is_memory_sqlite(url):
            # One shared connection, or each threadpool worker sees an empty database.
            engine_kwargs = {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        engine = create_engine(url, future=True, **engine_kwargs)
        if schema:
            with engine.begin() as conn:
                conn.execute(CreateSchema(schema, if_not_exists=True))
            engine = engine.execution_options(schema_translate_map={None: schema})
        self.engine = engine
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @staticmethod
    def _document(row) -> dict:
        doc = dict(row.data or {})
        doc["_id"] = row.id
        return doc

    def find_user_by_email(self, email: str) -> Optional[dict]:
        with self.Session() as session:
            stmt = (
                select(UserRow)
                .where(UserRow.email == email)
                .order_by(UserRow.seq.asc())
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            return self._document(row) if row else None

    def insert_user(self, user: dict) -> InsertResult:
        doc_id = _new_id()
        with self.Session() as session:
            session.add(
                UserRow(
                    id=doc_id,
                    email=_text_or_none(user.get("email")),
                    data=_strip_id(user),
                    created_at=time.time(),
                )
            )
            session.commit()
        return InsertResult(inserted_id=doc_id)

    def insert_task(self, task: dict) -> InsertResult:
        doc_id = _new_id()
        with self.Session() as session:
            row = TaskRow(id=doc_id, data=_strip_id(task), created_at=time.time())
            _index_task(row)
            session.add(row)
            session.commit()
        return InsertResult(inserted_id=doc_id)

    def _task_row(self, session: Session, task_id: str) -> Optional["TaskRow"]:
        stmt = select(TaskRow).where(TaskRow.id == task_id)
        return session.execute(stmt).scalar_one_or_none()

    def find_task_by_id(self, task_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = self._task_row(session, task_id)
            return self._document(row) if row else None

    def get_task(self, task_id: str, email: str) -> Optional[dict]:
        with self.Session() as session:
            stmt = select(TaskRow).where(TaskRow.id == task_id, TaskRow.email == email)
            row = session.execute(stmt).scalar_one_or_none()
            return self._document(row) if row else None

    def list_active_tasks(self, email: str) -> List[dict]:
        with self.Session() as session:
            stmt = (
                select(TaskRow)
                .where(
                    TaskRow.email == email,
                    or_(TaskRow.status.is_(None), TaskRow.status != COMPLETED),
                )
                .order_by(TaskRow.seq.asc())
            )
            rows = session.execute(stmt).scalars().all()
            # Sorted in Python so NULL ordering matches the in-memory store.
            return _sort_active([self._document(row) for row in rows])

    def list_completed_tasks(self, email: str) -> List[dict]:
        with self.Session() as session:
            stmt = (
                select(TaskRow)
                .where(TaskRow.email == email, TaskRow.status == COMPLETED)
                .order_by(TaskRow.seq.asc())
            )
            return [self._document(row) for row in session.execute(stmt).scalars()]

    def running_tasks_summary(self) -> RunningSummary:
        with self.Session() as session:
            stmt = (
                select(TaskRow.title)
                .where(TaskRow.status == RUNNING)
                .order_by(TaskRow.seq.asc())
            )
            titles = [title or "" for title in session.execute(stmt).scalars()]
        return _summarize(titles)

    def update_task(self, task_id: str, fields: dict) -> UpdateResult:
        with self.Session() as session:
            row = self._task_row(session, task_id)
            if not row:
                return UpdateResult(matched_count=0, modified_count=0)
            current = dict(row.data or {})
            merged = _strip_id(_merge(current, fields))
            if merged == current:
                return UpdateResult(matched_count=1, modified_count=0)
            row.data = merged
            _index_task(row)
            session.commit()
            return UpdateResult(matched_count=1, modified_count=1)

    def delete_task(self, task_id: str) -> DeleteResult:
        with self.Session() as session:
            result = session.execute(delete(TaskRow).where(TaskRow.id == task_id))
            session.commit()
            return DeleteResult(deleted_count=result.rowcount or 0)

    def search_task_ids(self, email: str, text: str) -> List[str]:
        with self.Session() as session:
            stmt = (
                select(TaskRow.id, TaskRow.title)
                .where(TaskRow.email == email, TaskRow.title.is_not(None))
                .order_by(TaskRow.seq.asc())
            )
            rows = session.execute(stmt).all()
        # Matched in Python: SQLite lower() only folds ASCII.
        return [task_id for task_id, title in rows if _title_matches(title, text)]

    def insert_notification(self, notification: dict) -> InsertResult:
        doc_id = _new_id()
        with self.Session() as session:
            session.add(
                NotificationRow(
                    id=doc_id,
                    email=_text_or_none(notification.get("email")),
                    data=_strip_id(notification),
                    created_at=time.time(),
                )
            )
            session.commit()
        return InsertResult(inserted_id=doc_id)

    def list_notifications(self, email: str) -> List[dict]:
        with self.Session() as session:
            stmt = (
                select(NotificationRow)
                .where(NotificationRow.email == email)
                .order_by(NotificationRow.seq.asc())
            )
            return [self._document(row) for row in session.execute(stmt).scalars()]

    def delete_notifications(self, email: str) -> DeleteResult:
        with self.Session() as session:
            result = session.execute(
                delete(NotificationRow).where(NotificationRow.email == email)
            )
            session.commit()
            return DeleteResult(deleted_count=result.rowcount or 0)


def _strip_id(document: dict) -> dict:
    return {key: value for key, value in document.items() if key != "_id"}


def _index_task(row: "TaskRow") -> None:
    data = row.data or {}
    row.email = _text_or_none(data.get("email"))
    row.title = _text_or_none(data.get("title"))
    row.status = _text_or_none(data.get("status"))
    row.date = _text_or_none(data.get("date"))


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=True, index=True)
    data = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)


class TaskRow(Base):
    __tablename__ = "tasks"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=True, index=True)
    title = Column(String, nullable=True)
    status = Column(String, nullable=True, index=True)
    date = Column(String, nullable=True)
    data = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)


class NotificationRow(Base):
    __tablename__ = "notifications"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=True, index=True)
    data = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)
