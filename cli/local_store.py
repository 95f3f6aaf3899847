"""Device-side task store backed by a local SQLite file.

Tasks are keyed by id. A one-row ``sync_state`` table holds the cursor the
server returned on the last successful sync. Columns the server never sees
(``synced_at``, ``local_modified_at``) are left alone when a sync result is
applied.
"""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import BigInteger, Boolean, Float, Integer, String, Text, create_engine, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

DEFAULT_DB_FILE = "lifecast.db"

# Columns exchanged with the server; everything else is device-local.
SYNCED_COLUMNS = (
    "title",
    "description",
    "created_at",
    "start_time",
    "deadline",
    "is_completed",
    "completed_at",
    "progress",
    "priority",
    "is_public",
    "tags",
    "updated_at",
)

TASK_VIEWS = ("all", "active", "archived", "public")
_EDITABLE_COLUMNS = frozenset(SYNCED_COLUMNS) - {"updated_at"}


def _now_ms() -> int:
    return int(time.time() * 1000)


class TaskNotFoundError(LookupError):
    """No local task with the given id."""


class LocalBase(DeclarativeBase):
    pass


class LocalTask(LocalBase):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    start_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    deadline: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tags: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Server-assigned; null until the task has round-tripped once.
    updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    local_modified_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    synced_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    def to_payload(self) -> dict[str, Any]:
        """Full task as pushed to the server."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "created_at": self.created_at,
            "start_time": self.start_time,
            "deadline": self.deadline,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at,
            "progress": self.progress,
            "priority": self.priority,
            "is_public": self.is_public,
            "tags": self.tags,
        }


class SyncState(LocalBase):
    __tablename__ = "sync_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_sync: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_attempt_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


_STATE_ROW_ID = 1


def _validate_fields(fields: dict[str, Any]) -> None:
    if "title" in fields and not str(fields["title"] or "").strip():
        raise ValueError("title must not be empty")
    progress = fields.get("progress")
    if progress is not None and not 0.0 <= float(progress) <= 1.0:
        raise ValueError("progress must be between 0 and 1")
    priority = fields.get("priority")
    if priority is not None and int(priority) not in (1, 2, 3):
        raise ValueError("priority must be 1, 2 or 3")


class LocalTaskStore:
    """CRUD plus atomic application of sync results."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(f"sqlite:///{self.db_path}")
        self._session_factory = sessionmaker(self.engine, expire_on_commit=False)
        LocalBase.metadata.create_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self) -> LocalTaskStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # Local CRUD

    def add_task(
        self,
        title: str,
        *,
        description: str | None = None,
        start_time: int | None = None,
        deadline: int | None = None,
        priority: int = 1,
        is_public: bool = False,
        tags: str | None = None,
        now: int | None = None,
    ) -> LocalTask:
        _validate_fields({"title": title, "priority": priority})
        current = _now_ms() if now is None else now
        task = LocalTask(
            id=uuid.uuid4().hex,
            title=title.strip(),
            description=description,
            created_at=current,
            start_time=start_time,
            deadline=deadline,
            is_completed=False,
            completed_at=None,
            progress=0.0,
            priority=priority,
            is_public=is_public,
            tags=tags,
            updated_at=None,
            local_modified_at=current,
            synced_at=None,
        )
        with self._session_factory.begin() as session:
            session.add(task)
        return task

    def get_task(self, task_id: str) -> LocalTask:
        with self._session_factory() as session:
            task = session.get(LocalTask, task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            return task

    def update_task(self, task_id: str, *, now: int | None = None, **fields: Any) -> LocalTask:
        unknown = sorted(set(fields) - _EDITABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(unknown)}")
        _validate_fields(fields)
        with self._session_factory.begin() as session:
            task = session.get(LocalTask, task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            for key, value in fields.items():
                setattr(task, key, value)
            if not task.is_completed:
                task.completed_at = None
            task.local_modified_at = _now_ms() if now is None else now
        return task

    def complete_task(self, task_id: str, now: int | None = None) -> LocalTask:
        current = _now_ms() if now is None else now
        return self.update_task(
            task_id, now=current, is_completed=True, completed_at=current, progress=1.0
        )

    def set_progress(self, task_id: str, progress: float, now: int | None = None) -> LocalTask:
        return self.update_task(task_id, now=now, progress=progress)

    def delete_task(self, task_id: str) -> None:
        """Remove a task from this device only; the server copy stays."""
        with self._session_factory.begin() as session:
            task = session.get(LocalTask, task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            session.delete(task)

    def list_tasks(self, view: str = "all") -> list[LocalTask]:
        if view not in TASK_VIEWS:
            raise ValueError(f"Unknown view: {view}")
        stmt = select(LocalTask).order_by(LocalTask.created_at.desc(), LocalTask.id.asc())
        if view == "active":
            stmt = stmt.where(LocalTask.is_completed.is_(False))
        elif view == "archived":
            stmt = stmt.where(LocalTask.is_completed.is_(True))
        elif view == "public":
            stmt = stmt.where(LocalTask.is_public.is_(True))
        with self._session_factory() as session:
            return list(session.scalars(stmt).all())

    # Sync support

    def get_cursor(self) -> int | None:
        with self._session_factory() as session:
            state = session.get(SyncState, _STATE_ROW_ID)
            return state.last_sync if state else None

    def push_payload(self, public_only: bool = False) -> list[dict[str, Any]]:
        """Every local task in wire form, optionally only public ones."""
        tasks = self.list_tasks("public" if public_only else "all")
        return [t.to_payload() for t in tasks]

    def apply_sync_result(
        self,
        updated_tasks: Sequence[dict[str, Any]],
        server_time: int,
        *,
        pushed_ids: Iterable[str] = (),
        now: int | None = None,
    ) -> int:
        """Apply the server's delta and advance the cursor in one transaction.

        On any failure nothing is applied and the cursor keeps its old value,
        so the whole sync can simply be retried. The cursor never moves
        backwards. Returns the number of tasks applied.
        """
        current = _now_ms() if now is None else now
        with self._session_factory() as session:
            try:
                for remote in updated_tasks:
                    values = {col: remote.get(col) for col in SYNCED_COLUMNS}
                    values["title"] = remote["title"]
                    values["created_at"] = remote["created_at"]
                    values["is_completed"] = bool(remote.get("is_completed", False))
                    values["progress"] = float(remote.get("progress") or 0.0)
                    values["priority"] = int(remote.get("priority") or 1)
                    values["is_public"] = bool(remote.get("is_public", False))
                    stmt = sqlite_insert(LocalTask).values(
                        id=remote["id"],
                        local_modified_at=current,
                        synced_at=current,
                        **values,
                    )
                    set_ = {col: stmt.excluded[col] for col in SYNCED_COLUMNS}
                    set_["synced_at"] = stmt.excluded.synced_at
                    stmt = stmt.on_conflict_do_update(index_elements=[LocalTask.id], set_=set_)
                    session.execute(stmt)

                ids = list(pushed_ids)
                if ids:
                    for task in session.scalars(select(LocalTask).where(LocalTask.id.in_(ids))):
                        task.synced_at = current

                state = session.get(SyncState, _STATE_ROW_ID)
                if state is None:
                    state = SyncState(id=_STATE_ROW_ID, last_sync=None)
                    session.add(state)
                state.last_sync = max(state.last_sync or 0, server_time)
                state.last_attempt_at = current
                session.commit()
            except Exception:
                session.rollback()
                logger.error(
                    "Applying %d synced task(s) failed; local state left unchanged",
                    len(updated_tasks),
                )
                raise

        logger.info(
            "Applied %d task(s) from server (server_time=%d)", len(updated_tasks), server_time
        )
        return len(updated_tasks)
