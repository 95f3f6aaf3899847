"""Remote task store and client registration models."""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base


class RemoteTask(Base):
    """Server copy of a device task, scoped by owner token.

    All timestamps are epoch milliseconds, the unit the sync protocol uses.
    """

    __tablename__ = "tasks"

    owner_token: Mapped[str] = mapped_column(String(256), primary_key=True)
    task_id: Mapped[str] = mapped_column(String(128), primary_key=True)
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
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        Index("idx_tasks_owner_updated", "owner_token", "updated_at"),
        Index("idx_tasks_public", "is_public"),
    )


class ClientRegistration(Base):
    """Liveness record for a client token; not used for conflict resolution."""

    __tablename__ = "clients"

    owner_token: Mapped[str] = mapped_column(String(256), primary_key=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_sync_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
