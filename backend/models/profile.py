"""Public profile model."""

from __future__ import annotations

from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base

DEFAULT_DISPLAY_NAME = "Life App User"
DEFAULT_MOTTO = "Push to Start, Pop to Finish"
DEFAULT_PROFILE_STATUS = "Available"


class Profile(Base):
    """Display name, motto and free-text status for one owner token."""

    __tablename__ = "profiles"

    owner_token: Mapped[str] = mapped_column(String(256), primary_key=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    motto: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
