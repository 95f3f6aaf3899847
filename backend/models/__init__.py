"""SQLAlchemy ORM models for Lifecast."""

from backend.models.base import Base
from backend.models.post import Post
from backend.models.profile import Profile
from backend.models.status import StatusEvent, StatusSource
from backend.models.task import ClientRegistration, RemoteTask

__all__ = [
    "Base",
    "ClientRegistration",
    "Post",
    "Profile",
    "RemoteTask",
    "StatusEvent",
    "StatusSource",
]
