"""SQLAlchemy ORM models for LeafWiki."""

from backend.models.base import Base
from backend.models.history import FileHistory

__all__ = [
    "Base",
    "FileHistory",
]
