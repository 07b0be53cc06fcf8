"""Database module for local SQLite storage."""

from .adapter import BookMetaSource, ProfileSource, SessionStore
from .models import Book, ReadingSession, ShelfEntry, UserProfile
from .schemas import (
    BookCreate,
    BookMeta,
    CommuteContext,
    ReadingSessionCreate,
    RecommendationResult,
    SessionClose,
    SessionType,
    ShelfEntryUpdate,
    ShelfStatus,
)
from .sqlite import Database, get_db

__all__ = [
    "Book",
    "ReadingSession",
    "ShelfEntry",
    "UserProfile",
    "BookCreate",
    "BookMeta",
    "CommuteContext",
    "ReadingSessionCreate",
    "RecommendationResult",
    "SessionClose",
    "SessionType",
    "ShelfEntryUpdate",
    "ShelfStatus",
    "SessionStore",
    "ProfileSource",
    "BookMetaSource",
    "Database",
    "get_db",
]
