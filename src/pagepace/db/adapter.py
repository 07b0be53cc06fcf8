"""Store interfaces consumed by the reading and pace modules.

``Database`` implements all three over SQLite; other backends only need
to provide these methods.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .models import ReadingSession, ShelfEntry
from .schemas import BookMeta, ReadingSessionCreate, SessionClose, ShelfEntryUpdate


class SessionStore(ABC):
    """Durable storage for reading sessions and shelf entries."""

    @abstractmethod
    def create_session(self, data: ReadingSessionCreate) -> ReadingSession:
        """Insert a new open session.

        Raises:
            SessionConflictError: If the shelf entry already has an open session
        """

    @abstractmethod
    def get_reading_session(self, session_id: str, user_id: str) -> Optional[ReadingSession]:
        """Get a session owned by a user."""

    @abstractmethod
    def close_reading_session(
        self, session_id: str, user_id: str, close: SessionClose
    ) -> Optional[ReadingSession]:
        """Write the outcome of a session.

        An already closed session is returned unchanged. Returns None if the
        session does not exist.
        """

    @abstractmethod
    def get_shelf_entry(self, entry_id: str, user_id: str) -> Optional[ShelfEntry]:
        """Get a shelf entry owned by a user."""

    @abstractmethod
    def get_shelf_entry_for_book(self, user_id: str, book_id: str) -> Optional[ShelfEntry]:
        """Get a user's shelf entry for a book."""

    @abstractmethod
    def update_shelf_entry(
        self, entry_id: str, user_id: str, update: ShelfEntryUpdate
    ) -> Optional[ShelfEntry]:
        """Apply the set fields of an update to a shelf entry."""

    @abstractmethod
    def get_recent_sessions(self, user_id: str, since: datetime) -> list[ReadingSession]:
        """Get a user's sessions started at or after ``since``."""


class ProfileSource(ABC):
    """Read access to user reading profiles."""

    @abstractmethod
    def get_base_ppm(self, user_id: str) -> Optional[float]:
        """Get a user's baseline pages per minute, None if unknown."""


class BookMetaSource(ABC):
    """Read access to book metadata."""

    @abstractmethod
    def get_book_meta(self, book_id: str) -> Optional[BookMeta]:
        """Get page count and categories for a book."""
