"""SQLite database operations.

Handles database connection, session management, and CRUD operations.
"""

import os
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Generator, Optional

from loguru import logger
from sqlalchemy import create_engine, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import NotFoundError, SessionConflictError, StoreUnavailableError
from ..utils import to_iso
from .adapter import BookMetaSource, ProfileSource, SessionStore
from .models import Base, Book, ReadingSession, ShelfEntry, UserProfile, now_iso
from .schemas import (
    BookCreate,
    BookMeta,
    ReadingSessionCreate,
    SessionClose,
    ShelfEntryUpdate,
    ShelfStatus,
)


class Database(SessionStore, ProfileSource, BookMetaSource):
    """Database connection and operations manager."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses
                     PAGEPACE_DB_PATH env var or default location.
        """
        if db_path is None:
            db_path = os.environ.get(
                "PAGEPACE_DB_PATH",
                str(Path.home() / ".pagepace" / "pagepace.db"),
            )

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # In-memory databases share one connection so every session sees the same data
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Cannot create tables: {e}") from e

    def drop_tables(self) -> None:
        """Drop all database tables. Use with caution!"""
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager.

        Storage failures surface as StoreUnavailableError.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreUnavailableError(str(e)) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ========================================================================
    # Book Operations
    # ========================================================================

    def create_book(self, book: BookCreate, session: Optional[Session] = None) -> Book:
        """Add a book to the catalog."""

        def _create(s: Session) -> Book:
            db_book = Book(
                title=book.title,
                author=book.author,
                page_count=book.page_count,
            )
            db_book.set_categories(book.categories)
            s.add(db_book)
            s.flush()
            return db_book

        if session:
            return _create(session)
        else:
            with self.get_session() as s:
                db_book = _create(s)
                s.expunge(db_book)
                return db_book

    def get_book(self, book_id: str, session: Optional[Session] = None) -> Optional[Book]:
        """Get a book by ID."""

        def _get(s: Session) -> Optional[Book]:
            return s.get(Book, book_id)

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                book = _get(s)
                if book:
                    s.expunge(book)
                return book

    def get_book_meta(self, book_id: str) -> Optional[BookMeta]:
        """Get page count and categories for a book."""
        book = self.get_book(book_id)
        if not book:
            return None
        return BookMeta(
            title=book.title,
            page_count=book.page_count,
            categories=book.get_categories(),
        )

    # ========================================================================
    # Profile Operations
    # ========================================================================

    def get_base_ppm(self, user_id: str) -> Optional[float]:
        """Get a user's baseline pages per minute, None if unknown."""
        with self.get_session() as s:
            profile = s.get(UserProfile, user_id)
            return profile.base_ppm if profile else None

    def set_base_ppm(self, user_id: str, base_ppm: Optional[float]) -> UserProfile:
        """Create or update a user's baseline pages per minute."""
        with self.get_session() as s:
            profile = s.get(UserProfile, user_id)
            if profile:
                profile.base_ppm = base_ppm
                profile.updated_at = now_iso()
            else:
                profile = UserProfile(user_id=user_id, base_ppm=base_ppm)
                s.add(profile)
            s.flush()
            s.expunge(profile)
            return profile

    # ========================================================================
    # Shelf Entry Operations
    # ========================================================================

    def add_to_shelf(self, user_id: str, book_id: str) -> tuple[ShelfEntry, bool]:
        """Put a book on a user's shelf.

        Returns:
            (entry, created) - the existing entry and False if already shelved

        Raises:
            NotFoundError: If the book is not in the catalog
        """
        with self.get_session() as s:
            stmt = select(ShelfEntry).where(
                ShelfEntry.user_id == user_id,
                ShelfEntry.book_id == book_id,
            )
            existing = s.execute(stmt).scalar_one_or_none()
            if existing:
                s.expunge(existing)
                return existing, False

            book = s.get(Book, book_id)
            if not book:
                raise NotFoundError(f"Book not found: {book_id}")

            entry = ShelfEntry(
                user_id=user_id,
                book_id=book_id,
                status=ShelfStatus.PLANNED.value,
                start_page=1,
                current_page=0,
                end_page=book.page_count,
            )
            s.add(entry)
            s.flush()
            s.expunge(entry)
            return entry, True

    def get_shelf_entry(self, entry_id: str, user_id: str) -> Optional[ShelfEntry]:
        """Get a shelf entry owned by a user."""
        with self.get_session() as s:
            stmt = select(ShelfEntry).where(
                ShelfEntry.id == entry_id,
                ShelfEntry.user_id == user_id,
            )
            entry = s.execute(stmt).scalar_one_or_none()
            if entry:
                s.expunge(entry)
            return entry

    def get_shelf_entry_for_book(self, user_id: str, book_id: str) -> Optional[ShelfEntry]:
        """Get a user's shelf entry for a book."""
        with self.get_session() as s:
            stmt = select(ShelfEntry).where(
                ShelfEntry.user_id == user_id,
                ShelfEntry.book_id == book_id,
            )
            entry = s.execute(stmt).scalar_one_or_none()
            if entry:
                s.expunge(entry)
            return entry

    def get_shelf_entries(
        self, user_id: str, status: Optional[ShelfStatus] = None
    ) -> list[tuple[ShelfEntry, Book]]:
        """Get a user's shelf entries with their books, most recently updated first."""
        with self.get_session() as s:
            stmt = (
                select(ShelfEntry, Book)
                .join(Book, ShelfEntry.book_id == Book.id)
                .where(ShelfEntry.user_id == user_id)
            )
            if status:
                stmt = stmt.where(ShelfEntry.status == status.value)
            stmt = stmt.order_by(ShelfEntry.updated_at.desc())

            rows = [(entry, book) for entry, book in s.execute(stmt).all()]
            for entry, book in rows:
                s.expunge(entry)
                if book in s:
                    s.expunge(book)
            return rows

    def update_shelf_entry(
        self, entry_id: str, user_id: str, update: ShelfEntryUpdate
    ) -> Optional[ShelfEntry]:
        """Apply the set fields of an update to a shelf entry."""
        with self.get_session() as s:
            stmt = select(ShelfEntry).where(
                ShelfEntry.id == entry_id,
                ShelfEntry.user_id == user_id,
            )
            entry = s.execute(stmt).scalar_one_or_none()
            if not entry:
                return None

            update_data = update.model_dump(exclude_unset=True)
            for field, value in update_data.items():
                if field in ("started_at", "completed_at"):
                    setattr(entry, field, to_iso(value))
                elif field == "status" and value:
                    setattr(entry, field, value.value)
                else:
                    setattr(entry, field, value)

            entry.updated_at = now_iso()
            s.flush()
            s.expunge(entry)
            return entry

    # ========================================================================
    # Reading Session Operations
    # ========================================================================

    def create_session(self, data: ReadingSessionCreate) -> ReadingSession:
        """Insert a new open session.

        Raises:
            SessionConflictError: If the shelf entry already has an open session
        """
        with self.get_session() as s:
            open_stmt = select(ReadingSession.id).where(
                ReadingSession.shelf_entry_id == data.shelf_entry_id,
                ReadingSession.ended_at.is_(None),
            )
            open_id = s.execute(open_stmt).scalars().first()
            if open_id:
                raise SessionConflictError(
                    f"Shelf entry {data.shelf_entry_id} already has an open session: {open_id}"
                )

            db_session = ReadingSession(
                user_id=data.user_id,
                book_id=data.book_id,
                shelf_entry_id=data.shelf_entry_id,
                session_type=data.session_type.value,
                planned_start_page=data.planned_start_page,
                planned_end_page=data.planned_end_page,
                planned_pages=data.planned_pages,
                started_at=to_iso(data.started_at),
            )
            if data.commute:
                commute = data.commute
                db_session.commute_profile_id = commute.commute_profile_id
                db_session.origin_place_id = commute.origin_place_id
                db_session.destination_place_id = commute.destination_place_id
                db_session.selected_route_id = commute.selected_route_id
                db_session.commute_total_minutes = commute.commute_total_minutes
                db_session.commute_walk_minutes = commute.commute_walk_minutes
                db_session.commute_transfers = commute.commute_transfers
                db_session.commute_fare = commute.commute_fare
                db_session.set_commute_route(commute.commute_route)

            s.add(db_session)
            try:
                s.flush()
            except IntegrityError as e:
                # Lost a race with another start for the same entry
                raise SessionConflictError(
                    f"Shelf entry {data.shelf_entry_id} already has an open session"
                ) from e

            s.expunge(db_session)
            return db_session

    def get_reading_session(self, session_id: str, user_id: str) -> Optional[ReadingSession]:
        """Get a session owned by a user."""
        with self.get_session() as s:
            stmt = select(ReadingSession).where(
                ReadingSession.id == session_id,
                ReadingSession.user_id == user_id,
            )
            db_session = s.execute(stmt).scalar_one_or_none()
            if db_session:
                s.expunge(db_session)
            return db_session

    def close_reading_session(
        self, session_id: str, user_id: str, close: SessionClose
    ) -> Optional[ReadingSession]:
        """Write the outcome of a session.

        The first close wins: an already closed session is returned unchanged.
        """
        with self.get_session() as s:
            stmt = select(ReadingSession).where(
                ReadingSession.id == session_id,
                ReadingSession.user_id == user_id,
            )
            db_session = s.execute(stmt).scalar_one_or_none()
            if not db_session:
                return None

            if db_session.ended_at is None:
                db_session.actual_start_page = close.actual_start_page
                db_session.actual_end_page = close.actual_end_page
                db_session.actual_pages = close.actual_pages
                db_session.effective_minutes = close.effective_minutes
                db_session.ended_at = to_iso(close.ended_at)
                db_session.updated_at = now_iso()
                s.flush()
            else:
                logger.debug(f"Session {session_id} was already closed at {db_session.ended_at}")

            s.expunge(db_session)
            return db_session

    def get_recent_sessions(self, user_id: str, since: datetime) -> list[ReadingSession]:
        """Get a user's sessions started at or after ``since``, newest first."""
        with self.get_session() as s:
            stmt = (
                select(ReadingSession)
                .where(
                    ReadingSession.user_id == user_id,
                    ReadingSession.started_at >= to_iso(since),
                )
                .order_by(ReadingSession.started_at.desc())
            )
            sessions = list(s.execute(stmt).scalars().all())
            for db_session in sessions:
                s.expunge(db_session)
            return sessions


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None
