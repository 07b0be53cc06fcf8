"""SQLAlchemy ORM models for local SQLite database.

Tables:
- books: Catalog metadata (title, page count, categories)
- user_profiles: Per-user baseline reading speed
- shelf_entries: A user's progress through one book
- reading_sessions: Individual timed reading intervals
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import (
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..utils import to_iso
from .schemas import SessionType, ShelfStatus


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def now_iso() -> str:
    return to_iso(datetime.now(timezone.utc))


class Book(Base):
    """Book model - catalog data supplied by metadata lookups."""

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[Optional[str]] = mapped_column(String(500))
    page_count: Mapped[Optional[int]] = mapped_column(Integer)
    categories: Mapped[Optional[str]] = mapped_column(Text)  # JSON array

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=now_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=now_iso, onupdate=now_iso)

    shelf_entries: Mapped[list["ShelfEntry"]] = relationship(
        "ShelfEntry", back_populates="book", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', pages={self.page_count})>"

    def get_categories(self) -> list[str]:
        """Get categories as list."""
        if self.categories:
            return json.loads(self.categories)
        return []

    def set_categories(self, categories: list[str]) -> None:
        """Set categories from list."""
        self.categories = json.dumps(categories, ensure_ascii=False) if categories else None


class UserProfile(Base):
    """User profile model - baseline reading speed."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    base_ppm: Mapped[Optional[float]] = mapped_column(Float)  # pages per minute

    created_at: Mapped[str] = mapped_column(String(32), default=now_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=now_iso, onupdate=now_iso)

    def __repr__(self) -> str:
        return f"<UserProfile(user_id={self.user_id}, base_ppm={self.base_ppm})>"


class ShelfEntry(Base):
    """Shelf entry model - one per user and book."""

    __tablename__ = "shelf_entries"
    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_shelf_user_book"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    book_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=ShelfStatus.PLANNED.value, index=True
    )

    # Pages
    start_page: Mapped[int] = mapped_column(Integer, default=1)
    current_page: Mapped[int] = mapped_column(Integer, default=0)  # High-water mark
    end_page: Mapped[Optional[int]] = mapped_column(Integer)  # Target last page

    # Dates
    started_at: Mapped[Optional[str]] = mapped_column(String(32))
    completed_at: Mapped[Optional[str]] = mapped_column(String(32))  # Never cleared once set

    created_at: Mapped[str] = mapped_column(String(32), default=now_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=now_iso, onupdate=now_iso)

    book: Mapped["Book"] = relationship("Book", back_populates="shelf_entries")

    def __repr__(self) -> str:
        return (
            f"<ShelfEntry(id={self.id}, user={self.user_id}, "
            f"page={self.current_page}/{self.end_page}, status={self.status})>"
        )


class ReadingSession(Base):
    """Reading session model - one timed reading interval."""

    __tablename__ = "reading_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    book_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    shelf_entry_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("shelf_entries.id", ondelete="CASCADE"), nullable=False
    )
    session_type: Mapped[str] = mapped_column(String(10), default=SessionType.COMMUTE.value)

    # Plan
    planned_start_page: Mapped[Optional[int]] = mapped_column(Integer)
    planned_end_page: Mapped[Optional[int]] = mapped_column(Integer)
    planned_pages: Mapped[Optional[int]] = mapped_column(Integer)

    # Outcome, null while open
    actual_start_page: Mapped[Optional[int]] = mapped_column(Integer)
    actual_end_page: Mapped[Optional[int]] = mapped_column(Integer)
    actual_pages: Mapped[Optional[int]] = mapped_column(Integer)
    effective_minutes: Mapped[Optional[float]] = mapped_column(Float)

    started_at: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    ended_at: Mapped[Optional[str]] = mapped_column(String(32))

    # Commute context
    commute_profile_id: Mapped[Optional[str]] = mapped_column(String(36))
    origin_place_id: Mapped[Optional[str]] = mapped_column(String(100))
    destination_place_id: Mapped[Optional[str]] = mapped_column(String(100))
    selected_route_id: Mapped[Optional[str]] = mapped_column(String(100))
    commute_total_minutes: Mapped[Optional[float]] = mapped_column(Float)
    commute_walk_minutes: Mapped[Optional[float]] = mapped_column(Float)
    commute_transfers: Mapped[Optional[int]] = mapped_column(Integer)
    commute_fare: Mapped[Optional[float]] = mapped_column(Float)
    commute_route_json: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[str] = mapped_column(String(32), default=now_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=now_iso, onupdate=now_iso)

    def __repr__(self) -> str:
        return (
            f"<ReadingSession(id={self.id}, entry={self.shelf_entry_id}, "
            f"open={self.is_open})>"
        )

    @property
    def is_open(self) -> bool:
        """Check if the session has not been finished yet."""
        return self.ended_at is None

    def get_commute_route(self) -> Optional[Any]:
        """Get the stored commute route payload."""
        if self.commute_route_json:
            return json.loads(self.commute_route_json)
        return None

    def set_commute_route(self, route: Optional[Any]) -> None:
        """Set the commute route payload."""
        self.commute_route_json = json.dumps(route, ensure_ascii=False) if route is not None else None


# At most one open session per shelf entry
Index(
    "uq_reading_sessions_open_entry",
    ReadingSession.shelf_entry_id,
    unique=True,
    sqlite_where=ReadingSession.ended_at.is_(None),
    postgresql_where=ReadingSession.ended_at.is_(None),
)
