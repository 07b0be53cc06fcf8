"""Shelf progress tracking.

Merges finished sessions into shelf progress and lists what a user is
reading, with progress percentages.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..db.models import Book, ShelfEntry
from ..db.schemas import ShelfEntryUpdate, ShelfStatus
from ..db.sqlite import Database, get_db
from ..errors import NotFoundError
from ..utils import first_present, from_iso, is_positive_number


@dataclass
class ProgressMerge:
    """Shelf state after reflecting one session's end page."""

    current_page: int
    status: ShelfStatus
    started_at: Optional[datetime]
    completed_at: Optional[datetime]

    def to_update(self) -> ShelfEntryUpdate:
        return ShelfEntryUpdate(
            current_page=self.current_page,
            status=self.status,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )


def merge_progress(
    entry: ShelfEntry,
    reached_page: int,
    now: datetime,
) -> ProgressMerge:
    """Compute a shelf entry's state after a session reached ``reached_page``.

    Progress is a high-water mark, so replaying the same or an older session
    never moves it backwards. ``completed_at`` keeps its first value.

    Args:
        entry: Shelf entry as currently stored
        reached_page: Last page read in the session
        now: Timestamp for newly set dates

    Returns:
        ProgressMerge with the values to persist
    """
    previous = entry.current_page or 0
    new_current = max(previous, reached_page)

    status = ShelfStatus(entry.status) if entry.status else ShelfStatus.PLANNED
    started_at = from_iso(entry.started_at)
    completed_at = from_iso(entry.completed_at)

    if is_positive_number(entry.end_page) and new_current >= entry.end_page:
        status = ShelfStatus.COMPLETED
        if completed_at is None:
            completed_at = now
    elif new_current > 0 and status == ShelfStatus.PLANNED:
        status = ShelfStatus.READING

    if status != ShelfStatus.PLANNED and started_at is None:
        started_at = now

    return ProgressMerge(
        current_page=new_current,
        status=status,
        started_at=started_at,
        completed_at=completed_at,
    )


def resolve_page_count(entry: ShelfEntry, book_page_count: Optional[int]) -> tuple[Optional[str], Optional[int]]:
    """Pick the book length: the shelf's target page, else the catalog page count."""
    return first_present(
        [("shelf_end_page", entry.end_page), ("book_page_count", book_page_count)],
        accept=is_positive_number,
    )


def progress_percent(current_page: int, page_count: Optional[int]) -> float:
    """Get progress as a percentage, 0 when the length is unknown."""
    if not page_count or page_count <= 0:
        return 0.0
    return round(min(100.0, (current_page / page_count) * 100), 1)


@dataclass
class ShelfItem:
    """A shelf entry joined with its book."""

    shelf_entry_id: str
    book_id: str
    title: str
    author: Optional[str]
    status: ShelfStatus
    start_page: Optional[int]
    current_page: int
    end_page: Optional[int]
    page_count: Optional[int]
    progress: float
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    @classmethod
    def from_row(cls, entry: ShelfEntry, book: Book) -> "ShelfItem":
        _, page_count = resolve_page_count(entry, book.page_count)
        current_page = entry.current_page or 0
        return cls(
            shelf_entry_id=entry.id,
            book_id=book.id,
            title=book.title,
            author=book.author,
            status=ShelfStatus(entry.status),
            start_page=entry.start_page,
            current_page=current_page,
            end_page=entry.end_page,
            page_count=page_count,
            progress=progress_percent(current_page, page_count),
            started_at=entry.started_at,
            completed_at=entry.completed_at,
        )


@dataclass
class Bookshelf:
    """All of a user's shelf items grouped by status."""

    reading: list[ShelfItem] = field(default_factory=list)
    planned: list[ShelfItem] = field(default_factory=list)
    completed: list[ShelfItem] = field(default_factory=list)
    dropped: list[ShelfItem] = field(default_factory=list)

    def group(self, status: ShelfStatus) -> list[ShelfItem]:
        return getattr(self, status.value)

    @property
    def total(self) -> int:
        return len(self.reading) + len(self.planned) + len(self.completed) + len(self.dropped)


class ShelfTracker:
    """Manages which books a user has shelved and how far along they are."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize shelf tracker.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def add_to_shelf(self, user_id: str, book_id: str) -> tuple[ShelfItem, bool]:
        """Shelve a book as planned.

        Args:
            user_id: Owner of the shelf
            book_id: Catalog book to add

        Returns:
            (item, already_exists)

        Raises:
            NotFoundError: If the book is not in the catalog
        """
        entry, created = self.db.add_to_shelf(user_id, book_id)
        book = self.db.get_book(book_id)
        if not book:
            raise NotFoundError(f"Book not found: {book_id}")
        return ShelfItem.from_row(entry, book), not created

    def current_reading(self, user_id: str) -> list[ShelfItem]:
        """Get books the user is currently reading, most recently updated first."""
        rows = self.db.get_shelf_entries(user_id, status=ShelfStatus.READING)
        return [ShelfItem.from_row(entry, book) for entry, book in rows]

    def bookshelf(self, user_id: str) -> Bookshelf:
        """Get the whole shelf grouped by status."""
        shelf = Bookshelf()
        for entry, book in self.db.get_shelf_entries(user_id):
            item = ShelfItem.from_row(entry, book)
            shelf.group(item.status).append(item)
        return shelf
