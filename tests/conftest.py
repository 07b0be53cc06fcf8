"""Pytest configuration and shared fixtures.

This module provides fixtures for testing pagepace, including temporary
databases, a controllable clock, sample catalog data and a log capture.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest
from loguru import logger

from pagepace.config import reset_config
from pagepace.db.models import Book, ShelfEntry
from pagepace.db.schemas import BookCreate
from pagepace.db.sqlite import Database, reset_db

TEST_USER = "user-1"
OTHER_USER = "user-2"


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="function")
def db(temp_db_path: Path) -> Generator[Database, None, None]:
    """Create a test database instance."""
    # Reset any global state
    reset_db()
    reset_config()

    os.environ["PAGEPACE_DB_PATH"] = str(temp_db_path)

    database = Database(str(temp_db_path))
    database.create_tables()
    yield database

    # Cleanup
    database.engine.dispose()
    reset_db()
    reset_config()
    if "PAGEPACE_DB_PATH" in os.environ:
        del os.environ["PAGEPACE_DB_PATH"]


@pytest.fixture
def clock() -> FixedClock:
    """A fixed clock starting on a weekday morning."""
    return FixedClock(datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc))


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def book(db: Database) -> Book:
    """A 300 page book without categories."""
    return db.create_book(BookCreate(title="The Test Book", author="Test Author", page_count=300))


@pytest.fixture
def shelf_entry(db: Database, book: Book) -> ShelfEntry:
    """The test user's planned shelf entry for the sample book."""
    entry, _ = db.add_to_shelf(TEST_USER, book.id)
    return entry


@pytest.fixture
def other_book(db: Database) -> Book:
    """A second book, used to build history without touching the first."""
    return db.create_book(BookCreate(title="Another Book", page_count=500))


@pytest.fixture
def other_entry(db: Database, other_book: Book) -> ShelfEntry:
    entry, _ = db.add_to_shelf(TEST_USER, other_book.id)
    return entry


# ============================================================================
# Logging Fixtures
# ============================================================================


class LogCapture:
    """Collects loguru records."""

    def __init__(self):
        self.records: list[dict] = []

    def write(self, message) -> None:
        self.records.append(message.record)

    def messages(self, level: str) -> list[str]:
        """Messages logged at one level."""
        return [record["message"] for record in self.records if record["level"].name == level]


@pytest.fixture
def logs() -> Generator[LogCapture, None, None]:
    """Capture loguru records emitted during a test."""
    capture = LogCapture()
    handler_id = logger.add(capture.write, level="DEBUG")
    yield capture
    logger.remove(handler_id)
