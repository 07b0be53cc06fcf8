"""Pydantic schemas for data validation.

These schemas define the records that cross the boundary between the
reading/pace logic and the store.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class ShelfStatus(str, Enum):
    """Status of a book on a user's shelf."""

    PLANNED = "planned"
    READING = "reading"
    COMPLETED = "completed"
    DROPPED = "dropped"  # Set externally, never by a finished session


class SessionType(str, Enum):
    """How a reading session was scheduled."""

    COMMUTE = "commute"
    TIMER = "timer"


# ============================================================================
# Book Schemas
# ============================================================================


class BookCreate(BaseModel):
    """Schema for adding a book to the catalog."""

    title: str = Field(..., min_length=1, description="Book title")
    author: Optional[str] = None
    page_count: Optional[int] = Field(None, ge=0)
    categories: list[str] = Field(default_factory=list, description="Free-text category labels")

    @field_validator("categories", mode="before")
    @classmethod
    def clean_categories(cls, v) -> list[str]:
        """Drop blank labels and surrounding whitespace."""
        if v is None:
            return []
        return [str(label).strip() for label in v if str(label).strip()]


class BookMeta(BaseModel):
    """Read-only projection of catalog data used for recommendations."""

    title: Optional[str] = None
    page_count: Optional[int] = None
    categories: list[str] = Field(default_factory=list)


# ============================================================================
# Reading Session Schemas
# ============================================================================


class CommuteContext(BaseModel):
    """Commute details stored alongside a session. Not interpreted here."""

    commute_profile_id: Optional[str] = None
    origin_place_id: Optional[str] = None
    destination_place_id: Optional[str] = None
    selected_route_id: Optional[str] = None
    commute_total_minutes: Optional[float] = None
    commute_walk_minutes: Optional[float] = None
    commute_transfers: Optional[int] = None
    commute_fare: Optional[float] = None
    commute_route: Optional[Any] = Field(None, description="Raw route payload, stored as JSON")


class ReadingSessionCreate(BaseModel):
    """Schema for opening a reading session."""

    user_id: str = Field(..., min_length=1)
    shelf_entry_id: str = Field(..., min_length=1)
    book_id: str = Field(..., min_length=1)
    session_type: SessionType = SessionType.COMMUTE
    planned_start_page: int = Field(..., ge=0)
    planned_end_page: int = Field(..., ge=0)
    planned_pages: int = Field(..., ge=1)
    started_at: datetime
    commute: Optional[CommuteContext] = None


class SessionClose(BaseModel):
    """Values written when a session is closed."""

    actual_start_page: int = Field(..., ge=0)
    actual_end_page: int = Field(..., ge=0)
    actual_pages: int = Field(..., ge=0)
    effective_minutes: float = Field(..., gt=0)
    ended_at: datetime


# ============================================================================
# Shelf Entry Schemas
# ============================================================================


class ShelfEntryUpdate(BaseModel):
    """Schema for updating a shelf entry. All fields optional."""

    status: Optional[ShelfStatus] = None
    current_page: Optional[int] = Field(None, ge=0)
    end_page: Optional[int] = Field(None, ge=0)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


# ============================================================================
# Recommendation Schemas
# ============================================================================


class RecommendationResult(BaseModel):
    """A recommended page range for the time available."""

    shelf_entry_id: str
    book_id: str
    title: Optional[str] = None
    available_minutes: float
    start_page: int
    end_page: int
    pages_to_read: int = Field(..., ge=0)
    page_count: int = Field(..., gt=0)
    remaining_pages: int = Field(..., ge=0)
    current_page: int = Field(..., ge=0)
    used_ppm: float
    difficulty_factor: float
    slack_factor: float
    is_already_completed: bool
