"""Reading session lifecycle and shelf progress."""

from .progress import (
    Bookshelf,
    ProgressMerge,
    ShelfItem,
    ShelfTracker,
    merge_progress,
    progress_percent,
    resolve_page_count,
)
from .session import (
    FinishOutcome,
    SessionManager,
    clamp_session_pages,
    planned_page_count,
    resolve_actual_start,
)

__all__ = [
    "Bookshelf",
    "ProgressMerge",
    "ShelfItem",
    "ShelfTracker",
    "merge_progress",
    "progress_percent",
    "resolve_page_count",
    "FinishOutcome",
    "SessionManager",
    "clamp_session_pages",
    "planned_page_count",
    "resolve_actual_start",
]
