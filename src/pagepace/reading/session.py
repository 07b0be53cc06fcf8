"""Reading session management.

Handles opening and finishing timed reading sessions. Finishing a
session is two steps: the session is closed (required), then its end
page is merged into shelf progress (best effort). A failed merge never
undoes the close; finishing the same session again retries the merge.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from ..db.adapter import SessionStore
from ..db.models import ReadingSession, ShelfEntry
from ..db.schemas import CommuteContext, ReadingSessionCreate, SessionClose, SessionType
from ..db.sqlite import get_db
from ..errors import InvalidArgumentError, NotFoundError
from ..utils import first_present, is_page_number, is_positive_number, utc_now
from .progress import merge_progress

# Start page assumed for a session that carries no page information at all
FALLBACK_START_PAGE = 1


@dataclass
class FinishOutcome:
    """Result of finishing a reading session."""

    session: ReadingSession
    progress_merged: bool
    shelf_entry: Optional[ShelfEntry] = None
    replayed: bool = False  # The session had already been closed

    @property
    def session_closed(self) -> bool:
        return self.session.ended_at is not None


def planned_page_count(start_page: int, end_page: int) -> int:
    """Pages in an inclusive range, at least one."""
    return max(1, end_page - start_page + 1)


def resolve_actual_start(session: ReadingSession) -> int:
    """Pick where a session actually started reading."""
    _, start = first_present(
        [
            ("actual_start_page", session.actual_start_page),
            ("planned_start_page", session.planned_start_page),
            ("fallback", FALLBACK_START_PAGE),
        ]
    )
    return start


def clamp_session_pages(actual_start: int, reported_end: int) -> tuple[int, int]:
    """Clamp a reported end page so the range never runs backwards.

    Returns:
        (safe_end_page, actual_pages)
    """
    safe_end = max(actual_start, reported_end)
    return safe_end, max(0, safe_end - actual_start + 1)


class SessionManager:
    """Manages the lifecycle of reading sessions."""

    def __init__(
        self,
        db: Optional[SessionStore] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize session manager.

        Args:
            db: Session store (uses the global database if not provided)
            clock: Source of the current time
        """
        self.db = db or get_db()
        self.clock = clock

    def start_session(
        self,
        user_id: str,
        shelf_entry_id: str,
        book_id: str,
        start_page: int,
        end_page: int,
        planned_pages: Optional[int] = None,
        session_type: SessionType = SessionType.COMMUTE,
        commute: Optional[CommuteContext] = None,
    ) -> ReadingSession:
        """Open a new reading session.

        Args:
            user_id: Verified user identifier
            shelf_entry_id: Shelf entry the session reads from
            book_id: Book being read
            start_page: First planned page
            end_page: Last planned page
            planned_pages: Planned page count (default: size of the page range)
            session_type: commute or timer
            commute: Commute details to store with the session

        Returns:
            The open ReadingSession

        Raises:
            InvalidArgumentError: If page numbers are malformed
            NotFoundError: If the shelf entry does not belong to the user and book
            SessionConflictError: If the shelf entry already has an open session
        """
        for name, value in (("start_page", start_page), ("end_page", end_page)):
            if not is_page_number(value):
                raise InvalidArgumentError(f"{name} must be a non-negative integer, got {value!r}")
        if planned_pages is None:
            planned_pages = planned_page_count(start_page, end_page)
        elif not is_page_number(planned_pages) or planned_pages < 1:
            raise InvalidArgumentError(f"planned_pages must be at least 1, got {planned_pages!r}")
        try:
            session_type = SessionType(session_type)
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown session type: {session_type!r}") from e

        entry = self.db.get_shelf_entry(shelf_entry_id, user_id)
        if not entry or entry.book_id != book_id:
            raise NotFoundError(f"Shelf entry not found: {shelf_entry_id}")

        created = self.db.create_session(
            ReadingSessionCreate(
                user_id=user_id,
                shelf_entry_id=shelf_entry_id,
                book_id=book_id,
                session_type=session_type,
                planned_start_page=start_page,
                planned_end_page=end_page,
                planned_pages=planned_pages,
                started_at=self.clock(),
                commute=commute if session_type == SessionType.COMMUTE else None,
            )
        )
        logger.debug(
            f"Started {session_type.value} session {created.id} "
            f"for pages {start_page}-{end_page} ({planned_pages} planned)"
        )
        return created

    def finish_session(
        self,
        user_id: str,
        session_id: str,
        actual_end_page: int,
        duration_minutes: float,
    ) -> FinishOutcome:
        """Finish a reading session and reflect it in shelf progress.

        Args:
            user_id: Verified user identifier
            session_id: Session to finish
            actual_end_page: Last page the user reports reading
            duration_minutes: Time spent reading

        Returns:
            FinishOutcome with the closed session and whether progress was merged

        Raises:
            InvalidArgumentError: If the end page or duration is malformed
            NotFoundError: If the session does not exist for this user
            StoreUnavailableError: If the session could not be closed
        """
        if not is_page_number(actual_end_page):
            raise InvalidArgumentError(
                f"actual_end_page must be a non-negative integer, got {actual_end_page!r}"
            )
        if not is_positive_number(duration_minutes):
            raise InvalidArgumentError(
                f"duration_minutes must be a positive number, got {duration_minutes!r}"
            )

        session = self.db.get_reading_session(session_id, user_id)
        if not session:
            raise NotFoundError(f"Reading session not found: {session_id}")

        now = self.clock()
        replayed = not session.is_open

        if replayed:
            logger.info(
                f"Session {session_id} already closed; keeping its recorded outcome "
                f"and retrying the progress merge"
            )
            closed = session
        else:
            actual_start = resolve_actual_start(session)
            safe_end, actual_pages = clamp_session_pages(actual_start, actual_end_page)
            closed = self.db.close_reading_session(
                session_id,
                user_id,
                SessionClose(
                    actual_start_page=actual_start,
                    actual_end_page=safe_end,
                    actual_pages=actual_pages,
                    effective_minutes=duration_minutes,
                    ended_at=now,
                ),
            )
            if closed is None:
                raise NotFoundError(f"Reading session not found: {session_id}")
            logger.debug(
                f"Closed session {session_id}: pages {closed.actual_start_page}-"
                f"{closed.actual_end_page} in {closed.effective_minutes} min"
            )

        entry = self._merge_into_shelf(user_id, closed, now)
        return FinishOutcome(
            session=closed,
            progress_merged=entry is not None,
            shelf_entry=entry,
            replayed=replayed,
        )

    def _merge_into_shelf(
        self, user_id: str, session: ReadingSession, now: datetime
    ) -> Optional[ShelfEntry]:
        """Best-effort progress merge. Returns the updated entry, None if skipped or failed."""
        try:
            entry = self.db.get_shelf_entry(session.shelf_entry_id, user_id)
            if not entry:
                logger.warning(
                    f"Shelf entry {session.shelf_entry_id} not found; "
                    f"session {session.id} closed without a progress update"
                )
                return None

            merged = merge_progress(entry, session.actual_end_page or 0, now)
            updated = self.db.update_shelf_entry(entry.id, user_id, merged.to_update())
            if updated is None:
                logger.warning(f"Shelf entry {entry.id} disappeared before its progress update")
            return updated
        except Exception as e:
            logger.opt(exception=e).error(
                f"Progress merge failed for session {session.id}; "
                f"the session stays closed: {e}"
            )
            return None
