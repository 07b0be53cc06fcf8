"""Pace recommendations.

Turns an available-time budget into a page range:

    pages = minutes x pages_per_minute x difficulty x slack

starting right after the shelf's current page and clipped to the end of
the book. Recommending never writes anything.
"""

from typing import Optional

from ..config import PaceDefaults, get_config
from ..db.adapter import BookMetaSource, ProfileSource, SessionStore
from ..db.schemas import RecommendationResult
from ..db.sqlite import get_db
from ..errors import InvalidArgumentError, NotFoundError, PageCountUnavailableError
from ..reading.progress import resolve_page_count
from ..utils import first_present, is_positive_number, round_half_up
from .difficulty import difficulty_factor
from .slack import SlackEstimator


def plan_page_range(
    current_page: int,
    page_count: int,
    pages_wanted: int,
) -> tuple[int, int, int]:
    """Fit a page budget into what is left of the book.

    Args:
        current_page: Last page already read
        page_count: Last page of the book
        pages_wanted: Pages the time budget allows (at least 1)

    Returns:
        (start_page, end_page, pages_to_read). A finished book yields a start
        page past the end and nothing to read.
    """
    start_page = current_page + 1
    if start_page > page_count:
        return start_page, page_count, 0

    end_page = min(page_count, start_page + pages_wanted - 1)
    return start_page, end_page, end_page - start_page + 1


class PaceRecommender:
    """Recommends how much of a book to read in a given time."""

    def __init__(
        self,
        db: Optional[SessionStore] = None,
        profiles: Optional[ProfileSource] = None,
        books: Optional[BookMetaSource] = None,
        slack_estimator: Optional[SlackEstimator] = None,
        defaults: Optional[PaceDefaults] = None,
    ):
        """Initialize pace recommender.

        Args:
            db: Store for shelf entries (uses the global database if not provided)
            profiles: Source of user reading speeds (default: db)
            books: Source of book metadata (default: db)
            slack_estimator: Slack estimator (default: one over db)
            defaults: Baseline reading speed and slack settings (default: from config)
        """
        self.db = db or get_db()
        self.profiles = profiles or self.db
        self.books = books or self.db
        self.defaults = defaults or get_config().pace
        self.slack_estimator = slack_estimator or SlackEstimator(self.db, defaults=self.defaults)

    def resolve_ppm(self, user_id: str) -> float:
        """Get the user's reading speed, falling back to the default."""
        _, ppm = first_present(
            [
                ("profile", self.profiles.get_base_ppm(user_id)),
                ("default", self.defaults.default_ppm),
            ],
            accept=is_positive_number,
        )
        return float(ppm)

    def recommend(
        self,
        user_id: str,
        book_id: str,
        available_minutes: float,
    ) -> RecommendationResult:
        """Recommend a page range for the time available.

        Args:
            user_id: Verified user identifier
            book_id: Book on the user's shelf
            available_minutes: Effective reading time

        Returns:
            RecommendationResult with the range and every factor used

        Raises:
            InvalidArgumentError: If available_minutes is not positive
            NotFoundError: If the book is not on the user's shelf
            PageCountUnavailableError: If the book length is unknown
        """
        if not is_positive_number(available_minutes):
            raise InvalidArgumentError(
                f"available_minutes must be a positive number, got {available_minutes!r}"
            )

        entry = self.db.get_shelf_entry_for_book(user_id, book_id)
        if not entry:
            raise NotFoundError(f"Book {book_id} is not on the shelf of user {user_id}")

        meta = self.books.get_book_meta(book_id)
        _, page_count = resolve_page_count(entry, meta.page_count if meta else None)
        if page_count is None:
            raise PageCountUnavailableError(f"Page count is not available for book {book_id}")

        current_page = entry.current_page or 0
        used_ppm = self.resolve_ppm(user_id)
        difficulty = difficulty_factor(meta.categories if meta else None)
        slack = self.slack_estimator.estimate(user_id)

        # Never more than the whole book
        budget = min(available_minutes * used_ppm * difficulty * slack, page_count)
        pages_wanted = max(1, round_half_up(budget))
        start_page, end_page, pages_to_read = plan_page_range(
            current_page, page_count, pages_wanted
        )

        return RecommendationResult(
            shelf_entry_id=entry.id,
            book_id=book_id,
            title=meta.title if meta else None,
            available_minutes=available_minutes,
            start_page=start_page,
            end_page=end_page,
            pages_to_read=pages_to_read,
            page_count=page_count,
            remaining_pages=max(0, page_count - current_page),
            current_page=current_page,
            used_ppm=used_ppm,
            difficulty_factor=difficulty,
            slack_factor=slack,
            is_already_completed=current_page >= page_count,
        )
