"""Adaptive slack from recent reading history.

Compares how many pages each recent session planned against how many
were actually read, and nudges the slack factor toward the user's real
behaviour: consistent under-reading shrinks future targets, consistent
over-reading grows them slightly.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from loguru import logger

from ..config import PaceDefaults, get_config
from ..db.adapter import SessionStore
from ..db.models import ReadingSession
from ..db.sqlite import get_db
from ..utils import clamp, utc_now

# A single session counts at most this many times its plan
MAX_SESSION_RATIO = 2.0

# (upper bound, bound inclusive, slack delta), checked low to high
RATIO_BANDS: tuple[tuple[float, bool, float], ...] = (
    (0.80, False, -0.03),
    (0.95, False, -0.01),
    (1.05, True, 0.0),
    (1.20, True, 0.01),
    (math.inf, True, 0.03),
)


@dataclass
class SlackEstimate:
    """How a slack factor was derived."""

    slack: float
    samples: int
    avg_ratio: Optional[float] = None
    delta: float = 0.0

    @property
    def is_baseline(self) -> bool:
        return self.avg_ratio is None


def session_ratios(sessions: Iterable[ReadingSession]) -> list[float]:
    """Get clipped actual/planned ratios for sessions with a usable outcome."""
    ratios = []
    for session in sessions:
        if not session.planned_pages or session.planned_pages <= 0:
            continue
        if session.actual_pages is None:
            continue
        ratio = session.actual_pages / session.planned_pages
        ratios.append(clamp(ratio, 0.0, MAX_SESSION_RATIO))
    return ratios


def ratio_delta(avg_ratio: float) -> float:
    """Map an average actual/planned ratio to a slack adjustment."""
    for upper, inclusive, delta in RATIO_BANDS:
        if avg_ratio < upper or (inclusive and avg_ratio == upper):
            return delta
    return RATIO_BANDS[-1][2]


def slack_from_ratios(ratios: list[float], defaults: PaceDefaults) -> SlackEstimate:
    """Derive the slack factor from session ratios."""
    if len(ratios) < defaults.slack_min_samples:
        return SlackEstimate(slack=defaults.baseline_slack, samples=len(ratios))

    avg_ratio = sum(ratios) / len(ratios)
    delta = ratio_delta(avg_ratio)
    slack = clamp(round(defaults.baseline_slack + delta, 4), defaults.slack_min, defaults.slack_max)
    return SlackEstimate(slack=slack, samples=len(ratios), avg_ratio=avg_ratio, delta=delta)


class SlackEstimator:
    """Derives a per-user slack factor from the trailing session window."""

    def __init__(
        self,
        db: Optional[SessionStore] = None,
        defaults: Optional[PaceDefaults] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize slack estimator.

        Args:
            db: Session store to read history from
            defaults: Baseline, bounds and window (default: from config)
            clock: Source of the current time
        """
        self.db = db or get_db()
        self.defaults = defaults or get_config().pace
        self.clock = clock

    def summarize(self, user_id: str) -> SlackEstimate:
        """Derive the slack factor and report how it was reached.

        Never raises for a failed history read; falls back to the baseline instead.
        """
        since = self.clock() - timedelta(days=self.defaults.slack_window_days)
        try:
            sessions = self.db.get_recent_sessions(user_id, since)
        except Exception as e:
            logger.opt(exception=e).warning(
                f"Cannot read session history for {user_id}, using baseline slack: {e}"
            )
            return SlackEstimate(slack=self.defaults.baseline_slack, samples=0)

        estimate = slack_from_ratios(session_ratios(sessions), self.defaults)
        if estimate.is_baseline:
            logger.debug(f"{estimate.samples} usable sessions for {user_id}; using baseline slack")
        else:
            logger.debug(
                f"Slack for {user_id}: avg ratio {estimate.avg_ratio:.2f} over "
                f"{estimate.samples} sessions -> {estimate.slack}"
            )
        return estimate

    def estimate(self, user_id: str) -> float:
        """Get the slack factor for a user."""
        return self.summarize(user_id).slack
