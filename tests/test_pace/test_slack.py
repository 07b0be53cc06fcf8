"""Tests for adaptive slack estimation."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from pagepace.config import PaceDefaults
from pagepace.errors import StoreUnavailableError
from pagepace.pace.slack import (
    SlackEstimator,
    ratio_delta,
    session_ratios,
    slack_from_ratios,
)
from pagepace.reading.session import SessionManager

USER = "user-1"


def outcome(planned_pages, actual_pages):
    return SimpleNamespace(planned_pages=planned_pages, actual_pages=actual_pages)


def read(manager: SessionManager, entry, planned: int, actual: int) -> None:
    """Record one finished session that planned and read the given page counts."""
    session = manager.start_session(USER, entry.id, entry.book_id, 1, planned)
    manager.finish_session(USER, session.id, actual, 20)


@pytest.fixture
def manager(db, clock) -> SessionManager:
    return SessionManager(db, clock=clock)


@pytest.fixture
def estimator(db, clock) -> SlackEstimator:
    return SlackEstimator(db, defaults=PaceDefaults(), clock=clock)


class TestRatioDelta:
    """Tests for the ratio band table."""

    @pytest.mark.parametrize(
        "avg_ratio,expected",
        [
            (0.0, -0.03),
            (0.79, -0.03),
            (0.80, -0.01),
            (0.94, -0.01),
            (0.95, 0.0),
            (1.0, 0.0),
            (1.05, 0.0),
            (1.06, 0.01),
            (1.20, 0.01),
            (1.21, 0.03),
            (2.0, 0.03),
        ],
    )
    def test_bands(self, avg_ratio, expected):
        assert ratio_delta(avg_ratio) == expected


class TestSessionRatios:
    """Tests for extracting usable ratios."""

    def test_ratios(self):
        assert session_ratios([outcome(20, 15), outcome(10, 10)]) == [0.75, 1.0]

    def test_skips_unusable_sessions(self):
        sessions = [outcome(None, 10), outcome(0, 10), outcome(-5, 10), outcome(10, None)]
        assert session_ratios(sessions) == []

    def test_clips_ratio(self):
        assert session_ratios([outcome(10, 45)]) == [2.0]

    def test_zero_pages_read_counts(self):
        assert session_ratios([outcome(10, 0)]) == [0.0]


class TestSlackFromRatios:
    """Tests for turning ratios into a slack factor."""

    @pytest.mark.parametrize("ratios", [[], [1.5], [1.5, 1.5]])
    def test_too_few_samples(self, ratios):
        estimate = slack_from_ratios(ratios, PaceDefaults())

        assert estimate.slack == 0.90
        assert estimate.is_baseline
        assert estimate.samples == len(ratios)

    def test_on_plan(self):
        assert slack_from_ratios([1.0, 1.0, 1.0], PaceDefaults()).slack == 0.90

    def test_over_reading(self):
        estimate = slack_from_ratios([1.5, 1.5, 1.5], PaceDefaults())

        assert estimate.slack == 0.93
        assert estimate.avg_ratio == 1.5
        assert estimate.delta == 0.03

    def test_under_reading(self):
        assert slack_from_ratios([0.5, 0.5, 0.5], PaceDefaults()).slack == 0.87

    def test_slightly_under(self):
        assert slack_from_ratios([0.9, 0.9, 0.9], PaceDefaults()).slack == 0.89

    def test_clamped_to_ceiling(self):
        assert slack_from_ratios([1.5] * 3, PaceDefaults(baseline_slack=0.94)).slack == 0.95

    def test_clamped_to_floor(self):
        assert slack_from_ratios([0.1] * 3, PaceDefaults(baseline_slack=0.86)).slack == 0.85

    def test_custom_sample_minimum(self):
        assert slack_from_ratios([1.5], PaceDefaults(slack_min_samples=1)).slack == 0.93


class TestSlackEstimator:
    """Tests for SlackEstimator over stored history."""

    def test_no_history(self, db, estimator):
        assert estimator.estimate(USER) == 0.90

    def test_two_sessions_is_not_enough(self, db, shelf_entry, manager, estimator):
        read(manager, shelf_entry, planned=10, actual=15)
        read(manager, shelf_entry, planned=10, actual=15)

        assert estimator.estimate(USER) == 0.90

    def test_adapts_to_over_reading(self, db, shelf_entry, other_entry, manager, estimator):
        read(manager, shelf_entry, planned=10, actual=15)
        read(manager, other_entry, planned=10, actual=15)
        read(manager, other_entry, planned=10, actual=15)

        estimate = estimator.summarize(USER)
        assert estimate.slack == 0.93
        assert estimate.samples == 3

    def test_adapts_to_under_reading(self, db, shelf_entry, manager, estimator):
        for _ in range(3):
            read(manager, shelf_entry, planned=20, actual=10)

        assert estimator.estimate(USER) == 0.87

    def test_open_sessions_ignored(self, db, shelf_entry, other_entry, manager, estimator):
        read(manager, shelf_entry, planned=10, actual=15)
        read(manager, shelf_entry, planned=10, actual=15)
        manager.start_session(USER, other_entry.id, other_entry.book_id, 1, 10)

        assert estimator.summarize(USER).samples == 2

    def test_window_excludes_old_sessions(self, db, shelf_entry, manager, estimator, clock):
        for _ in range(3):
            read(manager, shelf_entry, planned=10, actual=15)

        clock.advance(days=8)

        estimate = estimator.summarize(USER)
        assert estimate.samples == 0
        assert estimate.slack == 0.90

    def test_window_start_is_inclusive(self, db, shelf_entry, manager, estimator, clock):
        for _ in range(3):
            read(manager, shelf_entry, planned=10, actual=15)

        clock.advance(days=7)

        estimate = estimator.summarize(USER)
        assert estimate.samples == 3
        assert estimate.slack == 0.93

    def test_other_users_history_ignored(self, db, shelf_entry, manager, estimator):
        for _ in range(3):
            read(manager, shelf_entry, planned=10, actual=15)

        assert estimator.estimate("user-2") == 0.90

    def test_store_failure_uses_baseline(self, db, estimator, logs):
        with patch.object(db, "get_recent_sessions", side_effect=StoreUnavailableError("locked")):
            estimate = estimator.summarize(USER)

        assert estimate.slack == 0.90
        assert estimate.is_baseline
        assert any("locked" in message for message in logs.messages("WARNING"))

    def test_any_read_error_uses_baseline(self, db, estimator, logs):
        with patch.object(db, "get_recent_sessions", side_effect=TimeoutError("slow")):
            assert estimator.estimate(USER) == 0.90

        assert any("slow" in message for message in logs.messages("WARNING"))

    def test_defaults_from_config(self, db, monkeypatch):
        monkeypatch.setenv("PAGEPACE_BASELINE_SLACK", "0.88")

        assert SlackEstimator(db).estimate(USER) == 0.88
