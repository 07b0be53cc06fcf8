"""Tests for pace recommendations."""

import pytest

from pagepace.config import PaceDefaults
from pagepace.db.schemas import BookCreate, ShelfEntryUpdate, ShelfStatus
from pagepace.errors import InvalidArgumentError, NotFoundError, PageCountUnavailableError
from pagepace.pace.recommender import PaceRecommender, plan_page_range
from pagepace.pace.slack import SlackEstimator
from pagepace.reading.session import SessionManager

USER = "user-1"


@pytest.fixture
def recommender(db, clock) -> PaceRecommender:
    defaults = PaceDefaults()
    return PaceRecommender(
        db,
        defaults=defaults,
        slack_estimator=SlackEstimator(db, defaults=defaults, clock=clock),
    )


class TestPlanPageRange:
    """Tests for fitting a page budget into the rest of the book."""

    def test_from_the_start(self):
        assert plan_page_range(0, 300, 22) == (1, 22, 22)

    def test_clipped_at_end(self):
        assert plan_page_range(290, 300, 22) == (291, 300, 10)

    def test_last_page(self):
        assert plan_page_range(299, 300, 22) == (300, 300, 1)

    def test_finished(self):
        assert plan_page_range(300, 300, 22) == (301, 300, 0)
        assert plan_page_range(350, 300, 22) == (351, 300, 0)


class TestRecommend:
    """Tests for PaceRecommender.recommend."""

    def test_new_book_defaults(self, db, shelf_entry, recommender):
        result = recommender.recommend(USER, shelf_entry.book_id, 30)

        assert result.start_page == 1
        assert result.end_page == 22
        assert result.pages_to_read == 22
        assert result.used_ppm == 0.8
        assert result.difficulty_factor == 1.0
        assert result.slack_factor == 0.9
        assert result.page_count == 300
        assert result.remaining_pages == 300
        assert result.current_page == 0
        assert result.title == "The Test Book"
        assert result.shelf_entry_id == shelf_entry.id
        assert not result.is_already_completed

    def test_profile_speed_and_category(self, db, recommender):
        comic = db.create_book(BookCreate(title="Comic", page_count=200, categories=["국내도서>만화"]))
        db.add_to_shelf(USER, comic.id)
        db.set_base_ppm(USER, 1.5)

        result = recommender.recommend(USER, comic.id, 20)

        assert result.used_ppm == 1.5
        assert result.difficulty_factor == 1.3
        assert result.pages_to_read == 35
        assert (result.start_page, result.end_page) == (1, 35)

    def test_non_positive_profile_speed_ignored(self, db, shelf_entry, recommender):
        db.set_base_ppm(USER, 0)
        assert recommender.recommend(USER, shelf_entry.book_id, 30).used_ppm == 0.8

    def test_near_the_end(self, db, shelf_entry, recommender):
        db.update_shelf_entry(
            shelf_entry.id, USER, ShelfEntryUpdate(current_page=290, status=ShelfStatus.READING)
        )

        result = recommender.recommend(USER, shelf_entry.book_id, 30)

        assert (result.start_page, result.end_page) == (291, 300)
        assert result.pages_to_read == 10
        assert result.remaining_pages == 10
        assert not result.is_already_completed

    def test_already_finished(self, db, shelf_entry, recommender):
        db.update_shelf_entry(
            shelf_entry.id, USER, ShelfEntryUpdate(current_page=300, status=ShelfStatus.COMPLETED)
        )

        result = recommender.recommend(USER, shelf_entry.book_id, 30)

        assert result.is_already_completed
        assert result.pages_to_read == 0
        assert result.remaining_pages == 0
        assert result.start_page == 301
        assert result.end_page == 300

    def test_huge_budget_reads_whole_book(self, db, shelf_entry, recommender):
        db.set_base_ppm(USER, 5)

        result = recommender.recommend(USER, shelf_entry.book_id, 1e308)

        assert (result.start_page, result.end_page) == (1, 300)
        assert result.pages_to_read == 300

    def test_at_least_one_page(self, db, shelf_entry, recommender):
        result = recommender.recommend(USER, shelf_entry.book_id, 0.5)
        assert result.pages_to_read == 1

    def test_shelf_end_page_overrides_book(self, db, shelf_entry, recommender):
        db.update_shelf_entry(shelf_entry.id, USER, ShelfEntryUpdate(end_page=250, current_page=240))

        result = recommender.recommend(USER, shelf_entry.book_id, 30)

        assert result.page_count == 250
        assert (result.start_page, result.end_page) == (241, 250)

    def test_book_not_on_shelf(self, db, book, recommender):
        with pytest.raises(NotFoundError):
            recommender.recommend(USER, book.id, 30)

    def test_other_users_shelf(self, db, shelf_entry, recommender):
        with pytest.raises(NotFoundError):
            recommender.recommend("user-2", shelf_entry.book_id, 30)

    def test_unknown_page_count(self, db, recommender):
        untitled = db.create_book(BookCreate(title="No Length"))
        db.add_to_shelf(USER, untitled.id)

        with pytest.raises(PageCountUnavailableError):
            recommender.recommend(USER, untitled.id, 30)

    @pytest.mark.parametrize("minutes", [0, -10, float("nan"), None, "30"])
    def test_invalid_minutes(self, db, shelf_entry, recommender, minutes):
        with pytest.raises(InvalidArgumentError, match="available_minutes"):
            recommender.recommend(USER, shelf_entry.book_id, minutes)

    def test_slack_follows_history(self, db, shelf_entry, other_entry, recommender, clock):
        manager = SessionManager(db, clock=clock)
        for _ in range(3):
            session = manager.start_session(USER, other_entry.id, other_entry.book_id, 1, 10)
            manager.finish_session(USER, session.id, 15, 20)

        result = recommender.recommend(USER, shelf_entry.book_id, 100)

        assert result.slack_factor == 0.93
        assert result.pages_to_read == 74

    def test_recommend_does_not_write(self, db, shelf_entry, recommender, clock):
        before = db.get_shelf_entry(shelf_entry.id, USER)

        recommender.recommend(USER, shelf_entry.book_id, 30)

        after = db.get_shelf_entry(shelf_entry.id, USER)
        assert after.current_page == before.current_page
        assert after.status == before.status
        assert after.updated_at == before.updated_at
        assert db.get_recent_sessions(USER, since=clock().replace(year=2000)) == []


class TestRecommenderDefaults:
    """Tests for recommender construction."""

    def test_default_speed_from_config(self, db, shelf_entry, monkeypatch):
        monkeypatch.setenv("PAGEPACE_DEFAULT_PPM", "1.0")

        result = PaceRecommender(db).recommend(USER, shelf_entry.book_id, 30)

        assert result.used_ppm == 1.0
        assert result.pages_to_read == 27
