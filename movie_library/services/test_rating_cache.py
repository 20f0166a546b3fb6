from decimal import Decimal

from movie_library.db.models.rating_cache import MovieRatingCache
from movie_library.services.rating_cache import (
    compute_movie_stats,
    refresh_rating_cache,
    round_rating,
)


def _cache_row(db, imdb_id):
    db.expire_all()
    return db.get(MovieRatingCache, imdb_id)


def test_compute_movie_stats_returns_none_without_reviews(db):
    assert compute_movie_stats(db, "tt0000001") is None


def test_compute_movie_stats_averages_all_reviews(db, factory):
    alice = factory.user("a@example.com")
    bob = factory.user("b@example.com")
    carol = factory.user("c@example.com")
    factory.review(alice, "tt0000001", 10)
    factory.review(bob, "tt0000001", 9)
    factory.review(carol, "tt0000001", 9)

    stats = compute_movie_stats(db, "tt0000001")

    assert stats.review_count == 3
    assert stats.average_rating == Decimal("9.3")


def test_round_rating_rounds_half_up():
    assert round_rating(Decimal("9.25")) == Decimal("9.3")
    assert round_rating(Decimal("9.75")) == Decimal("9.8")
    assert round_rating(Decimal("7")) == Decimal("7.0")


def test_refresh_creates_cache_row(db, factory):
    alice = factory.user("a@example.com")
    factory.review(alice, "tt0000001", 7)

    refresh_rating_cache(db, "tt0000001")
    db.commit()

    row = _cache_row(db, "tt0000001")
    assert row is not None
    assert row.average_rating == Decimal("7.0")
    assert row.review_count == 1


def test_refresh_updates_existing_cache_row(db, factory):
    alice = factory.user("a@example.com")
    bob = factory.user("b@example.com")
    factory.review(alice, "tt0000001", 10)
    factory.review(bob, "tt0000001", 5)
    factory.rating_cache("tt0000001", "10.0", 1)

    stats = refresh_rating_cache(db, "tt0000001")
    db.commit()

    assert stats.average_rating == Decimal("7.5")
    row = _cache_row(db, "tt0000001")
    assert row.average_rating == Decimal("7.5")
    assert row.review_count == 2


def test_refresh_deletes_cache_row_when_no_reviews_left(db, factory):
    factory.rating_cache("tt0000001", "8.0", 1)

    assert refresh_rating_cache(db, "tt0000001") is None
    db.commit()

    assert _cache_row(db, "tt0000001") is None


def test_refresh_without_reviews_and_without_row_is_noop(db):
    assert refresh_rating_cache(db, "tt0000001") is None
    db.commit()

    assert _cache_row(db, "tt0000001") is None


def test_refresh_only_touches_the_given_movie(db, factory):
    alice = factory.user("a@example.com")
    factory.review(alice, "tt0000001", 4)
    factory.rating_cache("tt0000002", "6.0", 3)

    refresh_rating_cache(db, "tt0000001")
    db.commit()

    other = _cache_row(db, "tt0000002")
    assert other.average_rating == Decimal("6.0")
    assert other.review_count == 3
