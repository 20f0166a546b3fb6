"""
Rating cache maintenance.

movie_rating_cache holds one row per movie with the mean rating and the
number of reviews. The row is a projection of the reviews table: it exists
only while the movie has reviews and is recomputed from scratch after every
review insert, update or delete, inside the caller's transaction.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import select, delete, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from movie_library.db.models.rating_cache import MovieRatingCache
from movie_library.db.models.reviews import Review
from movie_library.db.models.users import utcnow


logger = logging.getLogger(__name__)

ONE_DECIMAL = Decimal("0.1")

# Dialects with INSERT ... ON CONFLICT DO UPDATE support
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass
class MovieStats:
    '''
    Aggregate rating of one movie.
    '''
    average_rating: Decimal
    review_count: int


def round_rating(value: Decimal) -> Decimal:
    return value.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def compute_movie_stats(db: Session, imdb_id: str) -> Optional[MovieStats]:
    '''
    Aggregates all reviews of a movie straight from the reviews table.

    Returns
    -------
    MovieStats or None if the movie has no reviews.
    '''
    stmt = select(
        func.sum(Review.rating),
        func.count(Review.id),
    ).where(Review.imdb_id == imdb_id)
    rating_sum, review_count = db.execute(stmt).one()

    if not review_count:
        return None

    # Exact mean of the integer ratings, stored with one fractional digit
    average = round_rating(Decimal(int(rating_sum)) / Decimal(review_count))
    return MovieStats(average_rating=average, review_count=int(review_count))


def upsert_rating_cache(db: Session, imdb_id: str, stats: MovieStats) -> None:
    '''
    Writes the cache row of a movie, inserting it if missing. Uses a single
    INSERT ... ON CONFLICT statement where the dialect has one, so two
    concurrent refreshes of the same movie never collide on the primary key.
    '''
    now = utcnow()
    dialect_insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)

    if dialect_insert is not None:
        stmt = dialect_insert(MovieRatingCache).values(
            imdb_id=imdb_id,
            average_rating=stats.average_rating,
            review_count=stats.review_count,
            last_updated=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[MovieRatingCache.imdb_id],
            set_={
                "average_rating": stmt.excluded.average_rating,
                "review_count": stmt.excluded.review_count,
                "last_updated": stmt.excluded.last_updated,
            },
        )
        db.execute(stmt)
        return

    cache_entry = db.get(MovieRatingCache, imdb_id)
    if cache_entry is None:
        cache_entry = MovieRatingCache(imdb_id=imdb_id)
        db.add(cache_entry)
    cache_entry.average_rating = stats.average_rating
    cache_entry.review_count = stats.review_count
    cache_entry.last_updated = now
    db.flush()


def refresh_rating_cache(db: Session, imdb_id: str) -> Optional[MovieStats]:
    '''
    Recomputes the cached aggregate of a movie from its current reviews.

    Pending review changes are flushed first so the aggregate sees them.
    Does not commit: the caller commits the review change and the cache
    update together.

    Parameters
    ----------
    db: Session
        Session holding the review mutation that triggered the refresh.
    imdb_id: str
        External movie id.

    Returns
    -------
    The new MovieStats, or None if the movie has no reviews left (the cache
    row is deleted in that case, which is a no-op when it was absent).
    '''
    db.flush()
    stats = compute_movie_stats(db, imdb_id)

    if stats is None:
        db.execute(delete(MovieRatingCache).where(MovieRatingCache.imdb_id == imdb_id))
        logger.debug("Removed rating cache for %s (no reviews left)", imdb_id)
        return None

    upsert_rating_cache(db, imdb_id, stats)
    logger.debug(
        "Rating cache for %s set to %s (%d reviews)",
        imdb_id, stats.average_rating, stats.review_count,
    )
    return stats
