import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from movie_library.db.models.rating_cache import MovieRatingCache
from movie_library.db.models.reviews import (
    Review,
    MIN_RATING,
    MAX_RATING,
    MIN_REVIEW_TEXT_LENGTH,
    MAX_REVIEW_TEXT_LENGTH,
)
from movie_library.db.models.users import utcnow
from movie_library.errors import ValidationError, NotFoundError, ConflictError
from movie_library.observability.metrics import REVIEW_WRITES
from movie_library.services.rating_cache import (
    MovieStats,
    compute_movie_stats,
    refresh_rating_cache,
)


logger = logging.getLogger(__name__)

DEFAULT_REVIEWS_TAKE = 20
MAX_REVIEWS_TAKE = 100


@dataclass
class ReviewPage:
    '''
    One page of a movie's reviews. has_more tells if another page exists.
    '''
    reviews: List[Review]
    has_more: bool


def validate_review(rating: int, review_text: Optional[str]) -> Optional[str]:
    '''
    Checks rating and review text against the review rules.

    Parameters
    ----------
    rating: int
        Star rating, must be between MIN_RATING and MAX_RATING.
    review_text: str, optional
        Free text. Blank text counts as no text, otherwise its length must be
        between MIN_REVIEW_TEXT_LENGTH and MAX_REVIEW_TEXT_LENGTH.

    Returns
    -------
    The text to store (None for missing or blank text).
    '''
    if rating < MIN_RATING or rating > MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

    if review_text is None or not review_text.strip():
        return None

    if len(review_text) < MIN_REVIEW_TEXT_LENGTH:
        raise ValidationError(f"Review text must be at least {MIN_REVIEW_TEXT_LENGTH} characters")

    if len(review_text) > MAX_REVIEW_TEXT_LENGTH:
        raise ValidationError(f"Review text cannot exceed {MAX_REVIEW_TEXT_LENGTH} characters")

    return review_text


def get_user_review(db: Session, user_id: int, imdb_id: str) -> Optional[Review]:
    stmt = (
        select(Review)
        .options(joinedload(Review.user))
        .where(Review.user_id == user_id, Review.imdb_id == imdb_id)
    )
    return db.execute(stmt).scalar_one_or_none()


def get_user_reviews(db: Session, user_id: int) -> List[Review]:
    """All reviews written by a user, newest first."""
    stmt = (
        select(Review)
        .options(joinedload(Review.user))
        .where(Review.user_id == user_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def create_or_update_review(
    db: Session,
    user_id: int,
    imdb_id: str,
    rating: int,
    review_text: Optional[str] = None,
) -> Review:
    '''
    Stores the user's review of a movie. A user has at most one review per
    movie: if it already exists its rating and text are replaced and
    updated_at is set, created_at stays untouched. The rating cache of the
    movie is refreshed in the same transaction.

    Returns
    -------
    The stored Review, with its user loaded.
    '''
    review_text = validate_review(rating, review_text)

    try:
        review = get_user_review(db, user_id, imdb_id)

        if review is not None:
            review.rating = rating
            review.review_text = review_text
            review.updated_at = utcnow()
        else:
            review = Review(
                user_id=user_id,
                imdb_id=imdb_id,
                rating=rating,
                review_text=review_text,
                created_at=utcnow(),
            )
            db.add(review)

        refresh_rating_cache(db, imdb_id)
        db.commit()
    except IntegrityError as e:
        # Lost a race against a concurrent first review of the same user
        db.rollback()
        REVIEW_WRITES.labels(operation="upsert", result="failure").inc()
        raise ConflictError("You have already reviewed this movie.") from e
    except Exception:
        db.rollback()
        REVIEW_WRITES.labels(operation="upsert", result="failure").inc()
        logger.exception("Failed to save review of user %s for %s", user_id, imdb_id)
        raise

    REVIEW_WRITES.labels(operation="upsert", result="success").inc()
    db.refresh(review)
    return review


def delete_review(db: Session, user_id: int, imdb_id: str) -> None:
    '''
    Deletes the user's review of a movie and refreshes the movie's rating
    cache. Raises NotFoundError if the user never reviewed the movie.
    '''
    review = get_user_review(db, user_id, imdb_id)
    if review is None:
        raise NotFoundError("Review not found")

    try:
        db.delete(review)
        refresh_rating_cache(db, imdb_id)
        db.commit()
    except Exception:
        db.rollback()
        REVIEW_WRITES.labels(operation="delete", result="failure").inc()
        logger.exception("Failed to delete review of user %s for %s", user_id, imdb_id)
        raise

    REVIEW_WRITES.labels(operation="delete", result="success").inc()


def get_movie_reviews(
    db: Session,
    imdb_id: str,
    exclude_user_id: Optional[int] = None,
    skip: int = 0,
    take: int = DEFAULT_REVIEWS_TAKE,
) -> ReviewPage:
    '''
    Returns a page of a movie's reviews, newest first.

    Parameters
    ----------
    imdb_id: str
        External movie id.
    exclude_user_id: int, optional
        Leave out this user's review (clients show it separately).
    skip: int
        Number of reviews to skip, negative values count as 0.
    take: int
        Page size, values outside 1..MAX_REVIEWS_TAKE fall back to
        DEFAULT_REVIEWS_TAKE.
    '''
    if take <= 0 or take > MAX_REVIEWS_TAKE:
        take = DEFAULT_REVIEWS_TAKE
    if skip < 0:
        skip = 0

    stmt = (
        select(Review)
        .options(joinedload(Review.user))
        .where(Review.imdb_id == imdb_id)
    )
    if exclude_user_id is not None:
        stmt = stmt.where(Review.user_id != exclude_user_id)

    # Fetch one extra row to know if there is a next page
    stmt = (
        stmt.order_by(Review.created_at.desc(), Review.id.desc())
        .offset(skip)
        .limit(take + 1)
    )
    reviews = list(db.execute(stmt).scalars().all())

    has_more = len(reviews) > take
    return ReviewPage(reviews=reviews[:take], has_more=has_more)


def get_movie_stats(db: Session, imdb_id: str) -> MovieStats:
    '''
    Returns average rating and review count of a movie. Served from the
    rating cache; on a cache miss the stats are computed from the reviews
    and stored as cache row. A movie without reviews gets (0, 0) and no
    cache row.
    '''
    cached = db.get(MovieRatingCache, imdb_id)
    if cached is not None:
        return MovieStats(
            average_rating=Decimal(cached.average_rating),
            review_count=cached.review_count,
        )

    stats = compute_movie_stats(db, imdb_id)
    if stats is None:
        return MovieStats(average_rating=Decimal("0"), review_count=0)

    db.add(
        MovieRatingCache(
            imdb_id=imdb_id,
            average_rating=stats.average_rating,
            review_count=stats.review_count,
            last_updated=utcnow(),
        )
    )
    try:
        db.commit()
    except IntegrityError:
        # A concurrent review write created the row first
        db.rollback()
        logger.info("Rating cache for %s was created concurrently", imdb_id)

    return stats
