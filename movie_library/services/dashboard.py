from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_EVEN
from typing import List

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from movie_library.db.models.collection_movies import CollectionMovie
from movie_library.db.models.movie_collections import MovieCollection
from movie_library.db.models.reviews import Review, MIN_RATING, MAX_RATING
from movie_library.services.library import split_genres
from movie_library.services.rating_cache import ONE_DECIMAL


TOP_GENRES = 10
RECENT_ADDITIONS = 5
TOP_COLLECTIONS = 5


@dataclass
class RatingBucket:
    rating: int
    count: int


@dataclass
class GenreCount:
    genre: str
    count: int


@dataclass
class TopCollection:
    id: int
    name: str
    movie_count: int


@dataclass
class DashboardStats:
    '''
    Summary of one user's library and reviews.
    '''
    total_collections: int = 0
    total_movies: int = 0
    total_reviews: int = 0
    average_rating: Decimal = Decimal("0")
    rating_distribution: List[RatingBucket] = field(default_factory=list)
    genre_distribution: List[GenreCount] = field(default_factory=list)
    recent_additions: List[CollectionMovie] = field(default_factory=list)
    top_collections: List[TopCollection] = field(default_factory=list)


def _rating_distribution(db: Session, user_id: int) -> List[RatingBucket]:
    # Every rating gets a bucket, also the ones the user never gave
    stmt = (
        select(Review.rating, func.count(Review.id))
        .where(Review.user_id == user_id)
        .group_by(Review.rating)
    )
    counts = {rating: count for rating, count in db.execute(stmt).all()}
    return [
        RatingBucket(rating=rating, count=int(counts.get(rating, 0)))
        for rating in range(MIN_RATING, MAX_RATING + 1)
    ]


def _genre_distribution(db: Session, user_id: int) -> List[GenreCount]:
    stmt = (
        select(CollectionMovie.genre)
        .join(MovieCollection, MovieCollection.id == CollectionMovie.collection_id)
        .where(
            MovieCollection.user_id == user_id,
            CollectionMovie.genre.is_not(None),
            CollectionMovie.genre != "",
        )
    )
    genre_counter: Counter = Counter()
    for genre in db.execute(stmt).scalars():
        genre_counter.update(split_genres(genre))

    return [
        GenreCount(genre=genre, count=count)
        for genre, count in genre_counter.most_common(TOP_GENRES)
    ]


def get_dashboard_stats(db: Session, user_id: int) -> DashboardStats:
    '''
    Collects the dashboard numbers of a user.

    - total_movies counts distinct movies, a movie in two collections is
      counted once.
    - average_rating is the mean of the user's own ratings with one decimal
      (half to even, 9.25 -> 9.2), 0 without reviews.
    - rating_distribution always has one bucket per rating 1..10.
    - genre_distribution splits the comma separated genres of all the
      user's collection movies and keeps the 10 most frequent.
    - recent_additions are the 5 movies added last, top_collections the 5
      collections with the most movies.
    '''
    user_movies = (
        select(CollectionMovie)
        .join(MovieCollection, MovieCollection.id == CollectionMovie.collection_id)
        .where(MovieCollection.user_id == user_id)
    )

    total_collections = db.execute(
        select(func.count(MovieCollection.id)).where(MovieCollection.user_id == user_id)
    ).scalar_one()

    total_movies = db.execute(
        select(func.count(func.distinct(CollectionMovie.imdb_id)))
        .select_from(CollectionMovie)
        .join(MovieCollection, MovieCollection.id == CollectionMovie.collection_id)
        .where(MovieCollection.user_id == user_id)
    ).scalar_one()

    rating_sum, total_reviews = db.execute(
        select(func.sum(Review.rating), func.count(Review.id)).where(Review.user_id == user_id)
    ).one()
    if total_reviews:
        # Banker's rounding here, the rating cache rounds half up
        average_rating = (Decimal(int(rating_sum)) / Decimal(total_reviews)).quantize(
            ONE_DECIMAL, rounding=ROUND_HALF_EVEN
        )
    else:
        average_rating = Decimal("0")

    recent_additions = list(
        db.execute(
            user_movies.order_by(CollectionMovie.added_at.desc(), CollectionMovie.id.desc())
            .limit(RECENT_ADDITIONS)
        ).scalars().all()
    )

    movie_count = func.count(CollectionMovie.id).label("movie_count")
    top_collections_stmt = (
        select(MovieCollection.id, MovieCollection.name, movie_count)
        .outerjoin(CollectionMovie, CollectionMovie.collection_id == MovieCollection.id)
        .where(MovieCollection.user_id == user_id)
        .group_by(MovieCollection.id, MovieCollection.name)
        .order_by(movie_count.desc(), MovieCollection.id.asc())
        .limit(TOP_COLLECTIONS)
    )
    top_collections = [
        TopCollection(id=collection_id, name=name, movie_count=int(count))
        for collection_id, name, count in db.execute(top_collections_stmt).all()
    ]

    return DashboardStats(
        total_collections=int(total_collections),
        total_movies=int(total_movies),
        total_reviews=int(total_reviews),
        average_rating=average_rating,
        rating_distribution=_rating_distribution(db, user_id),
        genre_distribution=_genre_distribution(db, user_id),
        recent_additions=recent_additions,
        top_collections=top_collections,
    )
