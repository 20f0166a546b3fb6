from sqlalchemy import Column, Integer, Numeric, String, DateTime

from movie_library.db.database_session import Base
from movie_library.db.models.users import utcnow


class MovieRatingCache(Base):
    """
    Per-movie aggregate of all reviews. Derived from the reviews table and
    rewritten after every review change, a row only exists while the movie
    has at least one review.
    """
    __tablename__ = "movie_rating_cache"

    imdb_id = Column(String(20), primary_key=True)
    average_rating = Column(Numeric(3, 1), nullable=False)
    review_count = Column(Integer, nullable=False)
    last_updated = Column(DateTime(timezone=True), default=utcnow, nullable=False)
