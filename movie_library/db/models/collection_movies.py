from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from movie_library.db.database_session import Base
from movie_library.db.models.movie_collections import MovieCollection
from movie_library.db.models.users import utcnow


class CollectionMovie(Base):
    __tablename__ = "collection_movies"
    __table_args__ = (
        # A movie appears at most once per collection
        UniqueConstraint("collection_id", "imdb_id", name="uq_collection_movies_collection_imdb"),
    )

    id = Column(Integer, primary_key=True)
    collection_id = Column(
        Integer,
        ForeignKey("collections.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    imdb_id = Column(String(20), index=True, nullable=False)
    title = Column(String(500), nullable=False)
    year = Column(String(10), nullable=False, default="")
    poster = Column(String(1000), nullable=False, default="")
    type = Column(String(50), nullable=False, default="")
    genre = Column(String, nullable=True)    # comma separated, e.g. "Action, Crime, Drama"
    added_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    collection = relationship(MovieCollection)
