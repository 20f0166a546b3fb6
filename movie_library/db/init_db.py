import logging
from typing import Optional

from sqlalchemy.engine import Engine

from movie_library.db.database_session import Base, engine as default_engine

# Table modules register themselves on Base.metadata when imported
from movie_library.db.models.users import User  # noqa: F401
from movie_library.db.models.movie_collections import MovieCollection  # noqa: F401
from movie_library.db.models.collection_movies import CollectionMovie  # noqa: F401
from movie_library.db.models.reviews import Review  # noqa: F401
from movie_library.db.models.rating_cache import MovieRatingCache  # noqa: F401


logger = logging.getLogger(__name__)


def create_tables(engine: Optional[Engine] = None) -> None:
    """Create all tables and indexes that don't exist yet."""
    engine = engine or default_engine
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured on %s", engine.url.render_as_string(hide_password=True))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(name)s | %(message)s")
    create_tables()
