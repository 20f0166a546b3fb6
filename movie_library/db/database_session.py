import os
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from dotenv import load_dotenv


DEFAULT_DB_URL = "sqlite:///./movie_library.db"


def get_db_url() -> str:
    load_dotenv()
    return os.getenv("DB_URL", DEFAULT_DB_URL)


def build_engine(db_url: str, **kwargs) -> Engine:
    '''
    Creates a SQLAlchemy engine for the given url. SQLite engines get the
    connect args and pragmas the app relies on (cascading foreign keys and
    case-sensitive LIKE for the genre filter).
    '''
    if db_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = create_engine(db_url, **kwargs)
        event.listen(engine, "connect", _set_sqlite_pragmas)
        return engine

    return create_engine(db_url, pool_pre_ping=True, **kwargs)


def _set_sqlite_pragmas(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.execute("PRAGMA case_sensitive_like = ON")
    cursor.close()


# Create global DB engine
engine = build_engine(get_db_url())

# Create Session factory
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


# Base class for models
class Base(DeclarativeBase):
    pass


def get_db():
    # Create  DB session
    db = SessionLocal()
    try:
        # Return session
        yield db
    finally:
        # Close session on second call
        db.close()
