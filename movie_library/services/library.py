import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from movie_library.db.models.collection_movies import CollectionMovie
from movie_library.db.models.movie_collections import MovieCollection, MAX_COLLECTION_NAME_LENGTH
from movie_library.db.models.users import utcnow
from movie_library.errors import ValidationError, NotFoundError, ConflictError, UpstreamUnavailableError
from movie_library.services.omdb_client import OmdbClient


logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_NAME = "Favorites"

# Values OMDb uses when it has no genre for a title
_MISSING_GENRE_VALUES = {"", "N/A"}


def split_genres(genre: Optional[str]) -> List[str]:
    '''
    Splits a comma separated genre string ("Action, Crime, Drama") into its
    trimmed, non-empty tokens.
    '''
    if not genre:
        return []
    return [token.strip() for token in genre.split(",") if token.strip()]


def validate_collection_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise ValidationError("Collection name is required")
    if len(name) > MAX_COLLECTION_NAME_LENGTH:
        raise ValidationError(f"Collection name must be {MAX_COLLECTION_NAME_LENGTH} characters or less")
    return name


def get_owned_collection(db: Session, user_id: int, collection_id: int) -> MovieCollection:
    '''
    Returns the collection if it exists and belongs to the user. Both a
    missing and a foreign collection raise NotFoundError, so other users'
    collections stay invisible.
    '''
    stmt = select(MovieCollection).where(
        MovieCollection.id == collection_id,
        MovieCollection.user_id == user_id,
    )
    collection = db.execute(stmt).scalar_one_or_none()
    if collection is None:
        raise NotFoundError("Collection not found")
    return collection


def create_collection(db: Session, user_id: int, name: str) -> MovieCollection:
    '''
    Creates a new, empty collection for the user. Names are unique per user
    without regard to case.
    '''
    name = validate_collection_name(name)

    stmt = select(MovieCollection.id).where(
        MovieCollection.user_id == user_id,
        func.lower(MovieCollection.name) == name.lower(),
    )
    if db.execute(stmt).first() is not None:
        raise ConflictError("You already have a collection with this name")

    collection = MovieCollection(user_id=user_id, name=name, created_at=utcnow())
    db.add(collection)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("You already have a collection with this name") from e

    db.refresh(collection)
    return collection


def get_user_collections(db: Session, user_id: int) -> List[Tuple[MovieCollection, int]]:
    """All collections of a user with their movie counts, oldest first."""
    stmt = (
        select(MovieCollection, func.count(CollectionMovie.id))
        .outerjoin(CollectionMovie, CollectionMovie.collection_id == MovieCollection.id)
        .where(MovieCollection.user_id == user_id)
        .group_by(MovieCollection.id)
        .order_by(MovieCollection.created_at.asc(), MovieCollection.id.asc())
    )
    return [(collection, int(count)) for collection, count in db.execute(stmt).all()]


def delete_collection(db: Session, user_id: int, collection_id: int) -> None:
    """Deletes a collection, its movies go with it (ON DELETE CASCADE)."""
    collection = get_owned_collection(db, user_id, collection_id)
    db.delete(collection)
    db.commit()


def _fetch_genre(omdb_client: Optional[OmdbClient], imdb_id: str) -> Optional[str]:
    '''
    Asks OMDb for the genre of a movie. Any upstream failure is logged and
    treated as unknown genre.
    '''
    if omdb_client is None:
        return None

    try:
        details = omdb_client.get_movie_details(imdb_id)
    except UpstreamUnavailableError as e:
        logger.warning("Genre lookup for %s failed, storing movie without genre: %s", imdb_id, e)
        return None

    if details is None or details.genre in _MISSING_GENRE_VALUES:
        return None
    return details.genre


def add_movie_to_collection(
    db: Session,
    user_id: int,
    collection_id: int,
    imdb_id: str,
    title: str,
    year: str = "",
    poster: str = "",
    type: str = "",
    omdb_client: Optional[OmdbClient] = None,
) -> CollectionMovie:
    '''
    Adds a movie to one of the user's collections. The display fields come
    from the caller, the genre is looked up once via OMDb and never
    refreshed afterwards.

    Raises
    ------
    NotFoundError if the collection is missing or foreign,
    ConflictError if the movie is already part of the collection.
    '''
    collection = get_owned_collection(db, user_id, collection_id)

    stmt = select(CollectionMovie.id).where(
        CollectionMovie.collection_id == collection_id,
        CollectionMovie.imdb_id == imdb_id,
    )
    if db.execute(stmt).first() is not None:
        raise ConflictError(f"This movie is already in your {collection.name} collection")

    genre = _fetch_genre(omdb_client, imdb_id)

    movie = CollectionMovie(
        collection_id=collection_id,
        imdb_id=imdb_id,
        title=title,
        year=year or "",
        poster=poster or "",
        type=type or "",
        genre=genre,
        added_at=utcnow(),
    )
    db.add(movie)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(f"This movie is already in your {collection.name} collection") from e

    db.refresh(movie)
    return movie


def remove_movie_from_collection(db: Session, user_id: int, collection_id: int, imdb_id: str) -> None:
    get_owned_collection(db, user_id, collection_id)

    stmt = select(CollectionMovie).where(
        CollectionMovie.collection_id == collection_id,
        CollectionMovie.imdb_id == imdb_id,
    )
    movie = db.execute(stmt).scalar_one_or_none()
    if movie is None:
        raise NotFoundError("Movie not found in this collection")

    db.delete(movie)
    db.commit()


def get_collection_genres(db: Session, user_id: int, collection_id: int) -> List[str]:
    """Distinct genres of all movies in a collection, sorted alphabetically."""
    get_owned_collection(db, user_id, collection_id)

    stmt = (
        select(CollectionMovie.genre)
        .where(
            CollectionMovie.collection_id == collection_id,
            CollectionMovie.genre.is_not(None),
            CollectionMovie.genre != "",
        )
        .distinct()
    )
    genres = set()
    for genre in db.execute(stmt).scalars():
        genres.update(split_genres(genre))
    return sorted(genres)


def get_movie_collections(db: Session, user_id: int, imdb_id: str) -> List[MovieCollection]:
    """The user's collections that contain the given movie, sorted by name."""
    stmt = (
        select(MovieCollection)
        .join(CollectionMovie, CollectionMovie.collection_id == MovieCollection.id)
        .where(MovieCollection.user_id == user_id, CollectionMovie.imdb_id == imdb_id)
        .order_by(MovieCollection.name)
    )
    return list(db.execute(stmt).scalars().all())
