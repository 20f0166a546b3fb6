from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from sqlalchemy.orm import Session

from movie_library.db.database_session import get_db
from movie_library.db.models.users import User
from movie_library.db.models.collection_movies import CollectionMovie
from movie_library.api.security import get_current_user
from movie_library.api.schemas import (
    CreateCollectionRequest,
    AddMovieToCollectionRequest,
    MessageResponse,
    CollectionResponse,
    GetCollectionsResponse,
    CollectionMovieResponse,
    GetCollectionMoviesResponse,
    CollectionGenresResponse,
    MovieCollectionNameResponse,
    GetMovieCollectionsResponse,
    RatingDistributionItem,
    GenreDistributionItem,
    RecentAdditionItem,
    TopCollectionItem,
    DashboardStatsResponse,
)
from movie_library.services import library
from movie_library.services.collection_query import (
    CollectionMovieFilters,
    CollectionSort,
    list_collection_movies,
)
from movie_library.services.dashboard import get_dashboard_stats
from movie_library.api.dependencies import get_omdb_client
from movie_library.services.omdb_client import OmdbClient


router = APIRouter(prefix="/api/library", tags=["library"])


def _to_movie_response(movie: CollectionMovie, average_rating: Optional[Decimal]) -> CollectionMovieResponse:
    return CollectionMovieResponse(
        id=movie.id,
        imdb_id=movie.imdb_id,
        title=movie.title,
        year=movie.year,
        poster=movie.poster,
        type=movie.type,
        genre=movie.genre,
        average_rating=float(average_rating) if average_rating is not None else None,
        added_at=movie.added_at,
    )


@router.get("/collections", response_model=GetCollectionsResponse)
def get_collections(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Returns all collections of the current user with their movie counts, oldest first.
    """
    return GetCollectionsResponse(
        collections=[
            CollectionResponse(
                id=collection.id,
                name=collection.name,
                movie_count=movie_count,
                created_at=collection.created_at,
            ) for collection, movie_count in library.get_user_collections(db, user.id)
        ]
    )


@router.post("/collections", response_model=CollectionResponse, status_code=status.HTTP_201_CREATED)
def create_collection(
    request: CreateCollectionRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Creates an empty collection.

    **Parameters:**\n
    `request` (CreateCollectionRequest): The collection name (1-100 chars, unique per user ignoring case)\n

    **Errors:**\n
    400 for an empty or too long name, 409 if the name is already used.
    """
    collection = library.create_collection(db, user.id, request.name)
    return CollectionResponse(
        id=collection.id,
        name=collection.name,
        movie_count=0,
        created_at=collection.created_at,
    )


@router.delete("/collections/{collection_id}", response_model=MessageResponse)
def delete_collection(
    collection_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Deletes a collection together with all of its movies.
    """
    library.delete_collection(db, user.id, collection_id)
    return MessageResponse(message="Collection deleted successfully")


@router.get("/collections/{collection_id}/movies", response_model=GetCollectionMoviesResponse)
def get_collection_movies(
    collection_id: int,
    sort_by: Optional[str] = Query(None, description="title, year, rating or dateAdded (default)"),
    sort_order: Optional[str] = Query(None, description="asc or desc"),
    filter_genres: Optional[str] = Query(None, description="Comma separated genres, any of them must match"),
    filter_year_from: Optional[int] = Query(None, description="Earliest year (string comparison)"),
    filter_year_to: Optional[int] = Query(None, description="Latest year (string comparison)"),
    min_rating: Optional[Decimal] = Query(None, description="Minimum average rating, hides unrated movies"),
    page: int = Query(1, ge=1, description="1-indexed page"),
    page_size: int = Query(20, ge=1, le=100, description="Movies per page"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Returns one page of the movies of a collection, filtered and sorted.

    **Returns**:\n
    `GetCollectionMoviesResponse`(response_model):
    - `movies`: movies of the page incl. their average rating\n
    - `total_count`: number of movies matching the filters\n
    - `total_pages`: number of pages\n
    - `current_page`: the requested page
    """
    # Ownership check, raises 404 for foreign collections
    library.get_owned_collection(db, user.id, collection_id)

    filters = CollectionMovieFilters(
        genres=filter_genres,
        year_from=str(filter_year_from) if filter_year_from is not None else None,
        year_to=str(filter_year_to) if filter_year_to is not None else None,
        min_rating=min_rating,
    )
    result = list_collection_movies(
        db,
        collection_id,
        filters=filters,
        sort=CollectionSort(sort_by=sort_by, sort_order=sort_order),
        page=page,
        page_size=page_size,
    )

    return GetCollectionMoviesResponse(
        movies=[_to_movie_response(row.movie, row.average_rating) for row in result.movies],
        total_count=result.total_count,
        total_pages=result.total_pages,
        current_page=result.current_page,
    )


@router.post(
    "/collections/{collection_id}/movies",
    response_model=CollectionMovieResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_movie_to_collection(
    collection_id: int,
    request: AddMovieToCollectionRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    omdb_client: OmdbClient = Depends(get_omdb_client),
):
    """
    Adds a movie to a collection. The genre is fetched from OMDb, if OMDb is
    not reachable the movie is stored without genre.
    """
    movie = library.add_movie_to_collection(
        db,
        user.id,
        collection_id,
        imdb_id=request.imdb_id,
        title=request.title,
        year=request.year,
        poster=request.poster,
        type=request.type,
        omdb_client=omdb_client,
    )
    # Freshly added movies carry no average rating in the response
    return _to_movie_response(movie, None)


@router.delete("/collections/{collection_id}/movies/{imdb_id}", response_model=MessageResponse)
def remove_movie_from_collection(
    collection_id: int,
    imdb_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    library.remove_movie_from_collection(db, user.id, collection_id, imdb_id)
    return MessageResponse(message="Movie removed from collection")


@router.get("/collections/{collection_id}/genres", response_model=CollectionGenresResponse)
def get_collection_genres(
    collection_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Returns the distinct genres found in a collection, sorted alphabetically. Used to
    fill the genre filter of the collection view.
    """
    return CollectionGenresResponse(genres=library.get_collection_genres(db, user.id, collection_id))


@router.get("/movies/{imdb_id}/collections", response_model=GetMovieCollectionsResponse)
def get_movie_collections(
    imdb_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Returns the collections of the current user that contain the given movie.
    """
    return GetMovieCollectionsResponse(
        collections=[
            MovieCollectionNameResponse(id=collection.id, name=collection.name)
            for collection in library.get_movie_collections(db, user.id, imdb_id)
        ]
    )


@router.get("/dashboard/stats", response_model=DashboardStatsResponse)
def dashboard_stats(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Summary statistics over the current user's collections and reviews.
    """
    stats = get_dashboard_stats(db, user.id)

    return DashboardStatsResponse(
        total_collections=stats.total_collections,
        total_movies=stats.total_movies,
        total_reviews=stats.total_reviews,
        average_rating=float(stats.average_rating),
        rating_distribution=[
            RatingDistributionItem(rating=bucket.rating, count=bucket.count)
            for bucket in stats.rating_distribution
        ],
        genre_distribution=[
            GenreDistributionItem(genre=item.genre, count=item.count)
            for item in stats.genre_distribution
        ],
        recent_additions=[
            RecentAdditionItem(imdb_id=movie.imdb_id, title=movie.title, year=movie.year, added_at=movie.added_at)
            for movie in stats.recent_additions
        ],
        top_collections=[
            TopCollectionItem(id=item.id, name=item.name, movie_count=item.movie_count)
            for item in stats.top_collections
        ],
    )
