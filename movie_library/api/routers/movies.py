import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from movie_library.api.schemas import MovieSearchResult, SearchMoviesResponse, MovieDetailsResponse
from movie_library.errors import UpstreamUnavailableError
from movie_library.api.dependencies import get_omdb_client
from movie_library.services.omdb_client import OmdbClient


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/movies", tags=["movies"])


@router.get("/search", response_model=SearchMoviesResponse)
def search_movies(
    query: str = Query("", description="Title to search for"),
    omdb_client: OmdbClient = Depends(get_omdb_client),
):
    """
    Searches OMDb by title. An unreachable OMDb yields an empty result list.
    """
    if not query.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required")

    try:
        results = omdb_client.search_movies(query)
    except UpstreamUnavailableError as e:
        logger.warning("Movie search for %r failed: %s", query, e)
        results = []

    return SearchMoviesResponse(
        movies=[
            MovieSearchResult(
                title=result.title,
                year=result.year,
                imdb_id=result.imdb_id,
                type=result.type,
                poster=result.poster,
            ) for result in results
        ]
    )


@router.get("/{imdb_id}", response_model=MovieDetailsResponse)
def get_movie_details(
    imdb_id: str,
    omdb_client: OmdbClient = Depends(get_omdb_client),
):
    """
    Returns the OMDb details of a movie.

    **Errors:**\n
    404 if OMDb doesn't know the id, 503 if OMDb is not reachable.
    """
    details = omdb_client.get_movie_details(imdb_id)
    if details is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Movie not found")

    return MovieDetailsResponse(
        title=details.title,
        year=details.year,
        rated=details.rated,
        runtime=details.runtime,
        genre=details.genre,
        director=details.director,
        actors=details.actors,
        plot=details.plot,
        poster=details.poster,
        imdb_rating=details.imdb_rating,
        imdb_id=details.imdb_id,
        type=details.type,
    )
