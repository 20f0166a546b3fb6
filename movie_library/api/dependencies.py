from fastapi import HTTPException, Request, status

from movie_library.services.omdb_client import OmdbClient


def get_omdb_client(request: Request) -> OmdbClient:
    '''
    Reads the OMDb client created at startup from the api app.state.
    Answers 503 if the lifespan did not set one up.
    '''
    client = getattr(request.app.state, "omdb_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Movie metadata client is not initialized.",
        )
    return client
