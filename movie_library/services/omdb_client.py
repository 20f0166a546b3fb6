"""
Thin client for the OMDb API (https://www.omdbapi.com), the external source
of movie metadata. One instance is created at app startup and handed to the
routers through the get_omdb_client dependency in
movie_library/api/dependencies.py.
"""
import os
import logging
from dataclasses import dataclass
from typing import List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from movie_library.errors import UpstreamUnavailableError
from movie_library.observability.metrics import OMDB_REQUESTS


logger = logging.getLogger(__name__)

DEFAULT_OMDB_BASE_URL = "https://www.omdbapi.com"


@dataclass
class OmdbSearchResult:
    title: str
    year: str
    imdb_id: str
    type: str
    poster: str


@dataclass
class OmdbMovieDetails:
    title: str
    year: str
    rated: str
    runtime: str
    genre: str
    director: str
    actors: str
    plot: str
    poster: str
    imdb_rating: str
    imdb_id: str
    type: str


class OmdbClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_OMDB_BASE_URL,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        if session is None:
            session = requests.Session()
            retries = Retry(total=2, backoff_factor=0.5, status_forcelist=[429, 500, 502, 503, 504])
            session.mount("https://", HTTPAdapter(max_retries=retries))
            session.mount("http://", HTTPAdapter(max_retries=retries))
        self.session = session

    @classmethod
    def from_env(cls) -> "OmdbClient":
        return cls(
            api_key=os.getenv("OMDB_API_KEY"),
            base_url=os.getenv("OMDB_BASE_URL", DEFAULT_OMDB_BASE_URL),
            timeout=float(os.getenv("OMDB_TIMEOUT_SECONDS", "5")),
        )

    def close(self) -> None:
        self.session.close()

    def _get(self, endpoint: str, params: dict) -> dict:
        '''
        Sends one GET request to OMDb and returns the decoded JSON body.
        Every transport, HTTP or decoding problem becomes an
        UpstreamUnavailableError.
        '''
        if not self.api_key:
            OMDB_REQUESTS.labels(endpoint=endpoint, result="failure").inc()
            raise UpstreamUnavailableError("OMDb API key is not configured.")

        try:
            response = self.session.get(
                f"{self.base_url}/",
                params={"apikey": self.api_key, **params},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            OMDB_REQUESTS.labels(endpoint=endpoint, result="failure").inc()
            raise UpstreamUnavailableError(f"OMDb request failed: {e}") from e

        if not isinstance(data, dict):
            OMDB_REQUESTS.labels(endpoint=endpoint, result="failure").inc()
            raise UpstreamUnavailableError(f"OMDb returned an unexpected payload: {type(data).__name__}")

        return data

    def get_movie_details(self, imdb_id: str) -> Optional[OmdbMovieDetails]:
        '''
        Looks up a movie by its IMDb id.

        Returns
        -------
        OmdbMovieDetails, or None if OMDb doesn't know the id.
        '''
        data = self._get("details", {"i": imdb_id})

        if data.get("Response") == "False":
            OMDB_REQUESTS.labels(endpoint="details", result="not_found").inc()
            return None

        OMDB_REQUESTS.labels(endpoint="details", result="success").inc()
        return OmdbMovieDetails(
            title=data.get("Title", ""),
            year=data.get("Year", ""),
            rated=data.get("Rated", ""),
            runtime=data.get("Runtime", ""),
            genre=data.get("Genre", ""),
            director=data.get("Director", ""),
            actors=data.get("Actors", ""),
            plot=data.get("Plot", ""),
            poster=data.get("Poster", ""),
            imdb_rating=data.get("imdbRating", ""),
            imdb_id=data.get("imdbID", imdb_id),
            type=data.get("Type", ""),
        )

    def search_movies(self, query: str) -> List[OmdbSearchResult]:
        """Title search, an empty list when nothing matches."""
        data = self._get("search", {"s": query})

        if data.get("Response") == "False" or not isinstance(data.get("Search"), list):
            OMDB_REQUESTS.labels(endpoint="search", result="not_found").inc()
            return []

        OMDB_REQUESTS.labels(endpoint="search", result="success").inc()
        return [
            OmdbSearchResult(
                title=item.get("Title", ""),
                year=item.get("Year", ""),
                imdb_id=item.get("imdbID", ""),
                type=item.get("Type", ""),
                poster=item.get("Poster", ""),
            )
            for item in data["Search"]
            if isinstance(item, dict)
        ]

