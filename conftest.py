from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from movie_library.db.database_session import build_engine, get_db
from movie_library.db.init_db import create_tables
from movie_library.db.models.users import User
from movie_library.db.models.movie_collections import MovieCollection
from movie_library.db.models.collection_movies import CollectionMovie
from movie_library.db.models.reviews import Review
from movie_library.db.models.rating_cache import MovieRatingCache
from movie_library.errors import UpstreamUnavailableError
from movie_library.api.dependencies import get_omdb_client
from movie_library.services.omdb_client import OmdbMovieDetails, OmdbSearchResult


BASE_TIME = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    # One shared in-memory database per test
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class LibraryFactory:
    """Inserts rows directly, bypassing the services."""

    def __init__(self, db):
        self.db = db

    def user(self, email: str) -> User:
        user = User(email=email, hashed_password="not-a-real-hash", is_active=True, created_at=BASE_TIME)
        self.db.add(user)
        self.db.commit()
        return user

    def collection(self, user: User, name: str, days_ago: int = 30) -> MovieCollection:
        collection = MovieCollection(user_id=user.id, name=name, created_at=BASE_TIME - timedelta(days=days_ago))
        self.db.add(collection)
        self.db.commit()
        return collection

    def movie(
        self,
        collection: MovieCollection,
        imdb_id: str,
        title: str,
        year: str = "2000",
        genre: Optional[str] = None,
        days_ago: int = 0,
    ) -> CollectionMovie:
        movie = CollectionMovie(
            collection_id=collection.id,
            imdb_id=imdb_id,
            title=title,
            year=year,
            poster=f"https://example.com/{imdb_id}.jpg",
            type="movie",
            genre=genre,
            added_at=BASE_TIME - timedelta(days=days_ago),
        )
        self.db.add(movie)
        self.db.commit()
        return movie

    def review(self, user: User, imdb_id: str, rating: int, text: Optional[str] = None, days_ago: int = 0) -> Review:
        review = Review(
            user_id=user.id,
            imdb_id=imdb_id,
            rating=rating,
            review_text=text,
            created_at=BASE_TIME - timedelta(days=days_ago),
        )
        self.db.add(review)
        self.db.commit()
        return review

    def rating_cache(self, imdb_id: str, average: str, count: int) -> MovieRatingCache:
        entry = MovieRatingCache(
            imdb_id=imdb_id,
            average_rating=Decimal(average),
            review_count=count,
            last_updated=BASE_TIME,
        )
        self.db.add(entry)
        self.db.commit()
        return entry


@pytest.fixture
def factory(db):
    return LibraryFactory(db)


@pytest.fixture
def seeded(factory):
    '''
    Two users, three collections, three movies, three reviews and the
    matching rating cache rows.
    '''
    alice = factory.user("test@example.com")
    bob = factory.user("test2@example.com")

    action = factory.collection(alice, "Action Movies", days_ago=20)
    drama = factory.collection(alice, "Drama Movies", days_ago=10)
    comedy = factory.collection(bob, "Comedy Movies", days_ago=5)

    shawshank = factory.movie(action, "tt0111161", "The Shawshank Redemption", "1994", "Drama", days_ago=10)
    dark_knight = factory.movie(action, "tt0468569", "The Dark Knight", "2008", "Action, Crime, Drama", days_ago=5)
    forrest = factory.movie(drama, "tt0109830", "Forrest Gump", "1994", "Drama, Romance", days_ago=3)

    factory.review(alice, "tt0111161", 10, "Amazing movie! A true masterpiece.", days_ago=3)
    factory.review(alice, "tt0468569", 9, "Great superhero movie!", days_ago=2)
    factory.review(bob, "tt0111161", 9, "One of the best films ever made.", days_ago=1)

    factory.rating_cache("tt0111161", "9.5", 2)
    factory.rating_cache("tt0468569", "9.0", 1)

    return SimpleNamespace(
        alice=alice,
        bob=bob,
        action=action,
        drama=drama,
        comedy=comedy,
        shawshank=shawshank,
        dark_knight=dark_knight,
        forrest=forrest,
    )


class FakeOmdbClient:
    """Stands in for OmdbClient, serves canned movies or fails on demand."""

    def __init__(self, movies: Optional[Dict[str, OmdbMovieDetails]] = None):
        self.movies = movies or {}
        self.fail = False
        self.calls: List[str] = []

    def get_movie_details(self, imdb_id: str) -> Optional[OmdbMovieDetails]:
        self.calls.append(imdb_id)
        if self.fail:
            raise UpstreamUnavailableError("OMDb request failed: timed out")
        return self.movies.get(imdb_id)

    def search_movies(self, query: str) -> List[OmdbSearchResult]:
        self.calls.append(query)
        if self.fail:
            raise UpstreamUnavailableError("OMDb request failed: timed out")
        return [
            OmdbSearchResult(title=m.title, year=m.year, imdb_id=m.imdb_id, type=m.type, poster=m.poster)
            for m in self.movies.values()
            if query.lower() in m.title.lower()
        ]


def omdb_movie(imdb_id: str, title: str, year: str, genre: str) -> OmdbMovieDetails:
    return OmdbMovieDetails(
        title=title,
        year=year,
        rated="R",
        runtime="142 min",
        genre=genre,
        director="Frank Darabont",
        actors="Tim Robbins, Morgan Freeman",
        plot="Two imprisoned men bond over a number of years.",
        poster=f"https://example.com/{imdb_id}.jpg",
        imdb_rating="9.3",
        imdb_id=imdb_id,
        type="movie",
    )


@pytest.fixture
def fake_omdb():
    return FakeOmdbClient({
        "tt0111161": omdb_movie("tt0111161", "The Shawshank Redemption", "1994", "Drama"),
        "tt0468569": omdb_movie("tt0468569", "The Dark Knight", "2008", "Action, Crime, Drama"),
    })


@pytest.fixture
def client(session_factory, fake_omdb):
    from movie_library.api.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_omdb_client] = lambda: fake_omdb

    # Not used as context manager: the lifespan would touch the real database
    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def register_and_login(client):
    '''
    Registers a user through the API and returns the auth headers.
    '''
    def _register_and_login(email: str = "alice@example.com", password: str = "secret-password") -> dict:
        response = client.post("/api/auth/register", json={"email": email, "password": password})
        assert response.status_code == 201, response.text
        response = client.post("/api/auth/token", data={"username": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _register_and_login
