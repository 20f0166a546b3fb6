from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List


#___________________________________________________________________________________________________
# Request schemas
#___________________________________________________________________________________________________

class UserCreate(BaseModel):
    """Request model used when creating a new user.

    Fields:
    - email: user's email address
    - password: plain-text password (will be hashed before storage)
    """
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=8, description="Plain-text password (will be hashed), at least 8 characters")


class CreateCollectionRequest(BaseModel):
    """Request model for creating a collection."""
    name: str = Field(..., description="Collection name, unique per user (case-insensitive), at most 100 characters")


class AddMovieToCollectionRequest(BaseModel):
    """Display data of a movie, as returned by the movie search.

    Fields:
    - imdb_id: external movie id (e.g. tt0111161)
    - title, year, poster, type: stored as given, the genre is looked up by the API
    """
    imdb_id: str = Field(..., min_length=1, max_length=20, description="IMDb id of the movie")
    title: str = Field(..., min_length=1, max_length=500, description="Movie title")
    year: str = Field("", max_length=10, description="Release year as shown by OMDb")
    poster: str = Field("", max_length=1000, description="Poster URL")
    type: str = Field("", max_length=50, description="movie, series or episode")


class ReviewRequest(BaseModel):
    """Request model to create or update the caller's review of a movie.

    Fields:
    - imdb_id: movie to review
    - rating: 1 to 10 stars
    - review_text: optional text, 10 to 2000 characters when given
    """
    imdb_id: str = Field(..., min_length=1, max_length=20, description="IMDb id of the movie")
    rating: int = Field(..., description="Star rating between 1 and 10")
    review_text: Optional[str] = Field(None, description="Optional review text (10-2000 characters)")


#___________________________________________________________________________________________________
# Response schemas
#___________________________________________________________________________________________________

class MessageResponse(BaseModel):
    message: str = Field(..., description="Informational message")


class Token(BaseModel):
    """Authentication token response.

    Fields:
    - access_token: the JWT access token
    - token_type: token type (usually "bearer")
    - expires_at: expiry of the token
    - email: email of the logged in user
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type (usually 'bearer')")
    expires_at: datetime = Field(..., description="Expiry timestamp of the token (UTC)")
    email: EmailStr = Field(..., description="Email of the authenticated user")


class CollectionResponse(BaseModel):
    id: int = Field(..., description="Collection ID")
    name: str = Field(..., description="Collection name")
    movie_count: int = Field(..., description="Number of movies in the collection")
    created_at: datetime = Field(..., description="Creation timestamp")


class GetCollectionsResponse(BaseModel):
    collections: List[CollectionResponse]


class CollectionMovieResponse(BaseModel):
    """A movie inside a collection, with the average rating of all users (None if unrated)."""
    id: int
    imdb_id: str
    title: str
    year: str
    poster: str
    type: str
    genre: Optional[str] = None
    average_rating: Optional[float] = None
    added_at: datetime


class GetCollectionMoviesResponse(BaseModel):
    """One page of a collection view.

    Fields:
    - movies: the rows of the requested page
    - total_count: number of movies matching the filters
    - total_pages: number of pages for the given page size
    - current_page: the requested page
    """
    movies: List[CollectionMovieResponse]
    total_count: int
    total_pages: int
    current_page: int


class CollectionGenresResponse(BaseModel):
    genres: List[str]


class MovieCollectionNameResponse(BaseModel):
    id: int
    name: str


class GetMovieCollectionsResponse(BaseModel):
    collections: List[MovieCollectionNameResponse]


class RatingDistributionItem(BaseModel):
    rating: int
    count: int


class GenreDistributionItem(BaseModel):
    genre: str
    count: int


class RecentAdditionItem(BaseModel):
    imdb_id: str
    title: str
    year: str
    added_at: datetime


class TopCollectionItem(BaseModel):
    id: int
    name: str
    movie_count: int


class DashboardStatsResponse(BaseModel):
    """Dashboard summary of the calling user."""
    total_collections: int
    total_movies: int = Field(..., description="Distinct movies across all collections")
    total_reviews: int
    average_rating: float = Field(..., description="Mean of the user's ratings, 0 without reviews")
    rating_distribution: List[RatingDistributionItem] = Field(..., description="Always 10 buckets, ratings 1-10")
    genre_distribution: List[GenreDistributionItem] = Field(..., description="Top 10 genres")
    recent_additions: List[RecentAdditionItem] = Field(..., description="Last 5 added movies")
    top_collections: List[TopCollectionItem] = Field(..., description="5 largest collections")


class ReviewResponse(BaseModel):
    id: int
    user_id: int
    user_email: str
    imdb_id: str
    rating: int
    review_text: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class MovieStatsResponse(BaseModel):
    average_rating: float = Field(..., description="Average rating of all users, 0 without reviews")
    review_count: int = Field(..., description="Number of reviews")


class GetMovieReviewsResponse(BaseModel):
    reviews: List[ReviewResponse]
    has_more: bool = Field(..., description="True if another page of reviews exists")


class GetMyReviewsResponse(BaseModel):
    reviews: List[ReviewResponse]


class MovieSearchResult(BaseModel):
    title: str
    year: str
    imdb_id: str
    type: str
    poster: str


class SearchMoviesResponse(BaseModel):
    movies: List[MovieSearchResult]


class MovieDetailsResponse(BaseModel):
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
