"""
Filtered, sorted and paginated view of the movies of one collection.

The movies are left-joined with the rating cache, so every row carries the
movie's average rating (NULL for movies nobody reviewed yet). Filters,
sorting and paging are all pushed into a single SQL query.

Two behaviours are kept on purpose:
- year is a string column and the year filters and the year sort compare
  it as a string ("9" > "10"),
- the genre filter is a case-sensitive substring match against the raw
  comma separated genre column.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from math import ceil
from typing import List, Optional, Sequence

from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session

from movie_library.db.models.collection_movies import CollectionMovie
from movie_library.db.models.rating_cache import MovieRatingCache
from movie_library.services.library import split_genres


logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20

SORT_TITLE = "title"
SORT_YEAR = "year"
SORT_RATING = "rating"
SORT_DATE_ADDED = "dateadded"


@dataclass
class CollectionMovieFilters:
    '''
    Optional filters of the collection view. All set filters must match.

    genres: comma separated list, a movie matches if its genre contains any
        of them.
    year_from / year_to: inclusive bounds, compared as strings.
    min_rating: minimum cached average rating. Movies without rating are
        dropped as soon as this is set.
    '''
    genres: Optional[str] = None
    year_from: Optional[str] = None
    year_to: Optional[str] = None
    min_rating: Optional[Decimal] = None

    @property
    def genre_list(self) -> List[str]:
        return split_genres(self.genres)


@dataclass
class CollectionSort:
    '''
    Sort key (title, year, rating or dateAdded) and order (asc or desc).
    Unknown keys sort by date added, newest first. Without a valid order
    title sorts ascending, year and rating descending.
    '''
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None


@dataclass
class CollectionMovieRow:
    movie: CollectionMovie
    average_rating: Optional[Decimal]


@dataclass
class CollectionMoviesPage:
    movies: List[CollectionMovieRow] = field(default_factory=list)
    total_count: int = 0
    total_pages: int = 0
    current_page: int = 1


def _apply_filters(stmt, filters: CollectionMovieFilters):
    genres = filters.genre_list
    if genres:
        stmt = stmt.where(
            CollectionMovie.genre.is_not(None),
            or_(*[CollectionMovie.genre.contains(genre, autoescape=True) for genre in genres]),
        )

    if filters.year_from is not None:
        stmt = stmt.where(CollectionMovie.year >= str(filters.year_from))

    if filters.year_to is not None:
        stmt = stmt.where(CollectionMovie.year <= str(filters.year_to))

    if filters.min_rating is not None:
        stmt = stmt.where(
            MovieRatingCache.imdb_id.is_not(None),
            MovieRatingCache.average_rating >= filters.min_rating,
        )

    return stmt


def _order_by(sort: CollectionSort) -> Sequence:
    sort_by = (sort.sort_by or "").lower()
    sort_order = (sort.sort_order or "").lower()

    if sort_by == SORT_TITLE:
        column = CollectionMovie.title
        descending = sort_order == "desc"
    elif sort_by == SORT_YEAR:
        column = CollectionMovie.year
        descending = sort_order != "asc"
    elif sort_by == SORT_RATING:
        column = MovieRatingCache.average_rating
        descending = sort_order != "asc"
    else:
        column = CollectionMovie.added_at
        descending = True

    # id as tie breaker keeps pages stable
    if descending:
        return [column.desc(), CollectionMovie.id.desc()]
    return [column.asc(), CollectionMovie.id.asc()]


def list_collection_movies(
    db: Session,
    collection_id: int,
    filters: Optional[CollectionMovieFilters] = None,
    sort: Optional[CollectionSort] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> CollectionMoviesPage:
    '''
    Returns one page of a collection's movies. The caller has to make sure
    the collection belongs to the requesting user.

    Parameters
    ----------
    collection_id: int
        Collection to list.
    filters: CollectionMovieFilters, optional
        Genre, year range and minimum rating filters.
    sort: CollectionSort, optional
        Sort key and order, defaults to date added, newest first.
    page: int
        1-indexed page number, values below 1 count as 1.
    page_size: int
        Rows per page, must be positive.

    Returns
    -------
    CollectionMoviesPage with the rows of the page, the number of matching
    movies before paging and the number of pages.
    '''
    filters = filters or CollectionMovieFilters()
    sort = sort or CollectionSort()
    if page_size <= 0:
        raise ValueError("page_size must be > 0")
    page = max(page, 1)

    base = (
        select(CollectionMovie, MovieRatingCache.average_rating)
        .outerjoin(MovieRatingCache, MovieRatingCache.imdb_id == CollectionMovie.imdb_id)
        .where(CollectionMovie.collection_id == collection_id)
    )
    base = _apply_filters(base, filters)

    # Total before paging
    total_count = db.execute(
        select(func.count()).select_from(base.subquery())
    ).scalar_one()

    stmt = (
        base.order_by(*_order_by(sort))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    rows = [
        CollectionMovieRow(
            movie=movie,
            average_rating=Decimal(average) if average is not None else None,
        )
        for movie, average in db.execute(stmt).all()
    ]

    return CollectionMoviesPage(
        movies=rows,
        total_count=total_count,
        total_pages=ceil(total_count / page_size),
        current_page=page,
    )
