from decimal import Decimal

import pytest

from movie_library.services.collection_query import (
    CollectionMovieFilters,
    CollectionSort,
    list_collection_movies,
)


def _titles(page):
    return [row.movie.title for row in page.movies]


def test_returns_movies_of_collection_with_ratings(db, seeded):
    page = list_collection_movies(db, seeded.action.id)

    assert page.total_count == 2
    assert page.total_pages == 1
    assert page.current_page == 1
    # Default sort: newest addition first
    assert _titles(page) == ["The Dark Knight", "The Shawshank Redemption"]
    assert [row.average_rating for row in page.movies] == [Decimal("9.0"), Decimal("9.5")]


def test_movies_without_cache_have_null_rating(db, seeded):
    page = list_collection_movies(db, seeded.drama.id)

    assert _titles(page) == ["Forrest Gump"]
    assert page.movies[0].average_rating is None


def test_genre_filter_matches_substring(db, seeded):
    page = list_collection_movies(db, seeded.action.id, CollectionMovieFilters(genres="Action"))

    assert _titles(page) == ["The Dark Knight"]
    assert page.total_count == 1


def test_genre_filter_matches_any_of_several_genres(db, factory, seeded):
    factory.movie(seeded.action, "tt0109686", "Dumb and Dumber", "1994", "Comedy")
    factory.movie(seeded.action, "tt0000001", "No Genre", "1994", None)

    page = list_collection_movies(db, seeded.action.id, CollectionMovieFilters(genres="Comedy, Crime"))

    assert sorted(_titles(page)) == ["Dumb and Dumber", "The Dark Knight"]


def test_genre_filter_is_case_sensitive(db, seeded):
    page = list_collection_movies(db, seeded.action.id, CollectionMovieFilters(genres="action"))

    assert page.total_count == 0
    assert page.movies == []


def test_year_filter_uses_string_comparison(db, seeded):
    page = list_collection_movies(db, seeded.action.id, CollectionMovieFilters(year_from="2000"))

    assert _titles(page) == ["The Dark Knight"]

    page = list_collection_movies(db, seeded.action.id, CollectionMovieFilters(year_to="2000"))

    assert _titles(page) == ["The Shawshank Redemption"]


def test_year_filter_is_not_numeric(db, factory, seeded):
    collection = factory.collection(seeded.alice, "Odd Years")
    factory.movie(collection, "tt0000009", "Year Nine", year="9")

    # "9" >= "10" as strings, although 9 < 10 as numbers
    page = list_collection_movies(db, collection.id, CollectionMovieFilters(year_from="10"))
    assert _titles(page) == ["Year Nine"]

    page = list_collection_movies(db, collection.id, CollectionMovieFilters(year_to="10"))
    assert page.total_count == 0


def test_year_bounds_are_inclusive(db, seeded):
    page = list_collection_movies(
        db, seeded.action.id, CollectionMovieFilters(year_from="1994", year_to="1994")
    )

    assert _titles(page) == ["The Shawshank Redemption"]


def test_min_rating_filter(db, seeded):
    page = list_collection_movies(db, seeded.action.id, CollectionMovieFilters(min_rating=Decimal("9.2")))

    assert _titles(page) == ["The Shawshank Redemption"]


def test_min_rating_excludes_unrated_movies(db, seeded):
    page = list_collection_movies(db, seeded.drama.id, CollectionMovieFilters(min_rating=Decimal("0")))

    assert page.total_count == 0


def test_filters_are_combined(db, factory, seeded):
    factory.movie(seeded.action, "tt1375666", "Inception", "2010", "Action, Adventure, Sci-Fi")
    factory.rating_cache("tt1375666", "8.0", 1)

    filters = CollectionMovieFilters(genres="Action", year_from="2000", min_rating=Decimal("8.5"))
    page = list_collection_movies(db, seeded.action.id, filters)

    assert _titles(page) == ["The Dark Knight"]


def test_sort_by_title(db, seeded):
    page = list_collection_movies(db, seeded.action.id, sort=CollectionSort("title"))
    assert _titles(page) == ["The Dark Knight", "The Shawshank Redemption"]

    page = list_collection_movies(db, seeded.action.id, sort=CollectionSort("title", "desc"))
    assert _titles(page) == ["The Shawshank Redemption", "The Dark Knight"]


def test_sort_by_year_defaults_to_descending(db, seeded):
    page = list_collection_movies(db, seeded.action.id, sort=CollectionSort("year"))
    assert _titles(page) == ["The Dark Knight", "The Shawshank Redemption"]

    page = list_collection_movies(db, seeded.action.id, sort=CollectionSort("YEAR", "ASC"))
    assert _titles(page) == ["The Shawshank Redemption", "The Dark Knight"]


def test_sort_by_rating(db, seeded):
    page = list_collection_movies(db, seeded.action.id, sort=CollectionSort("rating"))
    assert _titles(page) == ["The Shawshank Redemption", "The Dark Knight"]

    page = list_collection_movies(db, seeded.action.id, sort=CollectionSort("rating", "asc"))
    assert _titles(page) == ["The Dark Knight", "The Shawshank Redemption"]


def test_unknown_sort_falls_back_to_date_added(db, seeded):
    page = list_collection_movies(db, seeded.action.id, sort=CollectionSort("popularity", "asc"))

    assert _titles(page) == ["The Dark Knight", "The Shawshank Redemption"]


def test_pagination(db, factory, seeded):
    collection = factory.collection(seeded.alice, "Big One")
    for i in range(5):
        factory.movie(collection, f"tt000000{i}", f"Movie {i}", days_ago=i)

    first = list_collection_movies(db, collection.id, page=1, page_size=2)
    assert first.total_count == 5
    assert first.total_pages == 3
    assert _titles(first) == ["Movie 0", "Movie 1"]

    last = list_collection_movies(db, collection.id, page=3, page_size=2)
    assert last.current_page == 3
    assert _titles(last) == ["Movie 4"]

    beyond = list_collection_movies(db, collection.id, page=4, page_size=2)
    assert beyond.movies == []
    assert beyond.total_count == 5


def test_empty_collection(db, seeded):
    page = list_collection_movies(db, seeded.comedy.id)

    assert page.total_count == 0
    assert page.total_pages == 0
    assert page.movies == []


def test_invalid_page_size(db, seeded):
    with pytest.raises(ValueError):
        list_collection_movies(db, seeded.action.id, page_size=0)
