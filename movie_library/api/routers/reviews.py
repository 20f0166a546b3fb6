from typing import Optional

from fastapi import APIRouter, Depends, Query

from sqlalchemy.orm import Session

from movie_library.db.database_session import get_db
from movie_library.db.models.users import User
from movie_library.db.models.reviews import Review
from movie_library.api.security import get_current_user, get_optional_user
from movie_library.api.schemas import (
    ReviewRequest,
    ReviewResponse,
    MessageResponse,
    MovieStatsResponse,
    GetMovieReviewsResponse,
    GetMyReviewsResponse,
)
from movie_library.services import reviews as review_service


router = APIRouter(prefix="/api/reviews", tags=["reviews"])


def _to_review_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        user_id=review.user_id,
        user_email=review.user.email,
        imdb_id=review.imdb_id,
        rating=review.rating,
        review_text=review.review_text,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


@router.post("", response_model=ReviewResponse)
def create_or_update_review(
    request: ReviewRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Creates the current user's review of a movie, or replaces rating and text of the
    existing one. The movie's average rating is updated before the response is sent.

    **Parameters:**\n
    `request` (ReviewRequest): imdb_id, rating (1-10) and optional review_text (10-2000 chars)\n

    **Errors:**\n
    400 for an invalid rating or text length.
    """
    review = review_service.create_or_update_review(
        db,
        user_id=user.id,
        imdb_id=request.imdb_id,
        rating=request.rating,
        review_text=request.review_text,
    )
    return _to_review_response(review)


@router.delete("/{imdb_id}", response_model=MessageResponse)
def delete_review(
    imdb_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    review_service.delete_review(db, user_id=user.id, imdb_id=imdb_id)
    return MessageResponse(message="Review deleted successfully")


@router.get("/my-reviews", response_model=GetMyReviewsResponse)
def get_my_reviews(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return GetMyReviewsResponse(
        reviews=[_to_review_response(review) for review in review_service.get_user_reviews(db, user.id)]
    )


@router.get("/movies/{imdb_id}", response_model=GetMovieReviewsResponse)
def get_movie_reviews(
    imdb_id: str,
    skip: int = Query(0, description="Reviews to skip"),
    take: int = Query(20, description="Page size (1-100, other values fall back to 20)"),
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """
    Returns a page of the reviews of a movie, newest first. For a logged in caller the
    own review is left out, it is served by the my-review endpoint.
    """
    page = review_service.get_movie_reviews(
        db,
        imdb_id,
        exclude_user_id=user.id if user is not None else None,
        skip=skip,
        take=take,
    )
    return GetMovieReviewsResponse(
        reviews=[_to_review_response(review) for review in page.reviews],
        has_more=page.has_more,
    )


@router.get("/movies/{imdb_id}/stats", response_model=MovieStatsResponse)
def get_movie_stats(
    imdb_id: str,
    db: Session = Depends(get_db),
):
    stats = review_service.get_movie_stats(db, imdb_id)
    return MovieStatsResponse(
        average_rating=float(stats.average_rating),
        review_count=stats.review_count,
    )


@router.get("/movies/{imdb_id}/my-review", response_model=Optional[ReviewResponse])
def get_my_review(
    imdb_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Returns the current user's review of a movie, or null if there is none.
    """
    review = review_service.get_user_review(db, user.id, imdb_id)
    if review is None:
        return None
    return _to_review_response(review)
