from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Integer,
    String,
    DateTime,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    Mapped,
    mapped_column,
    relationship
)

from movie_library.db.database_session import Base
from movie_library.db.models.users import User, utcnow


MIN_RATING = 1
MAX_RATING = 10
MIN_REVIEW_TEXT_LENGTH = 10
MAX_REVIEW_TEXT_LENGTH = 2000


class Review(Base):
    """
    ORM model for 'reviews' table.

    Columns
    -------
    id : int
        Primary key.
    user_id : int
        Author of the review.
    imdb_id : str
        External movie id the review belongs to.
    rating : int
        Star rating between 1 and 10.
    review_text : str, optional
        Free text, NULL when the user only rated.
    created_at : datetime
        Time of the first submission.
    updated_at : datetime, optional
        Time of the last edit, NULL if never edited.
    """

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "imdb_id", name="uq_reviews_user_imdb"),
        CheckConstraint(
            f"rating >= {MIN_RATING} AND rating <= {MAX_RATING}",
            name="ck_reviews_rating_range",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    imdb_id: Mapped[str] = mapped_column(
        String(20),
        index=True,
        nullable=False
    )

    rating: Mapped[int] = mapped_column(
        Integer,
        nullable=False
    )

    review_text: Mapped[Optional[str]] = mapped_column(
        String(MAX_REVIEW_TEXT_LENGTH),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    user: Mapped[User] = relationship(User)
