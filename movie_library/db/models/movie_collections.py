from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from movie_library.db.database_session import Base
from movie_library.db.models.users import User, utcnow


MAX_COLLECTION_NAME_LENGTH = 100


class MovieCollection(Base):
    """
    A named bucket of movies owned by one user.
    """
    __tablename__ = "collections"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(MAX_COLLECTION_NAME_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    user: Mapped[User] = relationship(User)


# Collection names are unique per user, ignoring case
Index(
    "ux_collections_user_id_lower_name",
    MovieCollection.user_id,
    func.lower(MovieCollection.name),
    unique=True,
)
