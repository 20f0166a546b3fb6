from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from movie_library.db.database_session import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    Table definition for table called "users".
    """
    # Define table name
    __tablename__ = "users"

    # Define column named id as primary key
    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(
        String(320),        # Sets max string length to 320 chars, to be valid
        unique=True,        # Only able to add emails that are unique -> not already existing in table
        index=True,         # Login and token lookups go by email
        nullable=False,
    )
    hashed_password: Mapped[str] = mapped_column(
        String(255),        # Sets max string lenght to 255 chars
        nullable=False,
    )
    # Marks if the user has access to the system or not. False -> No Access
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
