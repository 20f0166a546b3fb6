import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from sqlalchemy.orm import Session

from movie_library.db.database_session import get_db
from movie_library.db.models.users import User, utcnow
from movie_library.db.models.movie_collections import MovieCollection
from movie_library.api.schemas import UserCreate, Token, MessageResponse
from movie_library.api.security import hash_password, verify_password, create_access_token
from movie_library.errors import ConflictError
from movie_library.services.library import DEFAULT_COLLECTION_NAME


logger = logging.getLogger(__name__)

# Init route obj
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    """
    Get's the user email and password (UserCreate) and creates a new user inside
    the DB, if the email doesn't already exist. Every new user starts with an
    empty "Favorites" collection.

    **Parameters**:\n
    `payload` (UserCreate): The user email and password.\n

    **Returns**:\n
    `message` (str): Success message indicating user creation.
    """
    email = payload.email.lower()

    # Check if email already exists in DB
    email_exists = db.query(User).filter(User.email == email).first()

    # Skip creation if email exists
    if email_exists:
        raise ConflictError("Email already exists.")

    # Create new user obj
    user = User(
        email=email,
        hashed_password=hash_password(payload.password),
        is_active=True,
        created_at=utcnow(),
    )

    # Add user and its default collection to DB in one transaction
    db.add(user)
    db.flush()
    db.add(MovieCollection(user_id=user.id, name=DEFAULT_COLLECTION_NAME, created_at=utcnow()))
    db.commit()

    logger.info("Registered user %s", user.id)
    return MessageResponse(message="Registration successful.")


@router.post("/token", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """
    Login endpoint (OAuth2 password flow). Returns a JWT access token if user email and
    password are valid.

    **Returns**:\n
    `Token`(response_model):
    - `access_token` (str): JWT access token for authentication.\n
    - `token_type` (str): Type of the token, typically "bearer".\n
    - `expires_at` (datetime): Expiry of the token.\n
    - `email` (str): The logged in user.
    """
    # Check if username (email) is part of DB table
    user = db.query(User).filter(User.email == form_data.username.lower()).first()

    # Raise error if user password is invalid
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Bad credentials."
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User is inactive."
        )

    # Create an jwt access token after validating credentials.
    token, expires_at = create_access_token(subject=user.email)

    return Token(access_token=token, expires_at=expires_at, email=user.email)
