from typing import Optional, Tuple

from fastapi import Depends, HTTPException, status, Security
from fastapi.security import OAuth2PasswordBearer

from sqlalchemy.orm import Session

import os
from datetime import datetime, timedelta, timezone
from dotenv import load_dotenv
from jose import jwt, JWTError
from passlib.context import CryptContext

from movie_library.db.database_session import get_db
from movie_library.db.models.users import User


load_dotenv()

# Create configured hashing machine -> Hash pwd with this machine
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Load env vars for JWT
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MIN = int(os.getenv("ACCESS_TOKEN_EXPIRE_MIN", "60"))

oauth_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")

# Same scheme for endpoints that also serve anonymous callers
optional_oauth_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def hash_password(pwd: str) -> str:
    '''
    Hashes the given password with the defined pwd_context manager (hashing machine).

    Parameters
    ----------
    pwd: str
        The password that will be hashed

    Returns
    -------
    The hashed password.
    '''
    return pwd_context.hash(pwd)


def verify_password(pwd: str, hashed_pwd: str) -> bool:
    '''
    Verifys if the given plain password corresponds to the given hashed pwd.

    Parameters
    ----------
    pwd: str
        Password in raw text.
    hashed_pwd: str
        Hashed password.

    Returns
    -------
    True if pwd and hashed password belong together, otherwise false.
    '''
    return pwd_context.verify(pwd, hashed_pwd)


def create_access_token(subject: str) -> Tuple[str, datetime]:
    '''
    Creates an JWT access token for the given subject.

    Parameters
    ----------
    subject: str
        Subject to give the token to, here users email.

    Returns
    -------
    access_token: str
        The jwt access token for the subject.
    expires_at: datetime
        Moment the token stops being valid.
    '''
    # Define expiration date
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MIN)

    # Define payload
    payload = {
        "sub": subject,         # Email
        "exp": expire,
    }

    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM), expire


def decode_token(token: str) -> dict:
    """
    Decodes a jwt token and returns its payload.

    Parameters
    ----------
    token : str
        The jwt access token for a specific subject.

    Returns
    -------
    payload: dict
        The payload of the decoded JWT token.
    """
    payload = jwt.decode(
        token=token,
        key=JWT_SECRET,
        algorithms=[JWT_ALGORITHM],
    )

    # Extracts the sub value from the dict -> username = email
    sub = payload.get("sub")

    # Checks if username could be extracted
    if not sub:
        raise JWTError("Missing subject (sub) claim.")

    return payload


def _user_from_token(token: str, db: Session) -> User:
    # Checks if token is valid else, Exception
    try:
        payload = decode_token(token=token)
        email = payload.get("sub")
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Search if email exists in DB
    user = db.query(User).filter(User.email == email).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def get_current_user(
        token: str = Security(oauth_scheme),
        db: Session = Depends(get_db),
) -> User:
    '''
    Gets a jwt access token and a db session object. First it decodes the given access token.
    If the extracted email is part of the DB, then the function returns the user information.
    Otherwise raises an HTTP Exception.

    Parameters
    ----------
    token: str
        JWT access token.
    db: Session
        A DB session object to access the DB trough SQLalchemy.

    Returns
    ----------
    user : User
        A User object containing the user information that correspondes to the
        given token, if found. Else HTTPException.
    '''
    return _user_from_token(token, db)


def get_optional_user(
        token: Optional[str] = Security(optional_oauth_scheme),
        db: Session = Depends(get_db),
) -> Optional[User]:
    '''
    Like get_current_user, but returns None for anonymous requests. A token
    that is sent but invalid is still rejected.
    '''
    if not token:
        return None
    return _user_from_token(token, db)
