import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.base import get_db
from ..models.sql_models import User

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# The cookie is the primary carrier; the header is accepted for API clients
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash.

    Args:
        plain_password: The plain text password
        hashed_password: The hashed password

    Returns:
        bool: True if the password is correct, False otherwise
    """
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """Hash a password.

    Args:
        password: The plain text password

    Returns:
        str: The hashed password
    """
    return pwd_context.hash(password)


def create_session_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a session token for a user.

    Args:
        user_id: Id of the authenticated user
        expires_delta: Optional lifetime, defaults to SESSION_EXPIRE_HOURS

    Returns:
        str: The encoded JWT
    """
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.SESSION_EXPIRE_HOURS)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {
        "user": {"id": user_id},
        "expires": expire.isoformat(),
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.AUTH_SECRET, algorithm=settings.ALGORITHM)


def verify_session_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode a session token.

    Returns:
        Optional[Dict]: The payload, or None when the token is invalid or expired
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.AUTH_SECRET, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    user = payload.get("user")
    if not isinstance(user, dict) or not isinstance(user.get("id"), int):
        return None
    return payload


def set_session_cookie(response: Response, user_id: int) -> str:
    """Attach a fresh session cookie for the user to the response."""
    settings = get_settings()
    token = create_session_token(user_id)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_EXPIRE_HOURS * 3600,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
    )
    return token


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(get_settings().SESSION_COOKIE_NAME)


def _token_from_request(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials is not None and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    return request.cookies.get(get_settings().SESSION_COOKIE_NAME)


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Resolve the signed-in user, or None when there is no valid session."""
    token = _token_from_request(request, credentials)
    if not token:
        return None
    payload = verify_session_token(token)
    if payload is None:
        return None
    return (
        db.query(User)
        .filter(User.id == payload["user"]["id"], User.deleted_at.is_(None))
        .first()
    )


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """Get the current user from the session.

    Raises:
        HTTPException: If there is no valid session or the user was deleted
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário não autenticado.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def client_ip(request: Request) -> Optional[str]:
    """Best guess at the caller's address, honouring a proxy header."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
