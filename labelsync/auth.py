"""
Bearer-token authentication. Tokens are issued by the external auth provider;
we only verify them and map the `sub` claim to a User row.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from labelsync.config import settings
from labelsync.database import get_db
from labelsync.models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a token with JWT_SECRET. Used by tooling and tests; production tokens come from the provider."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.AUTH_ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.AUTH_ALGORITHM])


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        payload = decode_token(credentials.credentials)
    except JWTError as e:
        logger.warning("JWT validation error: %s", e)
        raise credentials_exception
    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    user = db.query(User).filter(User.id == str(user_id)).first()
    if user is None:
        # First request from a provider-issued identity
        user = User(id=str(user_id), email=payload.get("email"), name=payload.get("name"))
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Created user %s on first authenticated request", user.id)
    return user
