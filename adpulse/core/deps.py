"""
Dependency injection for FastAPI
"""
import hmac
from typing import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from adpulse.core.config import settings
from adpulse.core.database import SessionLocal
from adpulse.core.security import verify_token
from adpulse.models.user import User
from adpulse.services.meta.meta_api import MetaAPI

# HTTP Bearer token scheme
security = HTTPBearer()


def get_db() -> Generator:
    """Get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from JWT token"""

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = verify_token(credentials.credentials, token_type="access")
    if user_id is None or not str(user_id).isdigit():
        raise credentials_exception

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None:
        raise credentials_exception

    return user


def require_meta_token(current_user: User = Depends(get_current_user)) -> User:
    """Current user, who must have connected a Meta account"""
    if not current_user.has_meta_access:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Meta account is not connected"
        )
    if current_user.meta_token_expired:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Meta access token has expired, reconnect the account"
        )
    return current_user


def verify_cron_secret(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> None:
    """Scheduled-job endpoints authenticate with the shared CRON_SECRET"""
    expected = settings.CRON_SECRET
    if not expected or not hmac.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_meta_api() -> MetaAPI:
    """Graph API client; endpoints close it when done"""
    return MetaAPI()
