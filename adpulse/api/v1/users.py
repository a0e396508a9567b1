"""
Current user endpoint
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from adpulse.core.cache import TAG_USERS, cache, user_tag
from adpulse.core.deps import get_current_user, get_db
from adpulse.models.user import User
from adpulse.schemas.common import DataResponse
from adpulse.schemas.dashboard import UserInfo
from adpulse.services import analytics

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=DataResponse[UserInfo])
def get_me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Name and email for the dashboard header"""
    info = cache.get_or_set(
        f"users:me:{current_user.id}",
        lambda: UserInfo.model_validate(analytics.get_user(db, current_user.id)),
        tags=[user_tag(current_user.id), TAG_USERS],
    )
    return DataResponse(data=info)
