"""
Ad account lookups - account picker and names
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from adpulse.core.cache import TAG_AD_ACCOUNTS, cache, user_tag
from adpulse.core.deps import get_current_user, get_db
from adpulse.models.user import User
from adpulse.schemas.common import DataResponse, ListResponse
from adpulse.schemas.dashboard import EntityName
from adpulse.services import analytics

router = APIRouter(prefix="/ad-accounts", tags=["Ad Accounts"])


@router.get("", response_model=ListResponse[EntityName])
def list_ad_accounts(
    name: Optional[str] = Query(None, description="Case-insensitive name filter"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Ad accounts synced for the current user"""
    accounts = cache.get_or_set(
        f"ad_accounts:list:{current_user.id}:{name or ''}",
        lambda: [
            EntityName.model_validate(a)
            for a in analytics.list_ad_accounts(db, current_user.id, name=name)
        ],
        tags=[user_tag(current_user.id), TAG_AD_ACCOUNTS],
    )
    return ListResponse(data=accounts, total=len(accounts))


@router.get("/{ad_account_id}", response_model=DataResponse[EntityName])
def get_ad_account(
    ad_account_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    account = cache.get_or_set(
        f"ad_accounts:name:{current_user.id}:{ad_account_id}",
        lambda: EntityName.model_validate(
            analytics.get_user_ad_account(db, current_user.id, ad_account_id)
        ),
        tags=[user_tag(current_user.id), TAG_AD_ACCOUNTS],
    )
    return DataResponse(data=account)
