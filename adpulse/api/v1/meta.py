"""
Meta (Facebook Ads) endpoints: OAuth connect and sync operations
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from adpulse.core.deps import get_current_user, get_db, get_meta_api, require_meta_token
from adpulse.models.platform import AdAccount
from adpulse.models.user import User
from adpulse.schemas.common import DataResponse
from adpulse.schemas.meta import (
    MetaCallbackRequest,
    SyncRequest,
    SyncResult,
    UserSyncReport,
)
from adpulse.services import user_service
from adpulse.services.analytics import get_user_campaign
from adpulse.services.meta.meta_api import MetaAPI
from adpulse.services.meta.meta_sync import MetaSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meta", tags=["Meta"])


# ========================================
# OAuth
# ========================================

@router.get("/login", response_model=DataResponse[str])
def meta_login_url(
    redirect_uri: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
):
    """URL of the Meta login dialog"""
    return DataResponse(data=MetaAPI.build_login_url(redirect_uri, state=str(current_user.id)))


@router.post("/callback", response_model=DataResponse[UserSyncReport])
async def meta_callback(
    payload: MetaCallbackRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    api: MetaAPI = Depends(get_meta_api),
):
    """Exchange the OAuth code for a long-lived token, then run a lifetime sync"""
    await user_service.connect_meta_account(db, current_user.id, payload.code, payload.redirect_uri, api)

    if not payload.sync:
        return DataResponse(message="Meta account connected")

    sync_service = MetaSyncService(db, api)
    try:
        report = await sync_service.run_user_sync(current_user.id, lifetime=True)
    finally:
        await sync_service.close()

    return DataResponse(data=report, message="Meta account connected and synced")


# ========================================
# Sync
# ========================================

@router.post("/sync/ad-accounts", response_model=DataResponse[SyncResult])
async def sync_ad_accounts(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_meta_token),
    api: MetaAPI = Depends(get_meta_api),
):
    """Sync ad accounts of the connected Meta user"""
    sync_service = MetaSyncService(db, api)
    try:
        result = await sync_service.sync_ad_accounts(current_user.id, current_user.meta_access_token)
    finally:
        await sync_service.close()
    return DataResponse(data=result, message=f"Synced {result.count} ad accounts")


@router.post("/sync/ad-accounts/{ad_account_id}/campaigns", response_model=DataResponse[SyncResult])
async def sync_campaigns(
    ad_account_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_meta_token),
    api: MetaAPI = Depends(get_meta_api),
):
    """Sync campaigns of one of the user's ad accounts"""
    account = db.get(AdAccount, ad_account_id)
    if account is None or account.user_id != current_user.id:
        raise HTTPException(status_code=404, detail=f"AdAccount '{ad_account_id}' not found")

    sync_service = MetaSyncService(db, api)
    try:
        result = await sync_service.sync_campaigns(ad_account_id, current_user.meta_access_token)
    finally:
        await sync_service.close()
    return DataResponse(data=result, message=f"Synced {result.count} campaigns")


@router.post("/sync/campaigns/{campaign_id}/insights", response_model=DataResponse[SyncResult])
async def sync_campaign_insights(
    campaign_id: str,
    payload: Optional[SyncRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_meta_token),
    api: MetaAPI = Depends(get_meta_api),
):
    """Sync daily insights of one campaign (lifetime, explicit range, or yesterday)"""
    payload = payload or SyncRequest()
    get_user_campaign(db, current_user.id, campaign_id)

    sync_service = MetaSyncService(db, api)
    try:
        result = await sync_service.sync_campaign_insights(
            campaign_id,
            current_user.meta_access_token,
            since=payload.since,
            until=payload.until,
            lifetime=payload.lifetime,
        )
    finally:
        await sync_service.close()
    return DataResponse(data=result, message=f"Synced {result.count} insight rows")


@router.post("/sync", response_model=DataResponse[UserSyncReport])
async def sync_all(
    payload: Optional[SyncRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_meta_token),
    api: MetaAPI = Depends(get_meta_api),
):
    """Run the full accounts -> campaigns -> insights sync for the current user"""
    payload = payload or SyncRequest()

    sync_service = MetaSyncService(db, api)
    try:
        report = await sync_service.run_user_sync(
            current_user.id,
            since=payload.since,
            until=payload.until,
            lifetime=payload.lifetime,
        )
    finally:
        await sync_service.close()

    message = "Sync completed" if not report.has_errors else f"Sync completed with {report.errors} errors"
    return DataResponse(data=report, message=message)
