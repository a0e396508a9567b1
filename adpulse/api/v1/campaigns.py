"""
Campaign detail API - stats, totals, charts and threshold overrides
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from adpulse.core.cache import TAG_CAMPAIGNS, cache, user_tag
from adpulse.core.deps import get_current_user, get_db
from adpulse.models.enums import ThresholdScope
from adpulse.models.user import User
from adpulse.schemas.common import DataResponse
from adpulse.schemas.dashboard import CampaignStats, CampaignTotals, ChartPoint, EntityName, ThresholdUpdate
from adpulse.services import analytics, user_service

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


def _cache_key(name: str, user_id: int, campaign_id: str, *parts) -> str:
    suffix = ":".join("" if p is None else str(p) for p in parts)
    return f"campaign:{name}:{user_id}:{campaign_id}:{suffix}"


@router.get("/{campaign_id}", response_model=DataResponse[EntityName])
def get_campaign(
    campaign_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Campaign id and name"""
    campaign = cache.get_or_set(
        _cache_key("name", current_user.id, campaign_id),
        lambda: EntityName.model_validate(analytics.get_user_campaign(db, current_user.id, campaign_id)),
        tags=[user_tag(current_user.id), TAG_CAMPAIGNS],
    )
    return DataResponse(data=campaign)


@router.get("/{campaign_id}/stats", response_model=DataResponse[CampaignStats])
def campaign_stats(
    campaign_id: str,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    ad_account_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Average conv price / CPC / CTR and health status over the range"""
    stats = cache.get_or_set(
        _cache_key("stats", current_user.id, campaign_id, date_from, date_to, ad_account_id),
        lambda: analytics.get_campaign_stats(
            db, current_user.id, campaign_id, date_from, date_to, ad_account_id
        ),
        tags=[user_tag(current_user.id), TAG_CAMPAIGNS],
    )
    return DataResponse(data=stats)


@router.get("/{campaign_id}/totals", response_model=DataResponse[CampaignTotals])
def campaign_totals(
    campaign_id: str,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    ad_account_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Clicks / conversions / impressions / spend over the range"""
    totals = cache.get_or_set(
        _cache_key("totals", current_user.id, campaign_id, date_from, date_to, ad_account_id),
        lambda: analytics.get_campaign_totals(
            db, current_user.id, campaign_id, date_from, date_to, ad_account_id
        ),
        tags=[user_tag(current_user.id), TAG_CAMPAIGNS],
    )
    return DataResponse(data=totals)


@router.get("/{campaign_id}/chart", response_model=DataResponse[List[ChartPoint]])
def campaign_chart(
    campaign_id: str,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    ad_account_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Conversion price per day over the range"""
    series = cache.get_or_set(
        _cache_key("chart", current_user.id, campaign_id, date_from, date_to, ad_account_id),
        lambda: analytics.get_campaign_chart_series(
            db, current_user.id, campaign_id, date_from, date_to, ad_account_id
        ),
        tags=[user_tag(current_user.id), TAG_CAMPAIGNS],
    )
    return DataResponse(data=series)


@router.get("/{campaign_id}/sparkline", response_model=DataResponse[List[ChartPoint]])
def campaign_sparkline(
    campaign_id: str,
    days: Optional[int] = Query(None, ge=1, le=366),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Zero-filled daily conversion price for the campaign table"""
    today = date.today()
    series = cache.get_or_set(
        _cache_key("sparkline", current_user.id, campaign_id, days, today.isoformat()),
        lambda: analytics.get_campaign_sparkline(db, current_user.id, campaign_id, days=days, today=today),
        tags=[user_tag(current_user.id), TAG_CAMPAIGNS],
    )
    return DataResponse(data=series)


@router.put("/{campaign_id}/thresholds", response_model=DataResponse[CampaignStats])
def update_campaign_thresholds(
    campaign_id: str,
    payload: ThresholdUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Set or clear (null) the campaign's threshold override"""
    user_service.update_thresholds(
        db,
        current_user.id,
        ThresholdScope.CAMPAIGN,
        payload.green_max,
        payload.yellow_max,
        campaign_id=campaign_id,
    )
    return DataResponse(
        data=analytics.get_campaign_stats(db, current_user.id, campaign_id),
        message="Campaign thresholds updated",
    )
