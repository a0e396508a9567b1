"""
Dashboard API - KPI counters, trend chart and campaign table
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from adpulse.core.cache import TAG_AD_ACCOUNTS, TAG_CAMPAIGNS, cache, user_tag
from adpulse.core.deps import get_current_user, get_db
from adpulse.models.user import User
from adpulse.schemas.common import DataResponse, ListResponse
from adpulse.schemas.dashboard import ChartPoint, DashboardCampaignRow, DashboardStats
from adpulse.services import analytics

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=DataResponse[DashboardStats])
def dashboard_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Active / warning / critical campaign counters"""
    today = date.today()
    stats = cache.get_or_set(
        f"dashboard:stats:{current_user.id}:{today.isoformat()}",
        lambda: analytics.get_dashboard_stats(db, current_user.id, today=today),
        tags=[user_tag(current_user.id), TAG_CAMPAIGNS],
    )
    return DataResponse(data=stats)


@router.get("/chart", response_model=DataResponse[List[ChartPoint]])
def dashboard_chart(
    days: Optional[int] = Query(None, ge=1, le=366),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Daily average conversion price over the user's active campaigns"""
    today = date.today()
    series = cache.get_or_set(
        f"dashboard:chart:{current_user.id}:{days}:{today.isoformat()}",
        lambda: analytics.get_dashboard_chart(db, current_user.id, days=days, today=today),
        tags=[user_tag(current_user.id), TAG_CAMPAIGNS],
    )
    return DataResponse(data=series)


@router.get("/campaigns", response_model=ListResponse[DashboardCampaignRow])
def dashboard_campaigns(
    ad_account_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Campaign table, optionally limited to one ad account"""
    today = date.today()
    rows = cache.get_or_set(
        f"dashboard:campaigns:{current_user.id}:{ad_account_id}:{today.isoformat()}",
        lambda: analytics.list_dashboard_campaigns(
            db, current_user.id, ad_account_id=ad_account_id, today=today
        ),
        tags=[user_tag(current_user.id), TAG_CAMPAIGNS, TAG_AD_ACCOUNTS],
    )
    return ListResponse(data=rows, total=len(rows))
