"""
Aggregation and health classification over the daily metric store.

Averages are plain arithmetic means over the rows in range (not weighted by
spend or volume).

Two windows are in play on purpose: campaign detail stats use the caller's
range, while dashboard lists and counters take their color from the trailing
STATUS_WINDOW_DAYS only. A row's totals and its color may therefore describe
different periods.
"""
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session, joinedload

from adpulse.core.config import settings
from adpulse.core.exceptions import EntityNotFoundError
from adpulse.models.campaign import Campaign
from adpulse.models.enums import CampaignStatus, PerformanceStatus
from adpulse.models.metric import DailyMetric
from adpulse.models.platform import AdAccount
from adpulse.models.user import User
from adpulse.schemas.dashboard import (
    CampaignStats,
    CampaignTotals,
    ChartPoint,
    DashboardCampaignRow,
    DashboardStats,
)
from adpulse.services.meta.metric_store import get_metrics

logger = logging.getLogger(__name__)


# ========================================
# Thresholds & classification
# ========================================

class Thresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    green_max: float
    yellow_max: float


def _first_set(*values: Optional[float]) -> float:
    for value in values:
        if value is not None:
            return value
    raise ValueError("no threshold value available")


def resolve_thresholds(
    campaign_green: Optional[float] = None,
    campaign_yellow: Optional[float] = None,
    user_green: Optional[float] = None,
    user_yellow: Optional[float] = None,
) -> Thresholds:
    """Campaign override, then user default, then the configured default"""
    return Thresholds(
        green_max=_first_set(campaign_green, user_green, settings.DEFAULT_GREEN_MAX),
        yellow_max=_first_set(campaign_yellow, user_yellow, settings.DEFAULT_YELLOW_MAX),
    )


def thresholds_for(campaign: Campaign, user: Optional[User]) -> Thresholds:
    return resolve_thresholds(
        campaign.green_max,
        campaign.yellow_max,
        user.green_max if user else None,
        user.yellow_max if user else None,
    )


def classify(avg_conv_price: Optional[float], thresholds: Thresholds) -> PerformanceStatus:
    """GREEN below green_max, YELLOW up to yellow_max inclusive, RED above, GRAY without data"""
    if avg_conv_price is None:
        return PerformanceStatus.GRAY
    if avg_conv_price < thresholds.green_max:
        return PerformanceStatus.GREEN
    if avg_conv_price <= thresholds.yellow_max:
        return PerformanceStatus.YELLOW
    return PerformanceStatus.RED


# ========================================
# Summaries
# ========================================

class MetricSummary(BaseModel):
    rows: int = 0
    avg_conv_price: Optional[float] = None
    avg_cpc: Optional[float] = None
    avg_ctr: Optional[float] = None
    clicks: int = 0
    impressions: int = 0
    spend: float = 0.0
    conversions: int = 0


def _mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def summarize(metrics: Sequence[DailyMetric]) -> MetricSummary:
    """Unweighted means of conv_price/cpc/ctr and sums of volume metrics"""
    if not metrics:
        return MetricSummary()

    return MetricSummary(
        rows=len(metrics),
        avg_conv_price=_mean([m.conv_price for m in metrics]),
        avg_cpc=_mean([m.cpc for m in metrics]),
        avg_ctr=_mean([m.ctr for m in metrics]),
        clicks=sum(m.clicks for m in metrics),
        impressions=sum(m.impressions for m in metrics),
        spend=sum(m.spend for m in metrics),
        conversions=sum(m.conversions for m in metrics),
    )


def _status_window_start(today: Optional[date]) -> date:
    # STATUS_WINDOW_DAYS calendar days ending today
    return (today or date.today()) - timedelta(days=settings.STATUS_WINDOW_DAYS - 1)


def _group_by_campaign(metrics: Iterable[DailyMetric]) -> Dict[str, List[DailyMetric]]:
    grouped: Dict[str, List[DailyMetric]] = defaultdict(list)
    for metric in metrics:
        grouped[metric.campaign_id].append(metric)
    return grouped


# ========================================
# Lookups (always scoped to the owning user)
# ========================================

def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise EntityNotFoundError("User", user_id)
    return user


def list_ad_accounts(db: Session, user_id: int, name: Optional[str] = None) -> List[AdAccount]:
    """User's ad accounts, optionally filtered by a case-insensitive name fragment"""
    query = db.query(AdAccount).filter(AdAccount.user_id == user_id)
    if name:
        query = query.filter(AdAccount.name.ilike(f"%{name}%"))
    return query.order_by(AdAccount.name, AdAccount.id).all()


def get_user_ad_account(db: Session, user_id: int, ad_account_id: str) -> AdAccount:
    account = (
        db.query(AdAccount)
        .filter(AdAccount.id == ad_account_id, AdAccount.user_id == user_id)
        .first()
    )
    if account is None:
        raise EntityNotFoundError("Ad account", ad_account_id)
    return account


def get_user_campaign(
    db: Session,
    user_id: int,
    campaign_id: str,
    ad_account_id: Optional[str] = None,
) -> Campaign:
    query = (
        db.query(Campaign)
        .join(AdAccount, Campaign.ad_account_id == AdAccount.id)
        .options(joinedload(Campaign.ad_account).joinedload(AdAccount.user))
        .filter(Campaign.id == campaign_id, AdAccount.user_id == user_id)
    )
    if ad_account_id is not None:
        query = query.filter(AdAccount.id == ad_account_id)

    campaign = query.first()
    if campaign is None:
        raise EntityNotFoundError("Campaign", campaign_id)
    return campaign


def _user_campaigns(
    db: Session,
    user_id: int,
    active_only: bool = False,
    ad_account_id: Optional[str] = None,
) -> List[Campaign]:
    query = (
        db.query(Campaign)
        .join(AdAccount, Campaign.ad_account_id == AdAccount.id)
        .options(joinedload(Campaign.ad_account))
        .filter(AdAccount.user_id == user_id)
    )
    if active_only:
        query = query.filter(Campaign.status == CampaignStatus.ACTIVE.value)
    if ad_account_id is not None:
        query = query.filter(AdAccount.id == ad_account_id)
    return query.order_by(Campaign.created_at.desc(), Campaign.id).all()


# ========================================
# Campaign detail view
# ========================================

def get_campaign_stats(
    db: Session,
    user_id: int,
    campaign_id: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    ad_account_id: Optional[str] = None,
) -> CampaignStats:
    """Average conv price / CPC / CTR over the range and the resulting status"""
    campaign = get_user_campaign(db, user_id, campaign_id, ad_account_id)
    summary = summarize(get_metrics(db, [campaign.id], date_from, date_to))
    thresholds = thresholds_for(campaign, campaign.ad_account.user)

    return CampaignStats(
        conv_price=round(summary.avg_conv_price or 0.0, 2),
        cpc=round(summary.avg_cpc or 0.0, 2),
        ctr=round(summary.avg_ctr or 0.0, 2),
        performance=classify(summary.avg_conv_price, thresholds),
    )


def get_campaign_totals(
    db: Session,
    user_id: int,
    campaign_id: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    ad_account_id: Optional[str] = None,
) -> CampaignTotals:
    campaign = get_user_campaign(db, user_id, campaign_id, ad_account_id)
    summary = summarize(get_metrics(db, [campaign.id], date_from, date_to))

    return CampaignTotals(
        clicks=summary.clicks,
        conversions=summary.conversions,
        impressions=summary.impressions,
        spend=round(summary.spend, 2),
    )


# ========================================
# Charts
# ========================================

def _bucket_by_date(metrics: Iterable[DailyMetric]) -> Dict[date, List[float]]:
    buckets: Dict[date, List[float]] = defaultdict(list)
    for metric in metrics:
        buckets[metric.date].append(metric.conv_price or 0.0)
    return buckets


def iter_campaign_chart_series(metrics: Iterable[DailyMetric]) -> Iterator[ChartPoint]:
    """One point per date (same-day values averaged), ascending by date"""
    buckets = _bucket_by_date(metrics)
    for day in sorted(buckets):
        values = buckets[day]
        yield ChartPoint(date=day, conv_price=sum(values) / len(values))


def get_campaign_chart_series(
    db: Session,
    user_id: int,
    campaign_id: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    ad_account_id: Optional[str] = None,
) -> List[ChartPoint]:
    campaign = get_user_campaign(db, user_id, campaign_id, ad_account_id)
    return list(iter_campaign_chart_series(get_metrics(db, [campaign.id], date_from, date_to)))


def _zero_filled_series(metrics: Iterable[DailyMetric], days: int, today: date) -> List[ChartPoint]:
    buckets = _bucket_by_date(metrics)
    series = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        values = buckets.get(day)
        series.append(ChartPoint(date=day, conv_price=sum(values) / len(values) if values else 0.0))
    return series


def get_dashboard_chart(
    db: Session,
    user_id: int,
    days: Optional[int] = None,
    today: Optional[date] = None,
) -> List[ChartPoint]:
    """Mean conv price across ACTIVE campaigns for each of the last `days` days"""
    days = days or settings.CHART_WINDOW_DAYS
    today = today or date.today()
    campaigns = _user_campaigns(db, user_id, active_only=True)
    metrics = get_metrics(
        db, [c.id for c in campaigns], date_from=today - timedelta(days=days - 1), date_to=today
    )
    return _zero_filled_series(metrics, days, today)


def get_campaign_sparkline(
    db: Session,
    user_id: int,
    campaign_id: str,
    days: Optional[int] = None,
    today: Optional[date] = None,
) -> List[ChartPoint]:
    """Last `days` days of one campaign, zero-filled"""
    days = days or settings.CHART_WINDOW_DAYS
    today = today or date.today()
    campaign = get_user_campaign(db, user_id, campaign_id)
    metrics = get_metrics(db, [campaign.id], date_from=today - timedelta(days=days - 1), date_to=today)
    return _zero_filled_series(metrics, days, today)


# ========================================
# Dashboard list view
# ========================================

def get_dashboard_stats(db: Session, user_id: int, today: Optional[date] = None) -> DashboardStats:
    """Count ACTIVE campaigns and how many are YELLOW / RED over the status window"""
    user = get_user(db, user_id)
    campaigns = _user_campaigns(db, user_id, active_only=True)
    recent = _group_by_campaign(
        get_metrics(db, [c.id for c in campaigns], date_from=_status_window_start(today))
    )

    stats = DashboardStats(active_campaigns=len(campaigns))
    for campaign in campaigns:
        avg = summarize(recent.get(campaign.id, [])).avg_conv_price
        status = classify(avg, thresholds_for(campaign, user))
        if status == PerformanceStatus.YELLOW:
            stats.warning_campaigns += 1
        elif status == PerformanceStatus.RED:
            stats.critical_campaigns += 1
    return stats


def list_dashboard_campaigns(
    db: Session,
    user_id: int,
    ad_account_id: Optional[str] = None,
    today: Optional[date] = None,
) -> List[DashboardCampaignRow]:
    """
    Campaign rows with all-history averages and totals. The color comes from
    the trailing status window; no recent data or a zero average is GRAY.
    """
    user = get_user(db, user_id)
    campaigns = _user_campaigns(db, user_id, ad_account_id=ad_account_id)
    by_campaign = _group_by_campaign(get_metrics(db, [c.id for c in campaigns]))
    window_start = _status_window_start(today)

    rows = []
    for campaign in campaigns:
        metrics = by_campaign.get(campaign.id, [])
        overall = summarize(metrics)
        recent_avg = summarize([m for m in metrics if m.date >= window_start]).avg_conv_price

        if recent_avg is None or recent_avg <= 0:
            status = PerformanceStatus.GRAY
        else:
            status = classify(recent_avg, thresholds_for(campaign, user))

        has_data = overall.rows > 0
        rows.append(DashboardCampaignRow(
            id=campaign.id,
            ad_account_id=campaign.ad_account_id,
            account_name=campaign.ad_account.name,
            name=campaign.name,
            status=campaign.status,
            conv_price=overall.avg_conv_price,
            cpc=overall.avg_cpc,
            ctr=overall.avg_ctr,
            clicks=overall.clicks if has_data else None,
            impressions=overall.impressions if has_data else None,
            spend=overall.spend if has_data else None,
            conversions=overall.conversions if has_data else None,
            performance_status=status,
            green_max=campaign.green_max,
            yellow_max=campaign.yellow_max,
        ))
    return rows
