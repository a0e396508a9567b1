"""
Dashboard / campaign statistics schemas
"""
import datetime as dt
from typing import Optional
from pydantic import BaseModel, Field

from adpulse.models.enums import PerformanceStatus, ThresholdScope


class DashboardStats(BaseModel):
    """Health counters over the user's ACTIVE campaigns"""

    active_campaigns: int = 0
    warning_campaigns: int = 0
    critical_campaigns: int = 0


class CampaignStats(BaseModel):
    """Averages over the requested range plus the resulting health status"""

    conv_price: float = 0.0
    cpc: float = 0.0
    ctr: float = 0.0
    performance: PerformanceStatus = PerformanceStatus.GRAY


class CampaignTotals(BaseModel):
    """Sums over the requested range"""

    clicks: int = 0
    conversions: int = 0
    impressions: int = 0
    spend: float = 0.0


class ChartPoint(BaseModel):
    """One point of a conversion price series"""

    date: dt.date
    conv_price: float = 0.0


class DashboardCampaignRow(BaseModel):
    """Campaign table row: all-history totals, color from the recent window"""

    id: str
    ad_account_id: str
    account_name: str
    name: str
    status: Optional[str] = None
    conv_price: Optional[float] = None
    cpc: Optional[float] = None
    ctr: Optional[float] = None
    clicks: Optional[int] = None
    impressions: Optional[int] = None
    spend: Optional[float] = None
    conversions: Optional[int] = None
    performance_status: PerformanceStatus = PerformanceStatus.GRAY
    green_max: Optional[float] = None
    yellow_max: Optional[float] = None


class ThresholdUpdate(BaseModel):
    """Threshold update payload. Campaign scope accepts nulls (clear override)."""

    scope: ThresholdScope = ThresholdScope.USER
    green_max: Optional[float] = Field(default=None, ge=0)
    yellow_max: Optional[float] = Field(default=None, ge=0)


class UserSettingsResponse(BaseModel):
    """Settings page data"""

    green_max: Optional[float] = None
    yellow_max: Optional[float] = None
    effective_green_max: float
    effective_yellow_max: float
    has_meta_access: bool = False
    meta_token_expiry: Optional[dt.datetime] = None
    token_expires_in_days: Optional[int] = None
    token_expires_soon: bool = False


class SyncErrorResponse(BaseModel):
    """Sync error log entry"""

    id: int
    unit_type: Optional[str] = None
    unit_id: Optional[str] = None
    description: str
    occurred_at: dt.datetime

    class Config:
        from_attributes = True


class EntityName(BaseModel):
    """Id and display name of an ad account or campaign"""

    id: str
    name: str

    class Config:
        from_attributes = True


class UserInfo(BaseModel):
    """Dashboard header data"""

    id: int
    name: Optional[str] = None
    email: str

    class Config:
        from_attributes = True
