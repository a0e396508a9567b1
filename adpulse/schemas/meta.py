"""
Schemas for Meta sync payloads and results
"""
import datetime as dt
from datetime import date
from typing import Dict, Optional, List
from pydantic import BaseModel, ConfigDict, Field

from adpulse.models.enums import SyncStage


class NormalizedInsight(BaseModel):
    """One day of campaign insights, cleaned and typed"""

    date: dt.date
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    ctr: float = 0.0
    cpc: float = 0.0
    conversions: int = 0
    conv_price: float = 0.0

    def metric_fields(self) -> dict:
        """Columns written to the metrics store (everything but the key)"""
        return self.model_dump(exclude={"date"})


class SyncResult(BaseModel):
    """Result of a single sync operation"""

    success: bool = True
    count: int = 0


class UserSyncReport(BaseModel):
    """Outcome of a full three-stage user sync"""

    user_id: int
    ad_accounts: int = 0
    accounts_synced: int = 0
    campaigns_total: int = 0
    campaigns_synced: int = 0
    metric_rows: int = 0
    errors: int = 0
    failed_units: List[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return self.errors > 0


class SyncRequest(BaseModel):
    """Window selection for insight syncs (lifetime > since/until > yesterday)"""

    since: Optional[date] = None
    until: Optional[date] = None
    lifetime: bool = False


class InsightWindow(BaseModel):
    """Resolved insight request window: a preset or an inclusive day range"""

    model_config = ConfigDict(frozen=True)

    since: Optional[date] = None
    until: Optional[date] = None
    date_preset: Optional[str] = None

    def as_params(self) -> Dict[str, Optional[str]]:
        if self.date_preset:
            return {"date_preset": self.date_preset}
        return {"since": self.since.isoformat(), "until": self.until.isoformat()}


class SyncProgress(BaseModel):
    """Progress event emitted by the coordinator"""

    stage: SyncStage
    done: int
    total: int


class MetaCallbackRequest(BaseModel):
    """OAuth callback payload"""

    code: str
    redirect_uri: Optional[str] = None
    sync: bool = True  # run a lifetime sync right after storing the token
