"""
Daily campaign performance snapshots.

One row per (campaign, day). Every write goes through an upsert keyed on that
pair, so re-syncing overlapping windows never duplicates rows.
"""

from sqlalchemy import Column, Integer, String, Date, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from adpulse.models.base import BaseModel


class DailyMetric(BaseModel):
    """One campaign's performance for one calendar day."""

    __tablename__ = "daily_metrics"

    id = Column(Integer, primary_key=True, index=True)

    campaign_id = Column(
        String(100),
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date = Column(Date, nullable=False, index=True)

    spend = Column(Float, nullable=False, default=0)
    impressions = Column(Integer, nullable=False, default=0)
    clicks = Column(Integer, nullable=False, default=0)
    ctr = Column(Float, nullable=False, default=0)          # percent, 2.34 == 2.34%
    cpc = Column(Float, nullable=False, default=0)
    conversions = Column(Integer, nullable=False, default=0)
    conv_price = Column(Float, nullable=False, default=0)   # spend / conversions

    campaign = relationship("Campaign", back_populates="metrics")

    __table_args__ = (
        UniqueConstraint("campaign_id", "date", name="uq_daily_metrics_campaign_date"),
    )
