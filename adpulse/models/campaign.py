"""
Campaign model
"""
from sqlalchemy import Column, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from adpulse.models.base import BaseModel
from adpulse.models.enums import CampaignStatus


class Campaign(BaseModel):
    """Meta campaign, keyed by the platform's external id"""

    __tablename__ = "campaigns"

    id = Column(String(100), primary_key=True)

    # ============================================
    # Campaign Info
    # ============================================
    name = Column(String(255), nullable=False)
    # ACTIVE / PAUSED / ARCHIVED, other platform values kept verbatim
    status = Column(String(50), default=CampaignStatus.ACTIVE.value, index=True)
    platform_created_at = Column(DateTime(timezone=True), nullable=True)

    ad_account_id = Column(
        String(100),
        ForeignKey("ad_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # ============================================
    # Threshold overrides (fall back to user defaults)
    # ============================================
    green_max = Column(Float, nullable=True)
    yellow_max = Column(Float, nullable=True)

    # ============================================
    # Relationships
    # ============================================
    ad_account = relationship("AdAccount", back_populates="campaigns")
    metrics = relationship(
        "DailyMetric",
        back_populates="campaign",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
