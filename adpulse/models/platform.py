"""
Ad Account model
"""
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from adpulse.models.base import BaseModel


class AdAccount(BaseModel):
    """Meta ad account, keyed by the platform's external id (act_xxx)"""

    __tablename__ = "ad_accounts"

    id = Column(String(100), primary_key=True)  # Meta act_xxx
    name = Column(String(255), nullable=False)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    user = relationship("User", back_populates="ad_accounts")
    campaigns = relationship(
        "Campaign",
        back_populates="ad_account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
