"""
User model - owner of all synced Meta data and its threshold defaults
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Text, DateTime
from sqlalchemy.orm import relationship

from adpulse.models.base import BaseModel


class User(BaseModel):
    """Dashboard user"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)

    # Default thresholds, used when a campaign has no override
    green_max = Column(Float, nullable=True)
    yellow_max = Column(Float, nullable=True)

    # Long-lived Meta access token
    meta_access_token = Column(Text, nullable=True)
    meta_token_expiry = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    ad_accounts = relationship(
        "AdAccount",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def has_meta_access(self) -> bool:
        return bool(self.meta_access_token)

    @property
    def meta_token_expired(self) -> bool:
        if self.meta_token_expiry is None:
            return False
        expiry = self.meta_token_expiry
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return expiry <= datetime.now(timezone.utc)
