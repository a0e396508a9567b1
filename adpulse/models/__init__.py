"""
Database models for AdPulse
"""
from adpulse.models.base import Base, BaseModel, TimestampMixin
from adpulse.models.enums import (
    CampaignStatus, PerformanceStatus, ThresholdScope, SyncStage, TaskStatus
)

# User models
from adpulse.models.user import User

# Platform models
from adpulse.models.platform import AdAccount

# Campaign models
from adpulse.models.campaign import Campaign

# Metric models
from adpulse.models.metric import DailyMetric

# Task models
from adpulse.models.task import TaskLog, SyncErrorLog


__all__ = [
    # Base
    "Base", "BaseModel", "TimestampMixin",

    # Enums
    "CampaignStatus", "PerformanceStatus", "ThresholdScope", "SyncStage", "TaskStatus",

    # User
    "User",

    # Platform
    "AdAccount",

    # Campaign
    "Campaign",

    # Metrics
    "DailyMetric",

    # Task
    "TaskLog", "SyncErrorLog",
]
