"""
Enums for database models and aggregation results
"""
import enum


class CampaignStatus(str, enum.Enum):
    """Campaign lifecycle status as reported by Meta.

    Other platform values (e.g. DELETED, IN_PROCESS) are stored verbatim,
    so the column itself is a plain string.
    """
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    ARCHIVED = "ARCHIVED"


class PerformanceStatus(str, enum.Enum):
    """Traffic-light health of a campaign, driven by conversion price"""
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"
    GRAY = "GRAY"      # Insufficient data, never a health judgement


class ThresholdScope(str, enum.Enum):
    """Where a threshold update applies"""
    USER = "user"
    CAMPAIGN = "campaign"


class SyncStage(str, enum.Enum):
    """Pipeline stages of a user sync"""
    AD_ACCOUNTS = "ad_accounts"
    CAMPAIGNS = "campaigns"
    INSIGHTS = "insights"
    CACHE = "cache"


class TaskStatus(str, enum.Enum):
    """Task execution status"""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
