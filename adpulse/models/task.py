"""
Task and sync error logging models
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum

from adpulse.models.base import BaseModel
from adpulse.models.enums import TaskStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskLog(BaseModel):
    """Log of orchestrator runs (scheduled or manual)"""

    __tablename__ = "task_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Task identification
    task_name = Column(String(100), nullable=False, index=True)
    task_type = Column(String(50), nullable=True)  # sync, maintenance, ...

    # Execution
    status = Column(Enum(TaskStatus), default=TaskStatus.RUNNING, index=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_seconds = Column(Integer, nullable=True)

    # Results
    message = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)

    # Statistics
    items_processed = Column(Integer, default=0)
    items_success = Column(Integer, default=0)
    items_failed = Column(Integer, default=0)

    # Trigger info
    triggered_by = Column(String(100), nullable=True)  # scheduler, user, api


class SyncErrorLog(BaseModel):
    """Append-only record of a failed sync unit. Diagnostic only."""

    __tablename__ = "sync_error_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Plain ids, the failing entity may not exist locally
    user_id = Column(Integer, nullable=True, index=True)
    unit_type = Column(String(50), nullable=True)   # ad_account, campaign, user
    unit_id = Column(String(100), nullable=True, index=True)

    description = Column(Text, nullable=False)
    occurred_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
