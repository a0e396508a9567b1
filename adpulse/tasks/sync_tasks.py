"""
Meta sync tasks (scheduled and cron-triggered)
"""
import logging
from datetime import date, datetime, timezone
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from adpulse.core.database import SessionLocal
from adpulse.models import TaskLog, TaskStatus, User
from adpulse.services.meta.meta_api import MetaAPI
from adpulse.services.meta.meta_sync import MetaSyncService, describe_error, record_sync_error

logger = logging.getLogger(__name__)


def log_task_start(
    task_name: str,
    task_type: str = "sync",
    triggered_by: str = "scheduler",
    session_factory: Callable[[], Session] = SessionLocal,
) -> TaskLog:
    """Create task log entry"""
    db = session_factory()
    try:
        task = TaskLog(
            task_name=task_name,
            task_type=task_type,
            status=TaskStatus.RUNNING,
            started_at=datetime.now(timezone.utc),
            triggered_by=triggered_by,
        )
        db.add(task)
        db.commit()
        db.refresh(task)
        return task
    finally:
        db.close()


def log_task_complete(
    task_id: int,
    success: bool,
    message: str = None,
    items_processed: int = 0,
    items_success: int = 0,
    items_failed: int = 0,
    session_factory: Callable[[], Session] = SessionLocal,
):
    """Update task log on completion"""
    db = session_factory()
    try:
        task = db.query(TaskLog).filter(TaskLog.id == task_id).first()
        if task:
            task.status = TaskStatus.COMPLETED if success else TaskStatus.FAILED
            task.completed_at = datetime.now(timezone.utc)
            if task.started_at:
                start = task.started_at
                if start.tzinfo is None:
                    # SQLite drops tzinfo on read
                    start = start.replace(tzinfo=timezone.utc)
                task.duration_seconds = int((task.completed_at - start).total_seconds())
            if success:
                task.message = message
            else:
                task.error_message = message
            task.items_processed = items_processed
            task.items_success = items_success
            task.items_failed = items_failed
            db.commit()
    finally:
        db.close()


async def sync_all_users(
    since: Optional[date] = None,
    until: Optional[date] = None,
    lifetime: bool = False,
    today: Optional[date] = None,
    triggered_by: str = "scheduler",
    api_factory: Callable[[], MetaAPI] = MetaAPI,
    session_factory: Callable[[], Session] = SessionLocal,
) -> Dict[str, int]:
    """
    Run the full Meta sync for every user holding a token.

    Users run one after another. A failing user is written to the sync
    error log and the next user still runs. Without since/until/lifetime
    only yesterday's insights are fetched.
    """
    task = log_task_start("sync_all_users", "sync", triggered_by, session_factory)
    summary = {"users": 0, "succeeded": 0, "failed": 0, "skipped": 0, "errors": 0}

    db = session_factory()
    try:
        users = (
            db.query(User)
            .filter(User.meta_access_token.isnot(None))
            .order_by(User.id)
            .all()
        )
        user_ids = [(u.id, u.meta_token_expired) for u in users]
        summary["users"] = len(user_ids)

        for user_id, expired in user_ids:
            if expired:
                logger.warning(f"Skipping user {user_id}: Meta token expired")
                summary["skipped"] += 1
                continue

            sync_service = MetaSyncService(db, api_factory())
            try:
                report = await sync_service.run_user_sync(
                    user_id, since=since, until=until, lifetime=lifetime, today=today
                )
                summary["succeeded"] += 1
                summary["errors"] += report.errors
            except Exception as e:
                message = describe_error(e)
                logger.error(f"Sync of user {user_id} failed: {message}")
                summary["failed"] += 1
                record_sync_error(db, f"user {user_id}: {message}", "user", str(user_id), user_id)
            finally:
                await sync_service.close()

    except Exception as e:
        log_task_complete(
            task.id, False, str(e),
            summary["users"], summary["succeeded"], summary["failed"],
            session_factory=session_factory,
        )
        raise
    finally:
        db.close()

    log_task_complete(
        task.id, True,
        f"Synced {summary['succeeded']} of {summary['users']} users ({summary['errors']} unit errors)",
        summary["users"], summary["succeeded"], summary["failed"],
        session_factory=session_factory,
    )
    logger.info(f"sync_all_users finished: {summary}")
    return summary
