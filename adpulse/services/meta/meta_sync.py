"""
Meta Sync Service
Mirrors ad accounts, campaigns and daily insights into the AdPulse database
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adpulse.core.cache import TAG_AD_ACCOUNTS, TAG_CAMPAIGNS, cache, user_tag
from adpulse.core.exceptions import EntityNotFoundError, InvalidInputError, MetaAPIError
from adpulse.models.campaign import Campaign
from adpulse.models.enums import SyncStage
from adpulse.models.platform import AdAccount
from adpulse.models.task import SyncErrorLog
from adpulse.models.user import User
from adpulse.schemas.meta import InsightWindow, SyncProgress, SyncResult, UserSyncReport
from adpulse.services.meta.meta_api import LIFETIME_PRESET, MetaAPI
from adpulse.services.meta.metric_store import upsert_daily_metric
from adpulse.services.meta.normalizer import normalize_insight

logger = logging.getLogger(__name__)

DateLike = Union[date, str, None]
ProgressCallback = Callable[[SyncProgress], None]


def _to_date(value: DateLike, name: str) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInputError(f"{name} must be a YYYY-MM-DD date, got '{value}'")


def resolve_insight_window(
    since: DateLike = None,
    until: DateLike = None,
    lifetime: bool = False,
    today: Optional[date] = None,
) -> InsightWindow:
    """
    Pick the insight window: lifetime preset, then an explicit range,
    then yesterday only (the scheduled incremental sync).
    """
    if lifetime:
        return InsightWindow(date_preset=LIFETIME_PRESET)

    since_date = _to_date(since, "since")
    until_date = _to_date(until, "until")

    if since_date is not None or until_date is not None:
        if since_date is None or until_date is None:
            raise InvalidInputError("since and until must be given together")
        if since_date > until_date:
            raise InvalidInputError("since must not be after until")
        return InsightWindow(since=since_date, until=until_date)

    yesterday = (today or date.today()) - timedelta(days=1)
    return InsightWindow(since=yesterday, until=yesterday)


def _parse_created_time(value: Optional[str]) -> Optional[datetime]:
    """Parse Meta's created_time (2024-03-01T10:15:00+0000)"""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S%z")
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparsable created_time '{value}'")
        return None


def describe_error(error: Exception) -> str:
    if isinstance(error, MetaAPIError):
        return error.message
    return str(error) or error.__class__.__name__


class MetaSyncService:
    """
    Three-stage sync pipeline: accounts -> campaigns -> insights.

    Single-entity operations propagate their errors. `run_user_sync` isolates
    each account / campaign unit: a failed unit is rolled back, written to
    the sync error log and skipped.
    """

    def __init__(self, db: Session, api: Optional[MetaAPI] = None):
        self.db = db
        self.api = api or MetaAPI()

    async def close(self):
        """Close API client"""
        await self.api.close()

    # ========================================
    # Ad Accounts Sync
    # ========================================

    async def sync_ad_accounts(self, user_id: int, access_token: str) -> SyncResult:
        """Fetch all ad accounts of the token owner and upsert them for the user"""
        if self.db.get(User, user_id) is None:
            raise EntityNotFoundError("User", user_id)

        accounts_data = await self.api.fetch_ad_accounts(access_token)

        try:
            for account_data in accounts_data:
                self._upsert_ad_account(account_data, user_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Synced {len(accounts_data)} ad accounts for user {user_id}")
        return SyncResult(count=len(accounts_data))

    def _upsert_ad_account(self, account_data: Dict[str, Any], user_id: int) -> str:
        external_id = account_data.get("id")
        if not external_id:
            logger.warning(f"Skipping ad account without id: {account_data}")
            return "skipped"

        name = account_data.get("name") or external_id
        existing = self.db.get(AdAccount, external_id)

        if existing:
            if existing.user_id != user_id:
                logger.warning(f"Ad account {external_id} belongs to user {existing.user_id}, keeping owner")
            existing.name = name
            return "updated"

        self.db.add(AdAccount(id=external_id, name=name, user_id=user_id))
        return "created"

    # ========================================
    # Campaigns Sync
    # ========================================

    async def sync_campaigns(self, ad_account_id: str, access_token: str) -> SyncResult:
        """Fetch all campaigns of one ad account and upsert them"""
        if self.db.get(AdAccount, ad_account_id) is None:
            raise EntityNotFoundError("AdAccount", ad_account_id)

        campaigns_data = await self.api.fetch_campaigns(ad_account_id, access_token)

        try:
            for campaign_data in campaigns_data:
                self._upsert_campaign(campaign_data, ad_account_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Synced {len(campaigns_data)} campaigns for ad account {ad_account_id}")
        return SyncResult(count=len(campaigns_data))

    def _upsert_campaign(self, campaign_data: Dict[str, Any], ad_account_id: str) -> str:
        external_id = campaign_data.get("id")
        if not external_id:
            logger.warning(f"Skipping campaign without id: {campaign_data}")
            return "skipped"

        data = {
            "name": campaign_data.get("name") or external_id,
            "status": campaign_data.get("status"),
            "platform_created_at": _parse_created_time(campaign_data.get("created_time")),
        }

        existing = self.db.get(Campaign, external_id)
        if existing:
            for key, value in data.items():
                if value is not None:
                    setattr(existing, key, value)
            return "updated"

        values = {key: value for key, value in data.items() if value is not None}
        self.db.add(Campaign(id=external_id, ad_account_id=ad_account_id, **values))
        return "created"

    # ========================================
    # Insights Sync
    # ========================================

    async def sync_campaign_insights(
        self,
        campaign_id: str,
        access_token: str,
        since: DateLike = None,
        until: DateLike = None,
        lifetime: bool = False,
        today: Optional[date] = None,
    ) -> SyncResult:
        """Fetch daily insights for one campaign over the resolved window and upsert them"""
        if self.db.get(Campaign, campaign_id) is None:
            raise EntityNotFoundError("Campaign", campaign_id)

        window = resolve_insight_window(since, until, lifetime, today)
        records = await self.api.fetch_campaign_insights(
            campaign_id, access_token, **window.as_params()
        )

        try:
            for raw in records:
                insight = normalize_insight(raw, today=today)
                upsert_daily_metric(self.db, campaign_id, insight.date, insight.metric_fields())
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Synced {len(records)} insight rows for campaign {campaign_id} ({window.as_params()})")
        return SyncResult(count=len(records))

    # ========================================
    # Full user sync
    # ========================================

    async def run_user_sync(
        self,
        user_id: int,
        since: DateLike = None,
        until: DateLike = None,
        lifetime: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        today: Optional[date] = None,
    ) -> UserSyncReport:
        """
        Run accounts -> campaigns -> insights for one user, then invalidate
        cached dashboard reads.

        Args:
            user_id: Owner of the data
            since, until: Explicit insight range (inclusive)
            lifetime: Fetch the platform's whole history
            on_progress: Called with a SyncProgress after every unit
            today: Reference day for the "yesterday only" default

        Returns:
            UserSyncReport with per-stage counts and the failed unit ids
        """
        user = self.db.get(User, user_id)
        if user is None:
            raise EntityNotFoundError("User", user_id)
        access_token = user.meta_access_token
        if not access_token:
            raise InvalidInputError(f"User {user_id} has no Meta access token")

        # Validate the window before any network call
        resolve_insight_window(since, until, lifetime, today)

        report = UserSyncReport(user_id=user_id)

        def emit(stage: SyncStage, done: int, total: int):
            if on_progress is not None:
                on_progress(SyncProgress(stage=stage, done=done, total=total))

        # Stage 1: accounts (nothing to continue with if this fails)
        accounts_result = await self.sync_ad_accounts(user_id, access_token)
        report.ad_accounts = accounts_result.count
        emit(SyncStage.AD_ACCOUNTS, 1, 1)

        # Stage 2: campaigns per account
        account_ids = self._account_ids(user_id)
        for i, account_id in enumerate(account_ids, start=1):
            try:
                await self.sync_campaigns(account_id, access_token)
                report.accounts_synced += 1
            except Exception as e:
                self._record_failure(report, "ad_account", account_id, e)
            emit(SyncStage.CAMPAIGNS, i, len(account_ids))

        # Stage 3: insights per campaign
        campaign_ids = self._campaign_ids(user_id)
        report.campaigns_total = len(campaign_ids)
        for i, campaign_id in enumerate(campaign_ids, start=1):
            try:
                result = await self.sync_campaign_insights(
                    campaign_id, access_token, since, until, lifetime, today
                )
                report.campaigns_synced += 1
                report.metric_rows += result.count
            except Exception as e:
                self._record_failure(report, "campaign", campaign_id, e)
            emit(SyncStage.INSIGHTS, i, len(campaign_ids))

        cache.invalidate(user_tag(user_id), TAG_AD_ACCOUNTS, TAG_CAMPAIGNS)
        emit(SyncStage.CACHE, 1, 1)

        logger.info(
            f"User {user_id} sync done: {report.accounts_synced}/{len(account_ids)} accounts, "
            f"{report.campaigns_synced}/{report.campaigns_total} campaigns, "
            f"{report.metric_rows} metric rows, {report.errors} errors"
        )
        return report

    def _account_ids(self, user_id: int) -> List[str]:
        rows = (
            self.db.query(AdAccount.id)
            .filter(AdAccount.user_id == user_id)
            .order_by(AdAccount.id)
            .all()
        )
        return [row.id for row in rows]

    def _campaign_ids(self, user_id: int) -> List[str]:
        rows = (
            self.db.query(Campaign.id)
            .join(AdAccount, Campaign.ad_account_id == AdAccount.id)
            .filter(AdAccount.user_id == user_id)
            .order_by(Campaign.ad_account_id, Campaign.id)
            .all()
        )
        return [row.id for row in rows]

    def _record_failure(self, report: UserSyncReport, unit_type: str, unit_id: str, error: Exception):
        message = describe_error(error)
        logger.error(f"Sync of {unit_type} {unit_id} failed: {message}")

        report.errors += 1
        report.failed_units.append(unit_id)
        record_sync_error(self.db, f"{unit_type} {unit_id}: {message}", unit_type, unit_id, report.user_id)


def record_sync_error(
    db: Session,
    description: str,
    unit_type: Optional[str] = None,
    unit_id: Optional[str] = None,
    user_id: Optional[int] = None,
) -> None:
    """Append a SyncErrorLog row in its own transaction"""
    db.rollback()
    try:
        db.add(SyncErrorLog(
            user_id=user_id,
            unit_type=unit_type,
            unit_id=unit_id,
            description=description,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Could not write sync error log for {unit_type} {unit_id}: {e}")
