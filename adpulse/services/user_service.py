"""
User commands: thresholds, Meta token lifecycle and data reset
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from adpulse.core.cache import TAG_AD_ACCOUNTS, TAG_CAMPAIGNS, TAG_USERS, cache, user_tag
from adpulse.core.config import settings
from adpulse.core.exceptions import InvalidInputError
from adpulse.models.enums import ThresholdScope
from adpulse.models.platform import AdAccount
from adpulse.models.task import SyncErrorLog
from adpulse.models.user import User
from adpulse.schemas.dashboard import UserSettingsResponse
from adpulse.services.analytics import get_user, get_user_campaign, resolve_thresholds
from adpulse.services.meta.meta_api import MetaAPI

logger = logging.getLogger(__name__)


def _validate_thresholds(green_max: Optional[float], yellow_max: Optional[float]) -> None:
    for name, value in (("green_max", green_max), ("yellow_max", yellow_max)):
        if value is not None and value < 0:
            raise InvalidInputError(f"{name} must not be negative")
    if green_max is not None and yellow_max is not None and green_max > yellow_max:
        raise InvalidInputError("green_max must not be greater than yellow_max")


# ========================================
# Thresholds
# ========================================

def update_thresholds(
    db: Session,
    user_id: int,
    scope: ThresholdScope,
    green_max: Optional[float],
    yellow_max: Optional[float],
    campaign_id: Optional[str] = None,
) -> None:
    """
    Set the user's default thresholds (scope USER, both values required) or a
    campaign's override (scope CAMPAIGN, None clears the override).
    """
    scope = ThresholdScope(scope)
    _validate_thresholds(green_max, yellow_max)

    if scope == ThresholdScope.USER:
        if green_max is None or yellow_max is None:
            raise InvalidInputError("green_max and yellow_max are required for user thresholds")
        target = get_user(db, user_id)
    else:
        if not campaign_id:
            raise InvalidInputError("campaign_id is required for campaign thresholds")
        target = get_user_campaign(db, user_id, campaign_id)

    target.green_max = green_max
    target.yellow_max = yellow_max
    db.commit()

    cache.invalidate(user_tag(user_id), TAG_CAMPAIGNS)
    logger.info(f"Updated {scope.value} thresholds for user {user_id}: {green_max}/{yellow_max}")


# ========================================
# Meta token lifecycle
# ========================================

def set_meta_token(
    db: Session,
    user_id: int,
    access_token: str,
    expires_in: Optional[int],
    now: Optional[datetime] = None,
) -> User:
    """Store a long-lived token; expiry = now + expires_in seconds (None when unknown)"""
    if not access_token:
        raise InvalidInputError("access_token is required")

    user = get_user(db, user_id)
    now = now or datetime.now(timezone.utc)

    user.meta_access_token = access_token
    user.meta_token_expiry = now + timedelta(seconds=int(expires_in)) if expires_in else None
    db.commit()

    cache.invalidate(user_tag(user_id), TAG_USERS)
    logger.info(f"Stored Meta token for user {user_id} (expires {user.meta_token_expiry})")
    return user


async def connect_meta_account(
    db: Session,
    user_id: int,
    code: str,
    redirect_uri: Optional[str] = None,
    api: Optional[MetaAPI] = None,
) -> User:
    """OAuth callback: code -> short-lived token -> long-lived token -> stored"""
    get_user(db, user_id)
    api = api or MetaAPI()
    try:
        short_lived = await api.exchange_code(code, redirect_uri)
        if not short_lived.get("access_token"):
            raise InvalidInputError("Meta did not return an access token")
        long_lived = await api.exchange_long_lived_token(short_lived["access_token"])
    finally:
        await api.close()

    if not long_lived.get("access_token"):
        raise InvalidInputError("Meta did not return a long-lived access token")
    return set_meta_token(db, user_id, long_lived["access_token"], long_lived.get("expires_in"))


def remove_meta_access(db: Session, user_id: int) -> None:
    """Forget the token. Synced data is kept."""
    user = get_user(db, user_id)
    user.meta_access_token = None
    user.meta_token_expiry = None
    db.commit()

    cache.invalidate(user_tag(user_id), TAG_USERS)
    logger.info(f"Removed Meta access for user {user_id}")


def reset_meta_data(db: Session, user_id: int) -> int:
    """Delete all of the user's ad accounts; campaigns and metrics cascade"""
    user = get_user(db, user_id)
    accounts = db.query(AdAccount).filter(AdAccount.user_id == user.id).all()
    for account in accounts:
        db.delete(account)
    db.commit()

    cache.invalidate(user_tag(user_id), TAG_AD_ACCOUNTS, TAG_CAMPAIGNS)
    logger.info(f"Deleted {len(accounts)} ad accounts of user {user_id}")
    return len(accounts)


# ========================================
# Queries
# ========================================

def get_user_settings(db: Session, user_id: int, now: Optional[datetime] = None) -> UserSettingsResponse:
    user = get_user(db, user_id)
    thresholds = resolve_thresholds(user_green=user.green_max, user_yellow=user.yellow_max)

    expires_in_days = None
    expires_soon = False
    expiry = user.meta_token_expiry
    if user.has_meta_access and expiry is not None:
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        remaining = expiry - (now or datetime.now(timezone.utc))
        expires_in_days = remaining.days
        expires_soon = remaining <= timedelta(days=settings.META_TOKEN_WARNING_DAYS)

    return UserSettingsResponse(
        green_max=user.green_max,
        yellow_max=user.yellow_max,
        effective_green_max=thresholds.green_max,
        effective_yellow_max=thresholds.yellow_max,
        has_meta_access=user.has_meta_access,
        meta_token_expiry=user.meta_token_expiry,
        token_expires_in_days=expires_in_days,
        token_expires_soon=expires_soon,
    )


def list_sync_errors(db: Session, user_id: int, limit: int = 100) -> List[SyncErrorLog]:
    return (
        db.query(SyncErrorLog)
        .filter(SyncErrorLog.user_id == user_id)
        .order_by(SyncErrorLog.occurred_at.desc(), SyncErrorLog.id.desc())
        .limit(limit)
        .all()
    )
