"""
Daily metric time series storage

Writes are single-statement upserts on (campaign_id, date): the whole row is
replaced, so re-syncing a day that is already stored yields the same row.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from adpulse.models.metric import DailyMetric

logger = logging.getLogger(__name__)

METRIC_COLUMNS = ("spend", "impressions", "clicks", "ctr", "cpc", "conversions", "conv_price")


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"Upsert is not supported for dialect '{dialect}'")


def upsert_daily_metric(
    db: Session,
    campaign_id: str,
    metric_date: date,
    fields: Dict[str, Any],
) -> None:
    """
    Insert or fully replace the DailyMetric for (campaign_id, metric_date).

    Missing metric columns are written as 0, never left at a previous value.
    Does not commit.
    """
    values = {column: fields.get(column, 0) for column in METRIC_COLUMNS}

    insert = _insert_for(db)
    stmt = insert(DailyMetric).values(campaign_id=campaign_id, date=metric_date, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["campaign_id", "date"],
        set_={
            **{column: getattr(stmt.excluded, column) for column in METRIC_COLUMNS},
            "updated_at": datetime.now(timezone.utc),
        },
    )
    db.execute(stmt)


def get_metrics(
    db: Session,
    campaign_ids: Iterable[str],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[DailyMetric]:
    """Metrics of the given campaigns, optionally bounded (inclusive), oldest first"""
    campaign_ids = list(campaign_ids)
    if not campaign_ids:
        return []

    query = db.query(DailyMetric).filter(DailyMetric.campaign_id.in_(campaign_ids))
    if date_from is not None:
        query = query.filter(DailyMetric.date >= date_from)
    if date_to is not None:
        query = query.filter(DailyMetric.date <= date_to)
    return query.order_by(DailyMetric.date, DailyMetric.campaign_id).all()
