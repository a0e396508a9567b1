# Meta Services Module

from adpulse.services.meta.meta_api import MetaAPI
from adpulse.services.meta.meta_sync import MetaSyncService, resolve_insight_window
from adpulse.services.meta.normalizer import normalize_insight
from adpulse.services.meta.metric_store import upsert_daily_metric, get_metrics

__all__ = [
    "MetaAPI",
    "MetaSyncService",
    "resolve_insight_window",
    "normalize_insight",
    "upsert_daily_metric",
    "get_metrics",
]
