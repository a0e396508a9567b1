"""
Normalize raw Meta insight records into typed daily metrics.

Field-level problems never raise: anything that does not parse as a finite
number becomes 0, so a malformed day still yields a usable row.
"""
import logging
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from adpulse.schemas.meta import NormalizedInsight

logger = logging.getLogger(__name__)

# Custom pixel conversion event counted as "conversions"
CONVERSION_ACTION_TYPE = "offsite_conversion.fb_pixel_custom"


def safe_float(value: Any, default: float = 0.0) -> float:
    """Convert to a finite float, `default` otherwise"""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(result):
        return default
    return result


def safe_int(value: Any, default: int = 0) -> int:
    """Convert to int (accepts "12" and "12.0"), `default` otherwise"""
    result = safe_float(value, default=float("nan"))
    if math.isnan(result):
        return default
    return int(result)


def extract_conversions(actions: Optional[List[Dict[str, Any]]]) -> int:
    """Value of the first custom pixel conversion action, 0 if there is none"""
    if not actions or not isinstance(actions, list):
        return 0

    for action in actions:
        if not isinstance(action, dict):
            continue
        action_type = action.get("action_type") or action.get("type") or ""
        if CONVERSION_ACTION_TYPE in action_type:
            return max(safe_int(action.get("value")), 0)
    return 0


def conversion_price(spend: float, conversions: int) -> float:
    if conversions > 0:
        return round(spend / conversions, 2)
    return 0.0


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def normalize_insight(raw: Dict[str, Any], today: Optional[date] = None) -> NormalizedInsight:
    """
    Clean one daily insight record.

    Args:
        raw: Graph API record (numeric fields as strings, `actions` array,
            optional `date_start`)
        today: Fallback date when `date_start` is missing

    Returns:
        NormalizedInsight with zeroed fields where parsing failed
    """
    spend = max(safe_float(raw.get("spend")), 0.0)
    conversions = extract_conversions(raw.get("actions"))

    metric_date = _parse_date(raw.get("date_start"))
    if metric_date is None:
        metric_date = today or date.today()
        logger.warning(f"Insight record without usable date_start, using {metric_date.isoformat()}")

    return NormalizedInsight(
        date=metric_date,
        spend=spend,
        impressions=max(safe_int(raw.get("impressions")), 0),
        clicks=max(safe_int(raw.get("clicks")), 0),
        ctr=safe_float(raw.get("ctr")),
        cpc=safe_float(raw.get("cpc")),
        conversions=conversions,
        conv_price=conversion_price(spend, conversions),
    )
