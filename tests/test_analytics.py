"""
Threshold resolution, classification and dashboard aggregation
"""
from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from adpulse.core.exceptions import EntityNotFoundError
from adpulse.models.enums import PerformanceStatus
from adpulse.services import analytics
from adpulse.services.analytics import Thresholds, classify, resolve_thresholds, summarize

TODAY = date(2024, 3, 20)


def days_ago(n: int) -> date:
    return TODAY - timedelta(days=n)


class TestThresholds:
    """campaign override -> user default -> global default"""

    def test_campaign_override_wins(self):
        assert resolve_thresholds(0.3, 0.4, 0.5, 0.59) == Thresholds(green_max=0.3, yellow_max=0.4)

    def test_user_default_when_campaign_unset(self):
        assert resolve_thresholds(None, None, 0.5, 0.59) == Thresholds(green_max=0.5, yellow_max=0.59)

    def test_global_default(self):
        assert resolve_thresholds() == Thresholds(green_max=0.5, yellow_max=0.59)

    def test_each_value_resolves_independently(self):
        assert resolve_thresholds(0.3, None, None, 0.8) == Thresholds(green_max=0.3, yellow_max=0.8)

    def test_thresholds_are_immutable(self):
        thresholds = resolve_thresholds()
        with pytest.raises(ValidationError):
            thresholds.green_max = 0.1


class TestClassify:
    """Boundary behaviour"""

    @pytest.mark.parametrize("avg, expected", [
        (None, PerformanceStatus.GRAY),
        (0.0, PerformanceStatus.GREEN),
        (0.49, PerformanceStatus.GREEN),
        (0.50, PerformanceStatus.YELLOW),
        (0.59, PerformanceStatus.YELLOW),
        (0.60, PerformanceStatus.RED),
    ])
    def test_boundaries(self, avg, expected):
        assert classify(avg, Thresholds(green_max=0.5, yellow_max=0.59)) == expected


class TestSummarize:
    """Unweighted means and sums"""

    def test_empty(self):
        summary = summarize([])
        assert summary.avg_conv_price is None
        assert summary.spend == 0

    def test_means_are_not_weighted(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        a = seed.metric("c1", days_ago(1), conv_price=10.0, spend=1000.0, clicks=5)
        b = seed.metric("c1", days_ago(2), conv_price=20.0, spend=1.0, clicks=7)

        summary = summarize([a, b])

        assert summary.avg_conv_price == 15.0
        assert summary.spend == 1001.0
        assert summary.clicks == 12


class TestCampaignStats:
    """Detail view over the caller's range"""

    def test_stats_over_range_with_user_threshold(self, db, user, seed):
        user.green_max, user.yellow_max = 1.0, 2.0
        db.commit()
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        seed.metric("c1", days_ago(10), conv_price=5.0)
        seed.metric("c1", days_ago(2), conv_price=1.0, cpc=0.5, ctr=2.0)
        seed.metric("c1", days_ago(1), conv_price=2.0, cpc=0.7, ctr=3.0)

        stats = analytics.get_campaign_stats(db, user.id, "c1", days_ago(2), days_ago(1))

        assert stats.conv_price == 1.5
        assert stats.cpc == 0.6
        assert stats.ctr == 2.5
        assert stats.performance == PerformanceStatus.YELLOW

    def test_campaign_override_changes_status(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "c1", green_max=0.3, yellow_max=0.35)
        seed.metric("c1", days_ago(1), conv_price=0.4)

        assert analytics.get_campaign_stats(db, user.id, "c1").performance == PerformanceStatus.RED

    def test_no_rows_is_gray_with_zeros(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "c1")

        stats = analytics.get_campaign_stats(db, user.id, "c1")

        assert stats.performance == PerformanceStatus.GRAY
        assert (stats.conv_price, stats.cpc, stats.ctr) == (0.0, 0.0, 0.0)

    def test_totals(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        seed.metric("c1", days_ago(2), spend=10.105, clicks=3, impressions=100, conversions=1)
        seed.metric("c1", days_ago(1), spend=5.0, clicks=4, impressions=50, conversions=2)

        totals = analytics.get_campaign_totals(db, user.id, "c1")

        assert totals.clicks == 7
        assert totals.impressions == 150
        assert totals.conversions == 3
        assert totals.spend == pytest.approx(15.11, abs=0.01)

    def test_foreign_campaign_is_not_found(self, db, user, other_user, seed):
        seed.account(other_user.id, "act_other")
        seed.campaign("act_other", "c_other")

        with pytest.raises(EntityNotFoundError):
            analytics.get_campaign_stats(db, user.id, "c_other")

    def test_ad_account_mismatch_is_not_found(self, db, user, seed):
        seed.account(user.id, "act_1")
        seed.account(user.id, "act_2")
        seed.campaign("act_1", "c1")

        with pytest.raises(EntityNotFoundError):
            analytics.get_campaign_totals(db, user.id, "c1", ad_account_id="act_2")


class TestCharts:
    """Chart series"""

    def test_same_day_values_are_averaged(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        seed.campaign("act_1", "c2")
        seed.metric("c1", days_ago(1), conv_price=10.0)
        seed.metric("c2", days_ago(1), conv_price=20.0)
        seed.metric("c1", days_ago(3), conv_price=4.0)

        from adpulse.services.meta.metric_store import get_metrics
        points = list(analytics.iter_campaign_chart_series(get_metrics(db, ["c1", "c2"])))

        assert [(p.date, p.conv_price) for p in points] == [(days_ago(3), 4.0), (days_ago(1), 15.0)]

    def test_campaign_chart_series_in_range(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        seed.metric("c1", days_ago(5), conv_price=1.0)
        seed.metric("c1", days_ago(1), conv_price=2.0)

        points = analytics.get_campaign_chart_series(db, user.id, "c1", days_ago(2), TODAY)

        assert [(p.date, p.conv_price) for p in points] == [(days_ago(1), 2.0)]

    def test_dashboard_chart_is_zero_filled_over_active_campaigns(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        seed.campaign("act_1", "c2")
        seed.campaign("act_1", "paused", status="PAUSED")
        seed.metric("c1", days_ago(1), conv_price=10.0)
        seed.metric("c2", days_ago(1), conv_price=20.0)
        seed.metric("paused", days_ago(1), conv_price=100.0)
        seed.metric("c1", days_ago(20), conv_price=50.0)

        points = analytics.get_dashboard_chart(db, user.id, today=TODAY)

        assert len(points) == 14
        assert points[0].date == days_ago(13)
        assert points[-1].date == TODAY
        by_date = {p.date: p.conv_price for p in points}
        assert by_date[days_ago(1)] == 15.0
        assert by_date[days_ago(2)] == 0.0

    def test_sparkline(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        seed.metric("c1", TODAY, conv_price=3.0)

        points = analytics.get_campaign_sparkline(db, user.id, "c1", days=7, today=TODAY)

        assert [p.conv_price for p in points] == [0.0] * 6 + [3.0]


class TestDashboard:
    """List view: all-history totals, recent-window color"""

    def test_dashboard_stats_counts_active_campaigns_by_recent_average(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "green")
        seed.campaign("act_1", "yellow")
        seed.campaign("act_1", "red")
        seed.campaign("act_1", "no_data")
        seed.campaign("act_1", "paused_red", status="PAUSED")
        seed.metric("green", days_ago(1), conv_price=0.2)
        seed.metric("yellow", days_ago(1), conv_price=0.55)
        seed.metric("red", days_ago(2), conv_price=0.9)
        seed.metric("paused_red", days_ago(1), conv_price=0.9)
        # Old cheap rows do not rescue a recently expensive campaign
        seed.metric("red", days_ago(30), conv_price=0.01)

        stats = analytics.get_dashboard_stats(db, user.id, today=TODAY)

        assert stats.active_campaigns == 4
        assert stats.warning_campaigns == 1
        assert stats.critical_campaigns == 1

    def test_campaign_rows_use_dual_window(self, db, user, seed):
        seed.account(user.id, name="Main account")
        seed.campaign("act_1", "c1")
        seed.metric("c1", days_ago(30), conv_price=0.1, spend=100.0, clicks=10)
        seed.metric("c1", days_ago(1), conv_price=0.9, spend=50.0, clicks=5)

        rows = analytics.list_dashboard_campaigns(db, user.id, today=TODAY)

        assert len(rows) == 1
        row = rows[0]
        assert row.account_name == "Main account"
        assert row.conv_price == 0.5       # all history
        assert row.spend == 150.0
        assert row.clicks == 15
        assert row.performance_status == PerformanceStatus.RED   # last 3 days only

    def test_campaign_without_recent_data_is_gray(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "stale")
        seed.campaign("act_1", "zero")
        seed.campaign("act_1", "empty")
        seed.metric("stale", days_ago(10), conv_price=0.2)
        seed.metric("zero", days_ago(1), conv_price=0.0)

        rows = {r.id: r for r in analytics.list_dashboard_campaigns(db, user.id, today=TODAY)}

        assert rows["stale"].performance_status == PerformanceStatus.GRAY
        assert rows["zero"].performance_status == PerformanceStatus.GRAY
        assert rows["empty"].performance_status == PerformanceStatus.GRAY
        assert rows["empty"].spend is None

    def test_filter_by_ad_account_and_user_scope(self, db, user, other_user, seed):
        seed.account(user.id, "act_1")
        seed.account(user.id, "act_2")
        seed.account(other_user.id, "act_3")
        seed.campaign("act_1", "c1")
        seed.campaign("act_2", "c2")
        seed.campaign("act_3", "c3")

        all_rows = analytics.list_dashboard_campaigns(db, user.id, today=TODAY)
        filtered = analytics.list_dashboard_campaigns(db, user.id, ad_account_id="act_2", today=TODAY)

        assert sorted(r.id for r in all_rows) == ["c1", "c2"]
        assert [r.id for r in filtered] == ["c2"]

    def test_window_covers_three_days_ending_today(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "edge")
        seed.campaign("act_1", "outside")
        seed.metric("edge", days_ago(2), conv_price=0.9)
        seed.metric("outside", days_ago(3), conv_price=0.9)

        rows = {r.id: r for r in analytics.list_dashboard_campaigns(db, user.id, today=TODAY)}

        assert rows["edge"].performance_status == PerformanceStatus.RED
        assert rows["outside"].performance_status == PerformanceStatus.GRAY

    def test_row_three_days_back_does_not_affect_color(self, db, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        seed.metric("c1", days_ago(3), conv_price=0.9)
        seed.metric("c1", days_ago(1), conv_price=0.1)

        rows = analytics.list_dashboard_campaigns(db, user.id, today=TODAY)
        stats = analytics.get_dashboard_stats(db, user.id, today=TODAY)

        assert rows[0].performance_status == PerformanceStatus.GREEN
        assert stats.warning_campaigns == 0
        assert stats.critical_campaigns == 0


class TestLookups:
    """Ad account and campaign lookups, scoped to the owner"""

    def test_list_ad_accounts_with_name_filter(self, db, user, other_user, seed):
        seed.account(user.id, "act_1", name="Shop DE")
        seed.account(user.id, "act_2", name="Brand AT")
        seed.account(other_user.id, "act_3", name="Other shop")

        everything = analytics.list_ad_accounts(db, user.id)
        matching = analytics.list_ad_accounts(db, user.id, name="SHOP")

        assert [a.id for a in everything] == ["act_2", "act_1"]
        assert [a.id for a in matching] == ["act_1"]

    def test_foreign_ad_account_is_not_found(self, db, user, other_user, seed):
        seed.account(other_user.id, "act_3")

        assert analytics.get_user_ad_account(db, other_user.id, "act_3").id == "act_3"
        with pytest.raises(EntityNotFoundError):
            analytics.get_user_ad_account(db, user.id, "act_3")
