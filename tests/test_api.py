"""
HTTP surface: auth, error mapping and the main routes
"""
from datetime import date, timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from adpulse.core.deps import get_meta_api
from adpulse.core.security import create_access_token
from adpulse.main import app
from adpulse.models import DailyMetric, SyncErrorLog


@pytest.fixture
def client(db):
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def use_graph(handler, make_api):
    app.dependency_overrides[get_meta_api] = lambda: make_api(handler)


class TestHealth:
    """Health endpoints"""

    def test_health(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_database_health(self, client):
        assert client.get("/api/v1/health/db").json()["database"] == "connected"


class TestAuth:
    """Bearer token handling"""

    def test_missing_token(self, client):
        assert client.get("/api/v1/dashboard/stats").status_code in (401, 403)

    def test_invalid_token(self, client):
        response = client.get("/api/v1/dashboard/stats", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_cron_secret(self, client, other_user):
        wrong = client.post("/api/v1/cron/sync", headers={"Authorization": "Bearer wrong"})
        right = client.post("/api/v1/cron/sync", headers={"Authorization": "Bearer test-cron-secret"})

        assert wrong.status_code == 401
        assert right.status_code == 200
        assert right.json()["data"]["users"] == 0


class TestDashboardRoutes:
    """Dashboard and campaign reads"""

    def test_stats_and_campaign_rows(self, client, auth, user, seed):
        today = date.today()
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        seed.campaign("act_1", "c2")
        seed.metric("c1", today - timedelta(days=1), conv_price=0.55)
        seed.metric("c2", today - timedelta(days=1), conv_price=0.9)

        stats = client.get("/api/v1/dashboard/stats", headers=auth).json()["data"]
        rows = client.get("/api/v1/dashboard/campaigns", headers=auth).json()

        assert stats == {"active_campaigns": 2, "warning_campaigns": 1, "critical_campaigns": 1}
        assert rows["total"] == 2
        assert {r["id"]: r["performance_status"] for r in rows["data"]} == {"c1": "YELLOW", "c2": "RED"}

    def test_campaign_detail_routes(self, client, auth, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        seed.metric("c1", date(2024, 3, 1), conv_price=10.0, spend=40.0, conversions=4)
        seed.metric("c1", date(2024, 3, 2), conv_price=20.0, spend=60.0, conversions=3)

        params = {"date_from": "2024-03-01", "date_to": "2024-03-02"}
        stats = client.get("/api/v1/campaigns/c1/stats", params=params, headers=auth).json()["data"]
        totals = client.get("/api/v1/campaigns/c1/totals", params=params, headers=auth).json()["data"]
        chart = client.get("/api/v1/campaigns/c1/chart", params=params, headers=auth).json()["data"]
        sparkline = client.get("/api/v1/campaigns/c1/sparkline", headers=auth).json()["data"]

        assert stats["conv_price"] == 15.0
        assert stats["performance"] == "RED"
        assert totals["spend"] == 100.0
        assert totals["conversions"] == 7
        assert [p["conv_price"] for p in chart] == [10.0, 20.0]
        assert len(sparkline) == 14

    def test_unknown_campaign_is_404(self, client, auth):
        response = client.get("/api/v1/campaigns/missing/stats", headers=auth)

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Campaign 'missing' not found", "detail": None}

    def test_dashboard_reads_are_cached_until_invalidated(self, client, auth, user, seed):
        today = date.today()
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        seed.metric("c1", today - timedelta(days=1), conv_price=0.55)

        first = client.get("/api/v1/dashboard/stats", headers=auth).json()["data"]
        seed.campaign("act_1", "c2")
        cached = client.get("/api/v1/dashboard/stats", headers=auth).json()["data"]
        client.put("/api/v1/settings/thresholds", json={"green_max": 0.6, "yellow_max": 0.7}, headers=auth)
        fresh = client.get("/api/v1/dashboard/stats", headers=auth).json()["data"]

        assert first["active_campaigns"] == 1
        assert cached == first
        assert fresh == {"active_campaigns": 2, "warning_campaigns": 0, "critical_campaigns": 0}


class TestLookupRoutes:
    """Account picker, names and user info"""

    def test_ad_account_list_and_name_filter(self, client, auth, user, other_user, seed):
        seed.account(user.id, "act_1", name="Shop DE")
        seed.account(user.id, "act_2", name="Brand AT")
        seed.account(other_user.id, "act_3", name="Other shop")

        everything = client.get("/api/v1/ad-accounts", headers=auth).json()
        matching = client.get("/api/v1/ad-accounts", params={"name": "shop"}, headers=auth).json()

        assert everything["total"] == 2
        assert matching["data"] == [{"id": "act_1", "name": "Shop DE"}]

    def test_names_by_id(self, client, auth, user, seed):
        seed.account(user.id, "act_1", name="Shop DE")
        seed.campaign("act_1", "c1", name="Spring sale")

        account = client.get("/api/v1/ad-accounts/act_1", headers=auth).json()["data"]
        campaign = client.get("/api/v1/campaigns/c1", headers=auth).json()["data"]

        assert account == {"id": "act_1", "name": "Shop DE"}
        assert campaign == {"id": "c1", "name": "Spring sale"}

    def test_foreign_entities_are_404(self, client, auth, other_user, seed):
        seed.account(other_user.id, "act_3")
        seed.campaign("act_3", "c3")

        assert client.get("/api/v1/ad-accounts/act_3", headers=auth).status_code == 404
        assert client.get("/api/v1/campaigns/c3", headers=auth).status_code == 404

    def test_user_info(self, client, auth, user):
        data = client.get("/api/v1/users/me", headers=auth).json()["data"]

        assert data == {"id": user.id, "name": "Owner", "email": "owner@example.com"}


class TestSettingsRoutes:
    """Thresholds, token and data reset"""

    def test_update_user_thresholds(self, client, auth):
        response = client.put("/api/v1/settings/thresholds", json={"green_max": 0.4, "yellow_max": 0.7}, headers=auth)

        assert response.status_code == 200
        data = response.json()["data"]
        assert (data["green_max"], data["yellow_max"]) == (0.4, 0.7)

    def test_reversed_thresholds_are_400(self, client, auth):
        response = client.put("/api/v1/settings/thresholds", json={"green_max": 0.9, "yellow_max": 0.7}, headers=auth)

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_campaign_threshold_override(self, client, auth, user, seed):
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        seed.metric("c1", date(2024, 3, 1), conv_price=0.4)

        response = client.put(
            "/api/v1/campaigns/c1/thresholds",
            json={"scope": "campaign", "green_max": 0.3, "yellow_max": 0.35},
            headers=auth,
        )

        assert response.status_code == 200
        assert response.json()["data"]["performance"] == "RED"

    def test_remove_token_and_reset_data(self, client, auth, user, seed):
        seed.account(user.id)

        reset = client.delete("/api/v1/settings/meta-data", headers=auth)
        removed = client.delete("/api/v1/settings/meta-token", headers=auth)
        settings_data = client.get("/api/v1/settings", headers=auth).json()["data"]

        assert reset.json()["data"] == 1
        assert removed.status_code == 200
        assert settings_data["has_meta_access"] is False


class TestMetaRoutes:
    """Sync endpoints against a mocked Graph API"""

    def test_full_sync(self, client, auth, db, make_api):
        yesterday = (date.today() - timedelta(days=1)).isoformat()

        def handler(request):
            path = request.url.path
            if path.endswith("/me/adaccounts"):
                return httpx.Response(200, json={"data": [{"id": "act_1", "name": "Main"}]})
            if path.endswith("/act_1/campaigns"):
                return httpx.Response(200, json={"data": [{"id": "c1", "name": "One", "status": "ACTIVE"}]})
            return httpx.Response(200, json={"data": [{
                "date_start": yesterday,
                "spend": "100",
                "actions": [{"action_type": "offsite_conversion.fb_pixel_custom", "value": "4"}],
            }]})

        use_graph(handler, make_api)
        response = client.post("/api/v1/meta/sync", headers=auth)

        assert response.status_code == 200
        report = response.json()["data"]
        assert report["campaigns_synced"] == 1
        assert report["metric_rows"] == 1
        assert db.query(DailyMetric).one().conv_price == 25.0

    def test_platform_error_is_502_with_raw_message(self, client, auth, make_api):
        def handler(request):
            return httpx.Response(400, json={"error": {"message": "Invalid OAuth access token.", "code": 190}})

        use_graph(handler, make_api)
        response = client.post("/api/v1/meta/sync/ad-accounts", headers=auth)

        assert response.status_code == 502
        assert response.json()["error"] == "Invalid OAuth access token."

    def test_invalid_window_is_400(self, client, auth, user, seed, make_api):
        seed.account(user.id)
        seed.campaign("act_1", "c1")
        use_graph(lambda request: httpx.Response(200, json={"data": []}), make_api)

        response = client.post(
            "/api/v1/meta/sync/campaigns/c1/insights",
            json={"since": "2024-03-05", "until": "2024-03-01"},
            headers=auth,
        )

        assert response.status_code == 400

    def test_sync_errors_listing(self, client, auth, db, user):
        db.add(SyncErrorLog(user_id=user.id, unit_type="campaign", unit_id="c2", description="campaign c2: boom"))
        db.commit()

        body = client.get("/api/v1/settings/sync-errors", headers=auth).json()

        assert body["total"] == 1
        assert body["data"][0]["unit_id"] == "c2"

    def test_sync_requires_connected_account(self, client, other_user):
        headers = {"Authorization": f"Bearer {create_access_token(other_user.id)}"}

        response = client.post("/api/v1/meta/sync", headers=headers)

        assert response.status_code == 400
