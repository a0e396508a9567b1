"""
Shared fixtures: in-memory SQLite database, seeded users and a mocked Graph API
"""
import os

# Configure the app before anything from adpulse is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEBUG"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["FACEBOOK_APP_ID"] = "app-123"
os.environ["FACEBOOK_APP_SECRET"] = "app-secret"

from datetime import date

import httpx
import pytest

import adpulse.models  # noqa: F401
from adpulse.core.cache import cache
from adpulse.core.database import Base, SessionLocal, engine
from adpulse.models import AdAccount, Campaign, DailyMetric, User
from adpulse.services.meta.meta_api import MetaAPI

GRAPH_BASE = "https://graph.test/v21.0"


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def user(db):
    owner = User(email="owner@example.com", name="Owner", meta_access_token="token-abc")
    db.add(owner)
    db.commit()
    db.refresh(owner)
    return owner


@pytest.fixture
def other_user(db):
    other = User(email="other@example.com", name="Other")
    db.add(other)
    db.commit()
    db.refresh(other)
    return other


@pytest.fixture
def make_api():
    """Build a MetaAPI whose HTTP traffic goes to `handler(request) -> httpx.Response`"""

    def _make(handler):
        return MetaAPI(base_url=GRAPH_BASE, transport=httpx.MockTransport(handler))

    return _make


class Seeder:
    """Insert ad accounts, campaigns and metrics directly"""

    def __init__(self, db):
        self.db = db

    def account(self, user_id, account_id="act_1", name="Main account"):
        account = AdAccount(id=account_id, name=name, user_id=user_id)
        self.db.add(account)
        self.db.commit()
        return account

    def campaign(self, account_id, campaign_id, name=None, status="ACTIVE", green_max=None, yellow_max=None):
        campaign = Campaign(
            id=campaign_id,
            name=name or f"Campaign {campaign_id}",
            status=status,
            ad_account_id=account_id,
            green_max=green_max,
            yellow_max=yellow_max,
        )
        self.db.add(campaign)
        self.db.commit()
        return campaign

    def metric(self, campaign_id, day: date, conv_price=0.0, **fields):
        metric = DailyMetric(
            campaign_id=campaign_id,
            date=day,
            spend=fields.get("spend", 0.0),
            impressions=fields.get("impressions", 0),
            clicks=fields.get("clicks", 0),
            ctr=fields.get("ctr", 0.0),
            cpc=fields.get("cpc", 0.0),
            conversions=fields.get("conversions", 0),
            conv_price=conv_price,
        )
        self.db.add(metric)
        self.db.commit()
        return metric


@pytest.fixture
def seed(db):
    return Seeder(db)
