"""
Daily sync job registration and invocation
"""
from apscheduler.triggers.cron import CronTrigger

from adpulse.core.config import settings
from adpulse.tasks import scheduler as scheduler_module
from adpulse.tasks import sync_tasks


class TestStartScheduler:
    """Job registration"""

    def test_daily_job_uses_configured_time(self):
        scheduler_module.start_scheduler()
        try:
            job = scheduler_module.scheduler.get_job("daily_meta_sync")
            fields = {field.name: str(field) for field in job.trigger.fields}

            assert isinstance(job.trigger, CronTrigger)
            assert fields["hour"] == str(settings.DAILY_SYNC_HOUR)
            assert fields["minute"] == str(settings.DAILY_SYNC_MINUTE)
            assert job.func is scheduler_module.daily_meta_sync_job
        finally:
            scheduler_module.stop_scheduler()

        assert scheduler_module.scheduler is None


class TestDailyMetaSyncJob:
    """Job body"""

    def test_syncs_all_users_with_default_window(self, monkeypatch):
        calls = []

        async def fake_sync_all_users(*args, **kwargs):
            calls.append((args, kwargs))
            return {"users": 0}

        monkeypatch.setattr(sync_tasks, "sync_all_users", fake_sync_all_users)

        scheduler_module.daily_meta_sync_job()

        assert calls == [((), {"triggered_by": "scheduler"})]

    def test_failure_is_logged_not_raised(self, monkeypatch, caplog):
        async def failing_sync_all_users(**kwargs):
            raise RuntimeError("database down")

        monkeypatch.setattr(sync_tasks, "sync_all_users", failing_sync_all_users)

        scheduler_module.daily_meta_sync_job()

        assert "Daily Meta sync failed: database down" in caplog.text
