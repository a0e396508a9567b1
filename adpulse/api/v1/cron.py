"""
Cron endpoint - external schedulers trigger the all-users sync here
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends

from adpulse.core.deps import verify_cron_secret
from adpulse.schemas.common import DataResponse
from adpulse.schemas.meta import SyncRequest
from adpulse.tasks.sync_tasks import sync_all_users

router = APIRouter(prefix="/cron", tags=["Cron"])


@router.post("/sync", response_model=DataResponse[Dict[str, int]], dependencies=[Depends(verify_cron_secret)])
async def cron_sync(payload: Optional[SyncRequest] = None):
    """Sync all connected users (yesterday only unless a window is given)"""
    payload = payload or SyncRequest()
    summary = await sync_all_users(
        since=payload.since,
        until=payload.until,
        lifetime=payload.lifetime,
        triggered_by="cron",
    )
    return DataResponse(data=summary, message="Cron sync completed")
