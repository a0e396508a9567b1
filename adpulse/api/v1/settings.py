"""
Settings API endpoints (thresholds, Meta connection, sync error log)
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from adpulse.core.deps import get_current_user, get_db
from adpulse.models.enums import ThresholdScope
from adpulse.models.user import User
from adpulse.schemas.common import DataResponse, ListResponse
from adpulse.schemas.dashboard import SyncErrorResponse, ThresholdUpdate, UserSettingsResponse
from adpulse.services import user_service

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=DataResponse[UserSettingsResponse])
def get_settings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Thresholds and Meta connection state"""
    return DataResponse(data=user_service.get_user_settings(db, current_user.id))


@router.put("/thresholds", response_model=DataResponse[UserSettingsResponse])
def update_thresholds(
    payload: ThresholdUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update the user's default thresholds"""
    user_service.update_thresholds(
        db, current_user.id, ThresholdScope.USER, payload.green_max, payload.yellow_max
    )
    return DataResponse(
        data=user_service.get_user_settings(db, current_user.id),
        message="Thresholds updated",
    )


@router.delete("/meta-token", response_model=DataResponse[UserSettingsResponse])
def remove_meta_token(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Disconnect Meta (synced data is kept)"""
    user_service.remove_meta_access(db, current_user.id)
    return DataResponse(
        data=user_service.get_user_settings(db, current_user.id),
        message="Meta access removed",
    )


@router.delete("/meta-data", response_model=DataResponse[int])
def reset_meta_data(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete all synced ad accounts, campaigns and metrics"""
    deleted = user_service.reset_meta_data(db, current_user.id)
    return DataResponse(data=deleted, message=f"Deleted {deleted} ad accounts")


@router.get("/sync-errors", response_model=ListResponse[SyncErrorResponse])
def list_sync_errors(
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Recent sync failures (diagnostics)"""
    errors = user_service.list_sync_errors(db, current_user.id, limit=limit)
    return ListResponse(
        data=[SyncErrorResponse.model_validate(e) for e in errors],
        total=len(errors),
    )
