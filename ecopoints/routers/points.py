from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import get_db
from ..security import require_admin
from ..services import badges, ledger, point_settings

router = APIRouter(prefix="/admin/points", tags=["admin"])


def _adjustment_result(db: Session, user_id: int, entry: Optional[models.PointsLogEntry]) -> schemas.PointsAdjustmentResult:
    user = db.get(models.User, user_id)
    return schemas.PointsAdjustmentResult(
        user_id=user_id,
        points_balance=int(user.points_balance or 0) if user else 0,
        entry=schemas.PointsLogEntryPublic.model_validate(entry) if entry else None,
    )


@router.post("/{user_id}/grant", response_model=schemas.PointsAdjustmentResult)
def grant_points(
    user_id: int,
    payload: schemas.PointsAdjustment,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    entry = ledger.grant_points(db, user_id, payload.points, payload.reason)
    return _adjustment_result(db, user_id, entry)


@router.post("/{user_id}/deduct", response_model=schemas.PointsAdjustmentResult)
def deduct_points(
    user_id: int,
    payload: schemas.PointsAdjustment,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    """Remove points; the balance stops at zero rather than rejecting the request."""
    entry = ledger.deduct_points(db, user_id, payload.points, payload.reason)
    return _adjustment_result(db, user_id, entry)


@router.get("/log", response_model=List[schemas.PointsLogEntryPublic])
def points_log(
    user_id: Optional[int] = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return ledger.list_points_log(db, user_id=user_id, limit=limit)


@router.get("/summary", response_model=schemas.PointsSummary)
def points_summary(
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return ledger.points_summary(db)


@router.get("/settings", response_model=schemas.PointSettingsPayload)
def read_point_settings(
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return point_settings.get_point_settings(db)


@router.put("/settings", response_model=schemas.PointSettingsPayload)
def save_point_settings(
    payload: schemas.PointSettingsPayload,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return point_settings.update_point_settings(db, payload)


@router.get("/badges", response_model=List[schemas.BadgePublic])
def list_badges(
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return badges.list_badges(db)


@router.get("/{user_id}/badges", response_model=List[schemas.BadgePublic])
def user_badges(
    user_id: int,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return badges.user_badges(db, user_id)


@router.post(
    "/{user_id}/badges/{badge_id}",
    response_model=schemas.UserBadgePublic,
    status_code=status.HTTP_201_CREATED,
)
def grant_badge(
    user_id: int,
    badge_id: int,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return badges.grant_badge(db, user_id, badge_id)


@router.delete("/{user_id}/badges/{badge_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_badge(
    user_id: int,
    badge_id: int,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    badges.revoke_badge(db, user_id, badge_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
