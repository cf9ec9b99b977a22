from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import get_db
from ..security import get_current_user
from ..services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=List[schemas.NotificationPublic])
def list_notifications(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(read|unread)$"),
    category: Optional[str] = Query(None, max_length=50),
    limit: int = Query(20, ge=1, le=100),
):
    return notification_service.list_notifications(
        db, current_user.id, status=status_filter, category=category, limit=limit
    )


@router.post("/read-all", response_model=schemas.NotificationsMarked)
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return schemas.NotificationsMarked(updated=notification_service.read_all_notifications(db, current_user.id))


@router.post("/{notification_id}/read", response_model=schemas.NotificationPublic)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return notification_service.read_notification(db, current_user.id, notification_id)
