from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from .. import models
from ..db import atomic
from .exceptions import NotFoundError

MAX_MESSAGE_LENGTH = 500


def notify_user(
    db: Session,
    user_id: int,
    message: str,
    category: str = "general",
) -> models.Notification:
    """Queue an unread notification; committed with the caller's transaction."""
    trimmed = message.strip()
    if len(trimmed) > MAX_MESSAGE_LENGTH:
        trimmed = trimmed[: MAX_MESSAGE_LENGTH - 3].rstrip() + "..."
    notification = models.Notification(
        recipient_id=user_id,
        message=trimmed,
        category=category,
        status="unread",
    )
    db.add(notification)
    return notification


def mark_read(notification: models.Notification) -> bool:
    """Flip to read; returns False when it already was."""
    if notification.status == "read":
        return False
    notification.status = "read"
    notification.read_at = datetime.now(timezone.utc)
    return True


def list_notifications(
    db: Session,
    user_id: int,
    status: str | None = None,
    category: str | None = None,
    limit: int = 20,
) -> list[models.Notification]:
    query = db.query(models.Notification).filter(models.Notification.recipient_id == user_id)
    if status:
        query = query.filter(models.Notification.status == status)
    if category:
        query = query.filter(models.Notification.category == category)
    return (
        query.order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
        .limit(limit)
        .all()
    )


def read_notification(db: Session, user_id: int, notification_id: int) -> models.Notification:
    notification = (
        db.query(models.Notification)
        .filter(
            models.Notification.id == notification_id,
            models.Notification.recipient_id == user_id,
        )
        .first()
    )
    if notification is None:
        raise NotFoundError("Notification not found")
    if mark_read(notification):
        with atomic(db):
            db.add(notification)
        db.refresh(notification)
    return notification


def read_all_notifications(db: Session, user_id: int) -> int:
    """Mark every unread notification for the user as read; returns how many changed."""
    unread = (
        db.query(models.Notification)
        .filter(
            models.Notification.recipient_id == user_id,
            models.Notification.status == "unread",
        )
        .all()
    )
    if not unread:
        return 0
    with atomic(db):
        for notification in unread:
            mark_read(notification)
    return len(unread)
