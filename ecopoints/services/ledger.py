"""Utilities for recording points log entries safely."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..db import atomic, lock_row
from .exceptions import DomainValidationError, InsufficientBalanceError, NotFoundError, StoreError
from .view_cache import POINTS_VIEW, view_cache

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 255

LOG_GRANT = "grant"
LOG_DEDUCT = "deduct"
LOG_REDEEM_VOUCHER = "redeem_voucher"
LOG_BALANCE_FORWARD = "balance_forward"
LOG_CASHOUT = "cashout"

DEFAULT_REASONS = {
    LOG_GRANT: "Manual grant by admin",
    LOG_DEDUCT: "Manual deduction by admin",
}


def _truncate_reason(value: Optional[str], log_type: str) -> str:
    trimmed = (value or DEFAULT_REASONS.get(log_type) or "Points update").strip()
    if len(trimmed) <= MAX_REASON_LENGTH:
        return trimmed
    return trimmed[: MAX_REASON_LENGTH - 3].rstrip() + "..."


def lock_user(db: Session, user_id: int) -> Optional[models.User]:
    return lock_row(db, models.User, user_id)


def record_points_entry(
    db: Session,
    user: models.User,
    delta: int,
    log_type: str,
    reason: Optional[str] = None,
    *,
    source_id: Optional[int] = None,
) -> models.PointsLogEntry:
    """Persist a new log entry and keep the aggregate points_balance in sync.

    The caller must hold the lock on ``user`` and own the surrounding transaction.
    """
    if delta == 0:
        raise DomainValidationError("delta must be non-zero")

    current_balance = int(user.points_balance or 0)
    next_balance = current_balance + delta
    if next_balance < 0:
        raise InsufficientBalanceError(required=-delta, available=current_balance)

    entry = models.PointsLogEntry(
        user_id=user.id,
        points_delta=delta,
        log_type=log_type,
        reason=_truncate_reason(reason, log_type),
        source_id=source_id,
    )

    user.points_balance = next_balance
    db.add(user)
    db.add(entry)
    return entry


def _require_positive(points: int) -> int:
    if points is None or int(points) <= 0:
        raise DomainValidationError("points must be a positive integer")
    return int(points)


def grant_points(
    db: Session,
    user_id: int,
    points: int,
    reason: Optional[str] = None,
    *,
    source_id: Optional[int] = None,
) -> models.PointsLogEntry:
    """Add points to a user and log the grant."""
    amount = _require_positive(points)
    try:
        with atomic(db):
            user = lock_user(db, user_id)
            if user is None:
                raise NotFoundError("User not found")
            entry = record_points_entry(db, user, amount, LOG_GRANT, reason, source_id=source_id)
    except SQLAlchemyError as exc:
        logger.exception("Store failure granting points", extra={"user_id": user_id})
        raise StoreError("Could not grant points. Please try again.") from exc

    db.refresh(entry)
    view_cache.invalidate(POINTS_VIEW)
    logger.info("Granted points", extra={"user_id": user_id, "points": amount, "log_id": entry.id})
    return entry


def deduct_points(
    db: Session,
    user_id: int,
    points: int,
    reason: Optional[str] = None,
) -> Optional[models.PointsLogEntry]:
    """Remove up to ``points`` from a user; the balance is clamped at zero.

    Returns the log entry, or ``None`` when the balance was already empty.
    """
    requested = _require_positive(points)
    try:
        with atomic(db):
            user = lock_user(db, user_id)
            if user is None:
                raise NotFoundError("User not found")
            removable = min(requested, int(user.points_balance or 0))
            entry = None
            if removable > 0:
                entry = record_points_entry(db, user, -removable, LOG_DEDUCT, reason)
    except SQLAlchemyError as exc:
        logger.exception("Store failure deducting points", extra={"user_id": user_id})
        raise StoreError("Could not deduct points. Please try again.") from exc

    if entry is None:
        logger.info("Nothing to deduct, balance already empty", extra={"user_id": user_id})
        return None

    db.refresh(entry)
    view_cache.invalidate(POINTS_VIEW)
    logger.info(
        "Deducted points",
        extra={"user_id": user_id, "requested": requested, "points": removable, "log_id": entry.id},
    )
    return entry


def list_points_log(db: Session, user_id: Optional[int] = None, limit: int = 50) -> list[models.PointsLogEntry]:
    query = db.query(models.PointsLogEntry)
    if user_id is not None:
        query = query.filter(models.PointsLogEntry.user_id == user_id)
    return (
        query.order_by(models.PointsLogEntry.created_at.desc(), models.PointsLogEntry.id.desc())
        .limit(limit)
        .all()
    )


def points_summary(db: Session) -> dict:
    """Balances and badges for every user, highest first, with the total points outstanding."""
    cached = view_cache.get(POINTS_VIEW)
    if cached is not None:
        return cached

    users = (
        db.query(models.User)
        .order_by(models.User.points_balance.desc(), models.User.id.asc())
        .all()
    )
    total_outstanding = db.query(func.coalesce(func.sum(models.User.points_balance), 0)).scalar()
    badge_names: dict[int, list[str]] = {}
    for user_id, name in (
        db.query(models.UserBadge.user_id, models.Badge.name)
        .join(models.Badge, models.Badge.id == models.UserBadge.badge_id)
        .order_by(models.UserBadge.earned_at.asc(), models.Badge.id.asc())
        .all()
    ):
        badge_names.setdefault(user_id, []).append(name)
    summary = {
        "total_outstanding": int(total_outstanding or 0),
        "users": [
            {
                "id": user.id,
                "full_name": user.full_name,
                "points_balance": int(user.points_balance or 0),
                "badges": badge_names.get(user.id, []),
            }
            for user in users
        ],
    }
    view_cache.set(POINTS_VIEW, summary)
    return summary
