"""Achievement badges admins award to residents."""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..db import atomic
from .exceptions import ConflictError, NotFoundError, StoreError
from .view_cache import POINTS_VIEW, view_cache

logger = logging.getLogger(__name__)

DEFAULT_BADGES = [
    ("beginner_recycler", "First step into recycling!", "Star"),
    ("plastic_free_pioneer", "Leading the way on cutting plastic use", "Award"),
    ("compost_champion", "Turns organic waste into compost", "Star"),
    ("waste_warrior", "The neighbourhood's top waste fighter", "Shield"),
]


def seed_default_badges(db: Session) -> int:
    """Insert any missing default badges; returns how many were added."""
    existing = {name for (name,) in db.query(models.Badge.name).all()}
    added = 0
    with atomic(db):
        for name, description, icon_name in DEFAULT_BADGES:
            if name in existing:
                continue
            db.add(models.Badge(name=name, description=description, icon_name=icon_name))
            added += 1
    return added


def list_badges(db: Session) -> List[models.Badge]:
    return db.query(models.Badge).order_by(models.Badge.name.asc()).all()


def user_badges(db: Session, user_id: int) -> List[models.Badge]:
    return (
        db.query(models.Badge)
        .join(models.UserBadge, models.UserBadge.badge_id == models.Badge.id)
        .filter(models.UserBadge.user_id == user_id)
        .order_by(models.UserBadge.earned_at.asc(), models.Badge.id.asc())
        .all()
    )


def grant_badge(db: Session, user_id: int, badge_id: int) -> models.UserBadge:
    """Award a badge; a badge the user already holds is a conflict."""
    try:
        with atomic(db):
            if db.get(models.User, user_id) is None:
                raise NotFoundError("User not found")
            if db.get(models.Badge, badge_id) is None:
                raise NotFoundError("Badge not found")
            award = models.UserBadge(user_id=user_id, badge_id=badge_id)
            db.add(award)
            db.flush()
    except IntegrityError as exc:
        logger.warning("Badge already granted", extra={"user_id": user_id, "badge_id": badge_id})
        raise ConflictError("User already has this badge.") from exc
    except SQLAlchemyError as exc:
        logger.exception("Store failure granting badge", extra={"user_id": user_id, "badge_id": badge_id})
        raise StoreError("Could not grant the badge.") from exc

    db.refresh(award)
    view_cache.invalidate(POINTS_VIEW)
    logger.info("Badge granted", extra={"user_id": user_id, "badge_id": badge_id})
    return award


def revoke_badge(db: Session, user_id: int, badge_id: int) -> None:
    try:
        with atomic(db):
            award = (
                db.query(models.UserBadge)
                .filter(models.UserBadge.user_id == user_id, models.UserBadge.badge_id == badge_id)
                .first()
            )
            if award is None:
                raise NotFoundError("User does not hold this badge")
            db.delete(award)
    except SQLAlchemyError as exc:
        logger.exception("Store failure revoking badge", extra={"user_id": user_id, "badge_id": badge_id})
        raise StoreError("Could not revoke the badge.") from exc

    view_cache.invalidate(POINTS_VIEW)
    logger.info("Badge revoked", extra={"user_id": user_id, "badge_id": badge_id})
