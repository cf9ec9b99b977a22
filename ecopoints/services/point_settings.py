from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import atomic
from .exceptions import StoreError

logger = logging.getLogger(__name__)

DEFAULT_POINT_SETTINGS = schemas.PointSettingsPayload(
    auto_grant_enabled=True,
    recycling_per_kg=10,
    organic_per_kg=5,
    donation_per_piece=2,
)


def get_point_settings(db: Session) -> schemas.PointSettingsPayload:
    """Current grant rates, or the defaults when none have been saved yet."""
    row = db.get(models.PointSettings, models.POINT_SETTINGS_ID)
    if row is None:
        return DEFAULT_POINT_SETTINGS.model_copy()
    return schemas.PointSettingsPayload.model_validate(row)


def update_point_settings(db: Session, payload: schemas.PointSettingsPayload) -> schemas.PointSettingsPayload:
    """Create or overwrite the single settings row."""
    try:
        with atomic(db):
            row = db.get(models.PointSettings, models.POINT_SETTINGS_ID)
            if row is None:
                row = models.PointSettings(id=models.POINT_SETTINGS_ID)
                db.add(row)
            for field, value in payload.model_dump().items():
                setattr(row, field, value)
    except SQLAlchemyError as exc:
        logger.exception("Store failure saving point settings")
        raise StoreError("Could not save the point settings.") from exc

    db.refresh(row)
    logger.info("Point settings updated", extra=payload.model_dump())
    return schemas.PointSettingsPayload.model_validate(row)
