"""Admin maintenance of the voucher catalogue."""

from __future__ import annotations

import logging
import os

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import atomic
from .exceptions import NotFoundError, StoreError
from .view_cache import VOUCHERS_VIEW, view_cache

logger = logging.getLogger(__name__)

DEFAULT_PARTNER_LOGO_URL = os.getenv("DEFAULT_PARTNER_LOGO_URL", "https://placehold.co/40x40.png")


def list_vouchers(db: Session, active_only: bool = False) -> list[models.Voucher]:
    query = db.query(models.Voucher)
    if active_only:
        query = query.filter(models.Voucher.status == models.VOUCHER_ACTIVE)
    return query.order_by(models.Voucher.partner_name.asc(), models.Voucher.id.asc()).all()


def voucher_catalogue(db: Session) -> list[dict]:
    """Active vouchers as citizens see them; cached until a write touches stock."""
    cached = view_cache.get(VOUCHERS_VIEW)
    if cached is not None:
        return cached

    catalogue = [
        schemas.VoucherPublic.model_validate(voucher).model_dump()
        for voucher in list_vouchers(db, active_only=True)
    ]
    view_cache.set(VOUCHERS_VIEW, catalogue)
    return catalogue


def _apply_payload(voucher: models.Voucher, payload: schemas.VoucherWrite) -> None:
    voucher.partner_name = payload.partner_name.strip()
    voucher.partner_logo_url = payload.partner_logo_url or DEFAULT_PARTNER_LOGO_URL
    voucher.title = payload.title.strip()
    voucher.description = payload.description.strip()
    voucher.points_required = payload.points_required
    voucher.quantity = payload.quantity
    voucher.status = payload.status


def _get_voucher(db: Session, voucher_id: int) -> models.Voucher:
    voucher = db.get(models.Voucher, voucher_id)
    if voucher is None:
        raise NotFoundError("Voucher not found")
    return voucher


def create_voucher(db: Session, payload: schemas.VoucherWrite) -> models.Voucher:
    voucher = models.Voucher()
    _apply_payload(voucher, payload)
    try:
        with atomic(db):
            db.add(voucher)
    except SQLAlchemyError as exc:
        logger.exception("Store failure creating voucher")
        raise StoreError("Could not save the voucher.") from exc

    db.refresh(voucher)
    view_cache.invalidate(VOUCHERS_VIEW)
    logger.info("Created voucher", extra={"voucher_id": voucher.id, "quantity": voucher.quantity})
    return voucher


def update_voucher(db: Session, voucher_id: int, payload: schemas.VoucherWrite) -> models.Voucher:
    try:
        with atomic(db):
            voucher = _get_voucher(db, voucher_id)
            _apply_payload(voucher, payload)
            db.add(voucher)
    except SQLAlchemyError as exc:
        logger.exception("Store failure updating voucher", extra={"voucher_id": voucher_id})
        raise StoreError("Could not save the voucher.") from exc

    db.refresh(voucher)
    view_cache.invalidate(VOUCHERS_VIEW)
    logger.info("Updated voucher", extra={"voucher_id": voucher.id, "quantity": voucher.quantity})
    return voucher


def delete_voucher(db: Session, voucher_id: int) -> None:
    """Remove a voucher together with its redemption records."""
    try:
        with atomic(db):
            db.delete(_get_voucher(db, voucher_id))
    except SQLAlchemyError as exc:
        logger.exception("Store failure deleting voucher", extra={"voucher_id": voucher_id})
        raise StoreError("Could not delete the voucher.") from exc

    view_cache.invalidate(VOUCHERS_VIEW)
    logger.info("Deleted voucher", extra={"voucher_id": voucher_id})
