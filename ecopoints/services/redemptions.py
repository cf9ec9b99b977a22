"""Points-for-voucher exchange and the admin follow-up on each redemption.

``redeem_voucher`` is the only writer that touches both a voucher's stock and
a user's balance. It locks the voucher row before the user row; any future
operation that locks both must keep that order.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..db import atomic, lock_row
from .exceptions import (
    DomainValidationError,
    InsufficientBalanceError,
    InvalidTransitionError,
    LedgerError,
    NotFoundError,
    OutOfStockError,
    StoreError,
)
from .ledger import LOG_REDEEM_VOUCHER, lock_user, record_points_entry
from .notifications import notify_user
from .view_cache import POINTS_VIEW, VOUCHERS_VIEW, view_cache

logger = logging.getLogger(__name__)

MAX_COUPON_CODE_LENGTH = 255


def redeem_voucher(db: Session, user_id: int, voucher_id: int) -> models.VoucherRedemption:
    """Exchange the voucher's point cost for one unit of its stock.

    Runs as one transaction: lock voucher, check stock, lock user, check
    balance, debit points, decrement stock, append the points log entry and
    create a pending redemption. Any failure rolls every step back.
    """
    try:
        with atomic(db):
            voucher = lock_row(db, models.Voucher, voucher_id)
            if voucher is None:
                raise NotFoundError("Voucher not found")
            if voucher.quantity <= 0:
                raise OutOfStockError("This voucher is out of stock.")
            if voucher.status != models.VOUCHER_ACTIVE:
                raise OutOfStockError("This voucher is no longer available.")

            user = lock_user(db, user_id)
            if user is None:
                raise NotFoundError("User not found")
            cost = voucher.points_required
            balance = int(user.points_balance or 0)
            if balance < cost:
                raise InsufficientBalanceError(required=cost, available=balance)

            record_points_entry(
                db,
                user,
                -cost,
                LOG_REDEEM_VOUCHER,
                f"Redeemed voucher ID: {voucher.id}",
                source_id=voucher.id,
            )
            voucher.quantity -= 1
            db.add(voucher)

            redemption = models.VoucherRedemption(
                user_id=user.id,
                voucher_id=voucher.id,
                status=models.REDEMPTION_PENDING,
            )
            db.add(redemption)
            db.flush()
    except LedgerError as exc:
        logger.warning(
            "Voucher redemption rejected: %s",
            exc.detail,
            extra={"user_id": user_id, "voucher_id": voucher_id, "error": type(exc).__name__},
        )
        raise
    except SQLAlchemyError as exc:
        logger.exception(
            "Store failure during voucher redemption",
            extra={"user_id": user_id, "voucher_id": voucher_id},
        )
        raise StoreError("Could not complete the redemption. Nothing was charged; please try again.") from exc

    db.refresh(redemption)
    view_cache.invalidate(VOUCHERS_VIEW, POINTS_VIEW)
    logger.info(
        "Voucher redeemed",
        extra={
            "user_id": user_id,
            "voucher_id": voucher_id,
            "redemption_id": redemption.id,
            "points": cost,
        },
    )
    return redemption


def fulfill_redemption(db: Session, redemption_id: int, coupon_code: str) -> models.VoucherRedemption:
    """Complete a pending redemption by attaching the partner's coupon code."""
    code = (coupon_code or "").strip()
    if not code:
        raise DomainValidationError("Coupon code is required")
    if len(code) > MAX_COUPON_CODE_LENGTH:
        raise DomainValidationError("Coupon code is too long")

    try:
        with atomic(db):
            redemption = lock_row(db, models.VoucherRedemption, redemption_id)
            if redemption is None:
                raise NotFoundError("Redemption not found")
            if redemption.status != models.REDEMPTION_PENDING:
                raise InvalidTransitionError("Redemption already completed")

            redemption.status = models.REDEMPTION_COMPLETED
            redemption.coupon_code = code
            redemption.fulfilled_at = datetime.now(timezone.utc)
            db.add(redemption)

            title = redemption.voucher.title if redemption.voucher else f"voucher #{redemption.voucher_id}"
            notify_user(
                db,
                redemption.user_id,
                f"Your {title} voucher is ready. Coupon code: {code}",
                category="voucher",
            )
    except SQLAlchemyError as exc:
        logger.exception("Store failure fulfilling redemption", extra={"redemption_id": redemption_id})
        raise StoreError("Could not update the redemption.") from exc

    db.refresh(redemption)
    logger.info("Redemption fulfilled", extra={"redemption_id": redemption_id})
    return redemption


def discard_redemption(db: Session, redemption_id: int) -> None:
    """Delete a redemption record.

    Points and stock are not restored; the debit stays in the points log.
    """
    try:
        with atomic(db):
            redemption = db.get(models.VoucherRedemption, redemption_id)
            if redemption is None:
                raise NotFoundError("Redemption not found")
            status = redemption.status
            db.delete(redemption)
    except SQLAlchemyError as exc:
        logger.exception("Store failure discarding redemption", extra={"redemption_id": redemption_id})
        raise StoreError("Could not delete the redemption.") from exc

    logger.info("Redemption discarded", extra={"redemption_id": redemption_id, "status": status})


def list_redemptions(
    db: Session,
    *,
    status: Optional[str] = None,
    user_id: Optional[int] = None,
    limit: int = 100,
) -> List[models.VoucherRedemption]:
    query = db.query(models.VoucherRedemption).options(
        selectinload(models.VoucherRedemption.user),
        selectinload(models.VoucherRedemption.voucher),
    )
    if status:
        query = query.filter(models.VoucherRedemption.status == status)
    if user_id is not None:
        query = query.filter(models.VoucherRedemption.user_id == user_id)
    return (
        query.order_by(models.VoucherRedemption.request_date.desc(), models.VoucherRedemption.id.desc())
        .limit(limit)
        .all()
    )
