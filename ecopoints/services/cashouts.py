"""Requests to convert points into a bank transfer.

Points leave the balance only when an admin approves the request. Approval
locks the request row, then the user row, and debits through
``record_points_entry`` so the balance can never drop below zero.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..db import atomic, lock_row
from .exceptions import InsufficientBalanceError, InvalidTransitionError, LedgerError, NotFoundError, StoreError
from .ledger import LOG_CASHOUT, lock_user, record_points_entry
from .notifications import notify_user
from .view_cache import POINTS_VIEW, view_cache

logger = logging.getLogger(__name__)


def request_cashout(db: Session, user_id: int, payload: schemas.CashoutCreate) -> models.CashoutRequest:
    """File a pending cash-out request. The balance is checked now and again on approval."""
    user = db.get(models.User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    balance = int(user.points_balance or 0)
    if balance < payload.points:
        raise InsufficientBalanceError(required=payload.points, available=balance)

    request = models.CashoutRequest(
        user_id=user_id,
        points_redeemed=payload.points,
        amount=payload.amount,
        bank_name=payload.bank_name,
        account_holder=payload.account_holder,
        account_number=payload.account_number,
        status=models.CASHOUT_PENDING,
    )
    try:
        with atomic(db):
            db.add(request)
    except SQLAlchemyError as exc:
        logger.exception("Store failure filing cash-out request", extra={"user_id": user_id})
        raise StoreError("Could not submit the cash-out request.") from exc

    db.refresh(request)
    logger.info(
        "Cash-out requested",
        extra={"user_id": user_id, "cashout_id": request.id, "points": payload.points},
    )
    return request


def list_cashout_requests(
    db: Session,
    *,
    status: Optional[str] = None,
    user_id: Optional[int] = None,
    limit: int = 100,
) -> List[models.CashoutRequest]:
    query = db.query(models.CashoutRequest).options(selectinload(models.CashoutRequest.user))
    if status:
        query = query.filter(models.CashoutRequest.status == status)
    if user_id is not None:
        query = query.filter(models.CashoutRequest.user_id == user_id)
    return (
        query.order_by(models.CashoutRequest.request_date.desc(), models.CashoutRequest.id.desc())
        .limit(limit)
        .all()
    )


def approve_cashout(db: Session, cashout_id: int) -> models.CashoutRequest:
    """Debit the points, mark the request completed and tell the user the transfer went out."""
    try:
        with atomic(db):
            request = lock_row(db, models.CashoutRequest, cashout_id)
            if request is None:
                raise NotFoundError("Cash-out request not found")
            if request.status != models.CASHOUT_PENDING:
                raise InvalidTransitionError(f"Cash-out request is already {request.status}")

            user = lock_user(db, request.user_id)
            if user is None:
                raise NotFoundError("User not found")
            record_points_entry(
                db,
                user,
                -request.points_redeemed,
                LOG_CASHOUT,
                f"Cash-out request ID: {request.id}",
                source_id=request.id,
            )
            request.status = models.CASHOUT_COMPLETED
            request.processed_at = datetime.now(timezone.utc)
            db.add(request)
            notify_user(
                db,
                request.user_id,
                f"We transferred {request.amount} to your account for {request.points_redeemed} points. "
                "Thank you for recycling with us!",
                category="cashout",
            )
    except LedgerError as exc:
        logger.warning(
            "Cash-out approval rejected: %s",
            exc.detail,
            extra={"cashout_id": cashout_id, "error": type(exc).__name__},
        )
        raise
    except SQLAlchemyError as exc:
        logger.exception("Store failure approving cash-out", extra={"cashout_id": cashout_id})
        raise StoreError("Could not approve the cash-out request. No points were deducted.") from exc

    db.refresh(request)
    view_cache.invalidate(POINTS_VIEW)
    logger.info(
        "Cash-out approved",
        extra={"cashout_id": cashout_id, "user_id": request.user_id, "points": request.points_redeemed},
    )
    return request


def cancel_cashout(db: Session, cashout_id: int) -> models.CashoutRequest:
    try:
        with atomic(db):
            request = lock_row(db, models.CashoutRequest, cashout_id)
            if request is None:
                raise NotFoundError("Cash-out request not found")
            if request.status != models.CASHOUT_PENDING:
                raise InvalidTransitionError(f"Cash-out request is already {request.status}")
            request.status = models.CASHOUT_CANCELLED
            request.processed_at = datetime.now(timezone.utc)
            db.add(request)
    except SQLAlchemyError as exc:
        logger.exception("Store failure cancelling cash-out", extra={"cashout_id": cashout_id})
        raise StoreError("Could not cancel the cash-out request.") from exc

    db.refresh(request)
    logger.info("Cash-out cancelled", extra={"cashout_id": cashout_id})
    return request


def delete_cashout(db: Session, cashout_id: int) -> None:
    """Remove the request record; an approved debit stays in the points log."""
    try:
        with atomic(db):
            request = db.get(models.CashoutRequest, cashout_id)
            if request is None:
                raise NotFoundError("Cash-out request not found")
            db.delete(request)
    except SQLAlchemyError as exc:
        logger.exception("Store failure deleting cash-out", extra={"cashout_id": cashout_id})
        raise StoreError("Could not delete the cash-out request.") from exc

    logger.info("Cash-out deleted", extra={"cashout_id": cashout_id})
