from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import get_db
from ..security import get_current_user
from ..services import badges, cashouts, ledger, redemptions, vouchers

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("/vouchers", response_model=List[schemas.VoucherPublic])
def voucher_catalogue(db: Session = Depends(get_db)):
    """Vouchers citizens can currently exchange points for."""
    return vouchers.voucher_catalogue(db)


@router.post(
    "/vouchers/{voucher_id}/redeem",
    response_model=schemas.RedemptionPublic,
    status_code=status.HTTP_201_CREATED,
)
def redeem_voucher(
    voucher_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Spend points on one unit of a voucher; the coupon code follows once an admin fulfills it."""
    return redemptions.redeem_voucher(db, current_user.id, voucher_id)


@router.get("/ledger", response_model=List[schemas.PointsLogEntryPublic])
def my_points_log(
    limit: int = Query(25, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Return the latest points log entries for the authenticated user."""
    return ledger.list_points_log(db, user_id=current_user.id, limit=limit)


@router.get("/redemptions", response_model=List[schemas.RedemptionPublic])
def my_redemptions(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return redemptions.list_redemptions(db, user_id=current_user.id, limit=limit)


@router.get("/badges", response_model=List[schemas.BadgePublic])
def my_badges(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return badges.user_badges(db, current_user.id)


@router.post("/cashouts", response_model=schemas.CashoutPublic, status_code=status.HTTP_201_CREATED)
def request_cashout(
    payload: schemas.CashoutCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Ask for points to be paid out by bank transfer; points are deducted on approval."""
    return cashouts.request_cashout(db, current_user.id, payload)


@router.get("/cashouts", response_model=List[schemas.CashoutPublic])
def my_cashouts(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return cashouts.list_cashout_requests(db, user_id=current_user.id)
