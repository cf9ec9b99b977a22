from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import get_db
from ..security import require_admin
from ..services import redemptions as redemption_service

router = APIRouter(prefix="/admin/redemptions", tags=["admin"])


@router.get("/", response_model=List[schemas.RedemptionAdmin])
def list_redemptions(
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(pending|completed)$"),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    """Voucher redemptions, newest first, for the admin review queue."""
    return redemption_service.list_redemptions(db, status=status_filter, limit=limit)


@router.post("/{redemption_id}/fulfill", response_model=schemas.RedemptionAdmin)
def fulfill_redemption(
    redemption_id: int,
    payload: schemas.RedemptionFulfill,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return redemption_service.fulfill_redemption(db, redemption_id, payload.coupon_code)


@router.delete("/{redemption_id}", status_code=status.HTTP_204_NO_CONTENT)
def discard_redemption(
    redemption_id: int,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    # Deliberately leaves the user's points and the voucher stock untouched.
    redemption_service.discard_redemption(db, redemption_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
