from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import get_db
from ..security import require_admin
from ..services import cashouts as cashout_service

router = APIRouter(prefix="/admin/cashouts", tags=["admin"])


@router.get("/", response_model=List[schemas.CashoutAdmin])
def list_cashouts(
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(pending|completed|cancelled)$"),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return cashout_service.list_cashout_requests(db, status=status_filter, limit=limit)


@router.post("/{cashout_id}/approve", response_model=schemas.CashoutAdmin)
def approve_cashout(
    cashout_id: int,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    """Deduct the requested points once the bank transfer has been sent."""
    return cashout_service.approve_cashout(db, cashout_id)


@router.post("/{cashout_id}/cancel", response_model=schemas.CashoutAdmin)
def cancel_cashout(
    cashout_id: int,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return cashout_service.cancel_cashout(db, cashout_id)


@router.delete("/{cashout_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_cashout(
    cashout_id: int,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    cashout_service.delete_cashout(db, cashout_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
