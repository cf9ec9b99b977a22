from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import get_db
from ..security import require_admin
from ..services import vouchers as voucher_service

router = APIRouter(prefix="/admin/vouchers", tags=["admin"])


@router.get("/", response_model=List[schemas.VoucherPublic])
def list_vouchers(
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return voucher_service.list_vouchers(db)


@router.post("/", response_model=schemas.VoucherPublic, status_code=status.HTTP_201_CREATED)
def create_voucher(
    payload: schemas.VoucherWrite,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return voucher_service.create_voucher(db, payload)


@router.put("/{voucher_id}", response_model=schemas.VoucherPublic)
def update_voucher(
    voucher_id: int,
    payload: schemas.VoucherWrite,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    return voucher_service.update_voucher(db, voucher_id, payload)


@router.delete("/{voucher_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_voucher(
    voucher_id: int,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    voucher_service.delete_voucher(db, voucher_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
