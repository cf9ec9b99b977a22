import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import get_db
from ..security import CITIZEN_ROLE, create_access_token, get_current_user, get_password_hash, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


@router.post("/register", response_model=schemas.TokenResponse, status_code=status.HTTP_201_CREATED)
def register_user(payload: schemas.AuthEmailRegister, db: Session = Depends(get_db)):
    email = _normalize_email(payload.email)
    existing = db.query(models.User).filter(models.User.email == email).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    full_name = payload.full_name.strip() if payload.full_name else email.split("@")[0]
    user = models.User(
        email=email,
        hashed_password=get_password_hash(payload.password),
        full_name=full_name,
        phone_number=payload.phone_number,
        role=CITIZEN_ROLE,
        points_balance=0,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User registered", extra={"user_id": user.id})

    token = create_access_token(user)
    return schemas.TokenResponse(access_token=token, user=user)  # type: ignore[arg-type]


@router.post("/login", response_model=schemas.TokenResponse)
def login_user(payload: schemas.AuthEmailLogin, db: Session = Depends(get_db)):
    email = _normalize_email(payload.email)
    user = db.query(models.User).filter(models.User.email == email).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_access_token(user)
    return schemas.TokenResponse(access_token=token, user=user)  # type: ignore[arg-type]


@router.get("/me", response_model=schemas.UserProfile)
def get_profile(current_user: models.User = Depends(get_current_user)):
    return current_user
