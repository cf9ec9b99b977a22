from __future__ import annotations

import os
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, constr, field_validator

VoucherStatus = Literal["active", "inactive"]
RedemptionStatus = Literal["pending", "completed"]
CashoutStatus = Literal["pending", "completed", "cancelled"]

PHONE_COUNTRY_PREFIX = os.getenv("PHONE_COUNTRY_PREFIX", "+967")


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Prefix local numbers with the country code, dropping their leading zeros."""
    if not value:
        return value
    value = value.strip()
    if value.startswith(PHONE_COUNTRY_PREFIX):
        return value
    return PHONE_COUNTRY_PREFIX + value.lstrip("0")


class UserSummary(BaseModel):
    id: int
    full_name: Optional[str] = None

    class Config:
        from_attributes = True


class AdminUserSummary(UserSummary):
    phone_number: Optional[str] = None

    @field_validator("phone_number")
    @classmethod
    def with_country_prefix(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)

    class Config:
        from_attributes = True


class UserProfile(UserSummary):
    email: EmailStr
    phone_number: Optional[str] = None
    role: str
    points_balance: int

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfile


class AuthEmailRegister(BaseModel):
    email: EmailStr
    password: constr(min_length=8)
    full_name: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20)


class AuthEmailLogin(BaseModel):
    email: EmailStr
    password: constr(min_length=8)


class VoucherWrite(BaseModel):
    partner_name: constr(strip_whitespace=True, min_length=2, max_length=100)
    partner_logo_url: Optional[str] = None
    title: constr(strip_whitespace=True, min_length=5, max_length=255)
    description: constr(strip_whitespace=True, min_length=10)
    points_required: int = Field(..., ge=1, description="Points charged per unit")
    quantity: int = Field(..., ge=0, description="Units left in stock")
    status: VoucherStatus = "active"


class VoucherPublic(BaseModel):
    id: int
    partner_name: str
    partner_logo_url: Optional[str] = None
    title: str
    description: str
    points_required: int
    quantity: int
    status: VoucherStatus

    class Config:
        from_attributes = True


class VoucherBrief(BaseModel):
    id: int
    title: str
    partner_name: str

    class Config:
        from_attributes = True


class RedemptionPublic(BaseModel):
    id: int
    user_id: int
    voucher_id: int
    request_date: Optional[datetime] = None
    status: RedemptionStatus
    coupon_code: Optional[str] = None
    fulfilled_at: Optional[datetime] = None
    voucher: Optional[VoucherBrief] = None

    class Config:
        from_attributes = True


class RedemptionAdmin(RedemptionPublic):
    user: Optional[AdminUserSummary] = None


class RedemptionFulfill(BaseModel):
    coupon_code: constr(strip_whitespace=True, min_length=1, max_length=255)


class PointsLogEntryPublic(BaseModel):
    id: int
    user_id: int
    points_delta: int
    log_type: str
    reason: Optional[str] = None
    source_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PointsAdjustment(BaseModel):
    points: int = Field(..., ge=1)
    reason: Optional[str] = Field(None, max_length=255)


class PointsAdjustmentResult(BaseModel):
    user_id: int
    points_balance: int
    entry: Optional[PointsLogEntryPublic] = None


class UserBalance(BaseModel):
    id: int
    full_name: Optional[str] = None
    points_balance: int
    badges: List[str] = []


class PointsSummary(BaseModel):
    total_outstanding: int
    users: List[UserBalance]


class NotificationPublic(BaseModel):
    id: int
    message: str
    status: Literal["unread", "read"]
    category: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationsMarked(BaseModel):
    updated: int


class BadgePublic(BaseModel):
    id: int
    name: str
    description: str
    icon_name: Optional[str] = None

    class Config:
        from_attributes = True


class UserBadgePublic(BaseModel):
    user_id: int
    badge_id: int
    earned_at: Optional[datetime] = None
    badge: BadgePublic

    class Config:
        from_attributes = True


class PointSettingsPayload(BaseModel):
    auto_grant_enabled: bool = True
    recycling_per_kg: int = Field(10, ge=0)
    organic_per_kg: int = Field(5, ge=0)
    donation_per_piece: int = Field(2, ge=0)

    class Config:
        from_attributes = True


class CashoutCreate(BaseModel):
    points: int = Field(..., ge=1)
    amount: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2)
    bank_name: constr(strip_whitespace=True, min_length=2, max_length=100)
    account_holder: constr(strip_whitespace=True, min_length=5, max_length=100)
    account_number: constr(strip_whitespace=True, pattern=r"^\d{10,20}$")


class CashoutPublic(BaseModel):
    id: int
    user_id: int
    points_redeemed: int
    amount: Decimal
    bank_name: str
    account_holder: str
    account_number: str
    status: CashoutStatus
    request_date: Optional[datetime] = None
    processed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CashoutAdmin(CashoutPublic):
    user: Optional[AdminUserSummary] = None
