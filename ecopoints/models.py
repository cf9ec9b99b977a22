from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .db import Base

REDEMPTION_PENDING = "pending"
REDEMPTION_COMPLETED = "completed"
VOUCHER_ACTIVE = "active"
VOUCHER_INACTIVE = "inactive"
CASHOUT_PENDING = "pending"
CASHOUT_COMPLETED = "completed"
CASHOUT_CANCELLED = "cancelled"
POINT_SETTINGS_ID = 1


class User(Base):
    __tablename__ = "users"
    __table_args__ = (CheckConstraint("points_balance >= 0", name="ck_users_points_balance_non_negative"),)

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=True)
    full_name = Column(String(100), nullable=True)
    phone_number = Column(String(20), nullable=True)
    role = Column(String(25), nullable=False, default="citizen", index=True)
    points_balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    redemptions = relationship(
        "VoucherRedemption",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="VoucherRedemption.request_date.desc()",
    )
    points_log = relationship(
        "PointsLogEntry",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PointsLogEntry.created_at.desc()",
    )
    notifications = relationship(
        "Notification",
        back_populates="recipient",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Notification.created_at",
    )
    badges = relationship(
        "UserBadge",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    cashout_requests = relationship(
        "CashoutRequest",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Voucher(Base):
    __tablename__ = "vouchers"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_vouchers_quantity_non_negative"),
        CheckConstraint("points_required > 0", name="ck_vouchers_points_required_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    partner_name = Column(String(100), nullable=False, index=True)
    partner_logo_url = Column(Text, nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    points_required = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=VOUCHER_ACTIVE, index=True)  # active | inactive
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    redemptions = relationship(
        "VoucherRedemption",
        back_populates="voucher",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class VoucherRedemption(Base):
    __tablename__ = "voucher_redemptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    voucher_id = Column(Integer, ForeignKey("vouchers.id", ondelete="CASCADE"), nullable=False, index=True)
    request_date = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    status = Column(String(20), nullable=False, default=REDEMPTION_PENDING, index=True)  # pending | completed
    coupon_code = Column(String(255), nullable=True)
    fulfilled_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="redemptions")
    voucher = relationship("Voucher", back_populates="redemptions")


class PointsLogEntry(Base):
    __tablename__ = "points_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    points_delta = Column(Integer, nullable=False)
    log_type = Column(String(50), nullable=False, index=True)  # grant | deduct | redeem_voucher | cashout | balance_forward
    reason = Column(String(255), nullable=True)
    source_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User", back_populates="points_log")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(String(500), nullable=False)
    category = Column(String(50), nullable=False, default="general")
    status = Column(String(20), nullable=False, default="unread")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    recipient = relationship("User", back_populates="notifications")


class Badge(Base):
    __tablename__ = "badges"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(String(255), nullable=False)
    icon_name = Column(String(50), nullable=True)

    holders = relationship(
        "UserBadge",
        back_populates="badge",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class UserBadge(Base):
    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    badge_id = Column(Integer, ForeignKey("badges.id", ondelete="CASCADE"), nullable=False, index=True)
    earned_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="badges")
    badge = relationship("Badge", back_populates="holders")


class PointSettings(Base):
    """Single-row table (id 1) holding the automatic grant rates."""

    __tablename__ = "point_settings"

    id = Column(Integer, primary_key=True)
    auto_grant_enabled = Column(Boolean, nullable=False, default=True)
    recycling_per_kg = Column(Integer, nullable=False, default=10)
    organic_per_kg = Column(Integer, nullable=False, default=5)
    donation_per_piece = Column(Integer, nullable=False, default=2)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class CashoutRequest(Base):
    __tablename__ = "cashout_requests"
    __table_args__ = (CheckConstraint("points_redeemed > 0", name="ck_cashout_points_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    points_redeemed = Column(Integer, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    bank_name = Column(String(100), nullable=False)
    account_holder = Column(String(100), nullable=False)
    account_number = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default=CASHOUT_PENDING, index=True)  # pending | completed | cancelled
    request_date = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="cashout_requests")
