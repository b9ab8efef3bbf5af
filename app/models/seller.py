import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.id_utils import generate_shortuuid
from app.db.base import Base


class SellerVerificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


class MarketplaceSeller(Base):
    __tablename__ = "marketplace_sellers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    owner_user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), unique=True, index=True)
    verification_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SellerVerificationStatus.PENDING.value,
        server_default=SellerVerificationStatus.PENDING.value,
    )
    shop_name: Mapped[str] = mapped_column(String(100), nullable=False)
    shop_slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    shop_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    tax_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    payment_account_id: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    # Fraction in [0, 1]; NULL means the marketplace default applies.
    commission_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 4), nullable=True)
    channel_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("channels.id"), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index("ix_marketplace_sellers_verification_status", "verification_status"),
        CheckConstraint(
            "length(shop_name) >= 3 AND length(shop_name) <= 100",
            name="ck_marketplace_sellers_shop_name_length",
        ),
        CheckConstraint(
            "commission_rate IS NULL OR (commission_rate >= 0 AND commission_rate <= 1)",
            name="ck_marketplace_sellers_commission_rate",
        ),
    )
