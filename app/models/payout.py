import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.id_utils import generate_shortuuid
from app.db.base import Base


class PayoutStatus(str, enum.Enum):
    HOLD = "HOLD"  # escrowed until the scheduled release
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class SellerPayout(Base):
    __tablename__ = "seller_payouts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    seller_id: Mapped[str] = mapped_column(String(36), ForeignKey("marketplace_sellers.id"), nullable=False)
    order_id: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    commission: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PayoutStatus.HOLD.value,
        server_default=PayoutStatus.HOLD.value,
    )
    released_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("order_id", "seller_id", name="ux_seller_payouts_order_seller"),
        Index("ix_seller_payouts_seller_id", "seller_id"),
        Index("ix_seller_payouts_order_id", "order_id"),
        Index("ix_seller_payouts_status", "status"),
        Index("ix_seller_payouts_seller_status", "seller_id", "status"),
    )
