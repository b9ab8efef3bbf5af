import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.id_utils import generate_shortuuid
from app.db.base import Base


class CommissionHistoryStatus(str, enum.Enum):
    CALCULATED = "CALCULATED"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class CommissionHistory(Base):
    __tablename__ = "commission_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    order_id: Mapped[str] = mapped_column(String(100), nullable=False)
    seller_id: Mapped[str] = mapped_column(String(36), ForeignKey("marketplace_sellers.id"), nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    order_total: Mapped[int] = mapped_column(Integer, nullable=False)
    commission_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    seller_payout: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CommissionHistoryStatus.CALCULATED.value,
        server_default=CommissionHistoryStatus.CALCULATED.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index("ix_commission_history_seller_id", "seller_id"),
        Index("ix_commission_history_order_id", "order_id"),
        Index("ix_commission_history_status", "status"),
        Index("ix_commission_history_seller_status", "seller_id", "status"),
        Index("ix_commission_history_created_at", "created_at"),
        CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 1",
            name="ck_commission_history_commission_rate",
        ),
        CheckConstraint("order_total >= 0", name="ck_commission_history_order_total"),
        CheckConstraint("commission_amount >= 0", name="ck_commission_history_commission_amount"),
        CheckConstraint("seller_payout >= 0", name="ck_commission_history_seller_payout"),
        CheckConstraint(
            "commission_amount + seller_payout = order_total",
            name="ck_commission_history_amounts",
        ),
    )
