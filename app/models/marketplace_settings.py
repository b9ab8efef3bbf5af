from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base

MARKETPLACE_SETTINGS_ID = "global"


class MarketplaceSettings(Base):
    """Single-row table; the row id is always ``MARKETPLACE_SETTINGS_ID``."""

    __tablename__ = "marketplace_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=MARKETPLACE_SETTINGS_ID)
    default_commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    payout_schedule_frequency: Mapped[str] = mapped_column(
        String(20), nullable=False, default="weekly", server_default="weekly"
    )
    payout_minimum_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    payout_scheduler_last_run: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
