from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import PaginationMeta

CommissionStatusValue = Literal["CALCULATED", "PAID", "REFUNDED"]


class CommissionHistoryOut(BaseModel):
    id: str
    order_id: str
    seller_id: str
    commission_rate: Decimal
    order_total: int
    commission_amount: int
    seller_payout: int
    status: CommissionStatusValue
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CommissionHistoryListOut(BaseModel):
    pagination: PaginationMeta
    status: CommissionStatusValue | None = None
    order_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    items: list[CommissionHistoryOut]


class CommissionSummaryOut(BaseModel):
    seller_id: str
    total_commissions: int
    total_payouts: int
    total_orders: int
    commissions_by_status: dict[str, int]


class CommissionPreviewIn(BaseModel):
    order_total: int = Field(ge=0, description="Order total in minor units (cents)")
    commission_rate: Decimal | None = Field(
        default=None,
        description="Fraction between 0 and 1; defaults to the seller or marketplace rate",
    )

    model_config = ConfigDict(
        json_schema_extra={"example": {"order_total": 10000, "commission_rate": "0.15"}}
    )


class CommissionPreviewOut(BaseModel):
    order_total: int
    commission_rate: Decimal
    commission: int
    seller_payout: int
