from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.common import PaginationMeta

PayoutStatusValue = Literal["HOLD", "PENDING", "PROCESSING", "COMPLETED", "FAILED"]


class PayoutOut(BaseModel):
    id: str
    seller_id: str
    order_id: str
    amount: int
    commission: int
    status: PayoutStatusValue
    released_at: datetime | None = None
    completed_at: datetime | None = None
    failure_reason: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PayoutListOut(BaseModel):
    pagination: PaginationMeta
    status: PayoutStatusValue | None = None
    items: list[PayoutOut]


class SellerPayoutSummaryOut(BaseModel):
    seller_id: str
    pending_total: int
    minimum_threshold: int
    can_request_payout: bool
    totals_by_status: dict[str, int]


class PayoutRequestOut(BaseModel):
    seller_id: str
    released_count: int
    released_total: int
    items: list[PayoutOut]


class PayoutRejectIn(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("reason is required")
        return cleaned

    model_config = ConfigDict(
        json_schema_extra={"example": {"reason": "Payment account could not be verified"}}
    )


class ScheduledPayoutStatsOut(BaseModel):
    count: int
    total_amount: int
    sellers_affected: int


class ScheduledPayoutRunOut(BaseModel):
    ran: bool
    frequency: str
    last_run: datetime | None = None
    skipped_reason: str | None = None
    total_processed: int = 0
    sellers_affected: int = 0
    total_amount: int = 0
