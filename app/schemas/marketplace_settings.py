from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PayoutFrequency = Literal["weekly", "monthly"]


class MarketplaceSettingsUpdateIn(BaseModel):
    default_commission_rate: Optional[Decimal] = None
    payout_schedule_frequency: Optional[PayoutFrequency] = None
    payout_minimum_threshold: Optional[int] = Field(default=None, ge=0)

    @field_validator("payout_schedule_frequency", mode="before")
    @classmethod
    def normalize_frequency(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "default_commission_rate": "0.12",
                "payout_schedule_frequency": "weekly",
                "payout_minimum_threshold": 5000,
            }
        }
    )


class MarketplaceSettingsOut(BaseModel):
    default_commission_rate: Decimal
    payout_schedule_frequency: PayoutFrequency
    payout_minimum_threshold: int
    payout_scheduler_last_run: datetime | None = None
    persisted: bool
