from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SellerVerificationStatusValue = Literal["PENDING", "VERIFIED", "REJECTED", "SUSPENDED"]


class SellerCreate(BaseModel):
    owner_user_id: str
    shop_name: str = Field(min_length=3, max_length=100)
    shop_description: Optional[str] = None
    business_name: Optional[str] = Field(default=None, max_length=200)
    tax_id: Optional[str] = Field(default=None, max_length=100)
    payment_account_id: Optional[str] = Field(default=None, max_length=200)
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=1)

    @field_validator("shop_name")
    @classmethod
    def validate_shop_name(cls, value: str) -> str:
        cleaned = value.strip()
        if len(cleaned) < 3:
            raise ValueError("shop_name must be at least 3 characters")
        return cleaned

    @field_validator("shop_description", "business_name", "tax_id", "payment_account_id")
    @classmethod
    def normalize_optional_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "owner_user_id": "user-id-here",
                "shop_name": "Lagos Prints",
                "shop_description": "Hand-printed Ankara fabrics",
                "business_name": "Lagos Prints Ltd",
                "commission_rate": "0.10",
            }
        }
    )


class SellerCommissionRateUpdateIn(BaseModel):
    # NULL falls back to the marketplace default.
    commission_rate: Optional[Decimal] = None


class SellerVerificationUpdateIn(BaseModel):
    verification_status: SellerVerificationStatusValue


class SellerOut(BaseModel):
    id: str
    owner_user_id: str
    shop_name: str
    shop_slug: str
    shop_description: str | None = None
    business_name: str | None = None
    tax_id: str | None = None
    payment_account_id: str | None = None
    verification_status: SellerVerificationStatusValue
    is_active: bool
    commission_rate: Decimal | None = None
    channel_id: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
