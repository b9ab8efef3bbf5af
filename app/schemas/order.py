from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.schemas.common import PaginationMeta

ALLOWED_ORDER_STATUSES = {
    "pending",
    "paid",
    "processing",
    "fulfilled",
    "cancelled",
    "refunded",
}


class OrderItemIn(BaseModel):
    variant_id: str
    qty: int = Field(gt=0)
    unit_price: int = Field(ge=0, description="Unit price in minor units (cents)")


class OrderCreate(BaseModel):
    customer_email: Optional[EmailStr] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    note: Optional[str] = Field(default=None, max_length=255)
    items: list[OrderItemIn] = Field(min_length=1)
    shipping_method_ids: list[str] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "customer_email": "buyer@example.com",
                "note": "Leave at reception",
                "items": [
                    {
                        "variant_id": "variant-id-here",
                        "qty": 2,
                        "unit_price": 12000,
                    }
                ],
                "shipping_method_ids": ["shipping-method-id-here"],
            }
        }
    )


class OrderStatusUpdateIn(BaseModel):
    status: str
    note: Optional[str] = Field(default=None, max_length=255)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "paid",
                "note": "Payment confirmed",
            }
        }
    )


class OrderItemOut(BaseModel):
    id: str
    variant_id: str
    seller_channel_id: str | None = None
    qty: int
    unit_price: int
    line_total: int

    model_config = ConfigDict(from_attributes=True)


class ShippingLineOut(BaseModel):
    id: str
    shipping_method_id: str
    price: int

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: str
    code: str
    channel_id: str
    aggregate_order_id: str | None = None
    customer_email: str | None = None
    status: str
    currency: str
    subtotal: int
    shipping_total: int
    total: int
    note: str | None = None
    items: list[OrderItemOut] = Field(default_factory=list)
    shipping_lines: list[ShippingLineOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderListOut(BaseModel):
    pagination: PaginationMeta
    start_date: date | None = None
    end_date: date | None = None
    status: str | None = None
    aggregate_order_id: str | None = None
    items: list[OrderOut]


class OrderSplitOut(BaseModel):
    aggregate_order_id: str
    seller_orders: list[OrderOut]
