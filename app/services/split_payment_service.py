from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping

from app.core.errors import SplitPaymentError
from app.services.commission_service import (
    DEFAULT_COMMISSION_RATE,
    RateLike,
    calculate_commission,
    calculate_seller_payout,
    validate_commission_rate,
)


@dataclass(frozen=True)
class SplitPaymentResult:
    total_amount: int
    commission: int
    seller_payout: int


@dataclass(frozen=True)
class SellerSplitPayment:
    seller_id: str
    amount: int
    commission: int
    line_total: int
    commission_rate: Decimal


@dataclass(frozen=True)
class OrderSplitPaymentResult:
    order_id: str
    total_amount: int
    commission: int
    seller_payout: int
    seller_splits: list[SellerSplitPayment] = field(default_factory=list)


@dataclass(frozen=True)
class OrderLineForSplitPayment:
    id: str
    line_price: int
    seller_id: str


@dataclass(frozen=True)
class OrderForSplitPayment:
    id: str
    total: int
    lines: list[OrderLineForSplitPayment]


def calculate_split_payment(order_total: int, commission_rate: RateLike) -> SplitPaymentResult:
    commission = calculate_commission(order_total, commission_rate)
    seller_payout = calculate_seller_payout(order_total, commission)
    return SplitPaymentResult(total_amount=order_total, commission=commission, seller_payout=seller_payout)


def _seller_line_totals(lines: list[OrderLineForSplitPayment]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for line in lines:
        totals[line.seller_id] = totals.get(line.seller_id, 0) + line.line_price
    return totals


def calculate_split_payment_for_order_with_rates(
    order: OrderForSplitPayment,
    seller_commission_rates: Mapping[str, RateLike],
    default_commission_rate: RateLike = DEFAULT_COMMISSION_RATE,
) -> OrderSplitPaymentResult:
    seller_splits: list[SellerSplitPayment] = []
    total_commission = 0
    total_seller_payout = 0

    for seller_id, line_total in _seller_line_totals(order.lines).items():
        rate = seller_commission_rates.get(seller_id)
        commission_rate = validate_commission_rate(default_commission_rate if rate is None else rate)
        split = calculate_split_payment(line_total, commission_rate)
        seller_splits.append(
            SellerSplitPayment(
                seller_id=seller_id,
                amount=split.seller_payout,
                commission=split.commission,
                line_total=line_total,
                commission_rate=commission_rate,
            )
        )
        total_commission += split.commission
        total_seller_payout += split.seller_payout

    return OrderSplitPaymentResult(
        order_id=order.id,
        total_amount=order.total,
        commission=total_commission,
        seller_payout=total_seller_payout,
        seller_splits=seller_splits,
    )


def calculate_split_payment_for_order(
    order: OrderForSplitPayment,
    commission_rate: RateLike,
) -> OrderSplitPaymentResult:
    return calculate_split_payment_for_order_with_rates(order, {}, commission_rate)


def validate_split_payment(split_payment: SplitPaymentResult) -> None:
    if split_payment.commission < 0:
        raise SplitPaymentError("Commission cannot be negative")
    if split_payment.seller_payout < 0:
        raise SplitPaymentError("Seller payout cannot be negative")
    if split_payment.commission > split_payment.total_amount:
        raise SplitPaymentError("Commission cannot exceed total amount")

    calculated_total = split_payment.commission + split_payment.seller_payout
    # One cent of slack for rounding.
    if abs(calculated_total - split_payment.total_amount) > 1:
        raise SplitPaymentError(
            f"Split payment amounts do not add up: commission ({split_payment.commission}) + "
            f"payout ({split_payment.seller_payout}) = {calculated_total}, "
            f"expected {split_payment.total_amount}"
        )
