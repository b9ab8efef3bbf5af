from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidCommissionError, InvalidCommissionRateError
from app.core.money import round_half_up
from app.models.marketplace_settings import MARKETPLACE_SETTINGS_ID, MarketplaceSettings
from app.models.seller import MarketplaceSeller

DEFAULT_COMMISSION_RATE = Decimal("0.15")

RateLike = Decimal | float | int | str


@dataclass(frozen=True)
class OrderLineForCommission:
    line_price: int
    seller_id: str


@dataclass(frozen=True)
class CommissionCalculationResult:
    total_order_value: int
    commission: int
    seller_payout: int


def to_rate(commission_rate: RateLike) -> Decimal:
    if isinstance(commission_rate, bool):
        raise InvalidCommissionRateError("Commission rate must be a number")
    try:
        return Decimal(str(commission_rate).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidCommissionRateError("Commission rate must be a number") from exc


def validate_commission_rate(commission_rate: RateLike) -> Decimal:
    rate = to_rate(commission_rate)
    if rate.is_nan():
        raise InvalidCommissionRateError("Commission rate cannot be NaN")
    if rate.is_infinite():
        raise InvalidCommissionRateError("Commission rate must be a finite number")
    if rate < 0:
        raise InvalidCommissionRateError("Commission rate cannot be negative")
    if rate > 1:
        raise InvalidCommissionRateError("Commission rate cannot exceed 100% (1.0)")
    return rate


def calculate_commission(order_total: int, commission_rate: RateLike) -> int:
    """Platform commission on ``order_total`` (minor units), rounded half-up to the cent."""
    rate = validate_commission_rate(commission_rate)
    return round_half_up(Decimal(int(order_total)) * rate)


def calculate_seller_payout(order_total: int, commission: int) -> int:
    if commission < 0 or commission > order_total:
        raise InvalidCommissionError("Invalid commission: commission must be between 0 and order total")
    return order_total - commission


def calculate_commission_for_order_lines(
    order_lines: Iterable[OrderLineForCommission],
    commission_rate: RateLike,
) -> CommissionCalculationResult:
    validate_commission_rate(commission_rate)
    total_order_value = sum(line.line_price for line in order_lines)
    commission = calculate_commission(total_order_value, commission_rate)
    seller_payout = calculate_seller_payout(total_order_value, commission)
    return CommissionCalculationResult(
        total_order_value=total_order_value,
        commission=commission,
        seller_payout=seller_payout,
    )


def get_default_commission_rate(db: Session | None = None) -> Decimal:
    if db is not None:
        row = db.get(MarketplaceSettings, MARKETPLACE_SETTINGS_ID)
        if row is not None and row.default_commission_rate is not None:
            return validate_commission_rate(row.default_commission_rate)
    if settings.default_commission_rate is not None:
        return validate_commission_rate(settings.default_commission_rate)
    return DEFAULT_COMMISSION_RATE


def resolve_seller_commission_rate(seller: MarketplaceSeller | None, default_rate: RateLike) -> Decimal:
    if seller is not None and seller.commission_rate is not None:
        return validate_commission_rate(seller.commission_rate)
    return validate_commission_rate(default_rate)
