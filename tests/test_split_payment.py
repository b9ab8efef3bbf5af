from decimal import Decimal

import pytest

from app.core.errors import InvalidCommissionRateError, SplitPaymentError
from app.services.split_payment_service import (
    OrderForSplitPayment,
    OrderLineForSplitPayment,
    SplitPaymentResult,
    calculate_split_payment,
    calculate_split_payment_for_order,
    calculate_split_payment_for_order_with_rates,
    validate_split_payment,
)


def _order() -> OrderForSplitPayment:
    return OrderForSplitPayment(
        id="order-1",
        total=10500,
        lines=[
            OrderLineForSplitPayment(id="line-1", line_price=5000, seller_id="seller-a"),
            OrderLineForSplitPayment(id="line-2", line_price=3000, seller_id="seller-b"),
            OrderLineForSplitPayment(id="line-3", line_price=2000, seller_id="seller-a"),
        ],
    )


def test_calculate_split_payment():
    split = calculate_split_payment(10000, 0.15)
    assert split == SplitPaymentResult(total_amount=10000, commission=1500, seller_payout=8500)


def test_split_for_order_groups_lines_by_seller_in_first_seen_order():
    result = calculate_split_payment_for_order(_order(), 0.1)

    assert result.order_id == "order-1"
    assert result.total_amount == 10500
    assert [split.seller_id for split in result.seller_splits] == ["seller-a", "seller-b"]

    seller_a, seller_b = result.seller_splits
    assert (seller_a.line_total, seller_a.commission, seller_a.amount) == (7000, 700, 6300)
    assert (seller_b.line_total, seller_b.commission, seller_b.amount) == (3000, 300, 2700)
    assert result.commission == 1000
    assert result.seller_payout == 9000


def test_split_with_rates_uses_seller_override_and_records_rate():
    result = calculate_split_payment_for_order_with_rates(
        _order(),
        {"seller-b": Decimal("0.05")},
        0.15,
    )
    seller_a, seller_b = result.seller_splits

    assert seller_a.commission_rate == Decimal("0.15")
    assert (seller_a.commission, seller_a.amount) == (1050, 5950)
    assert seller_b.commission_rate == Decimal("0.05")
    assert (seller_b.commission, seller_b.amount) == (150, 2850)
    assert result.commission == 1200
    assert result.seller_payout == 8800


def test_split_with_rates_rejects_invalid_override():
    with pytest.raises(InvalidCommissionRateError):
        calculate_split_payment_for_order_with_rates(_order(), {"seller-a": 1.5}, 0.15)


def test_split_for_order_without_lines_is_empty():
    result = calculate_split_payment_for_order(OrderForSplitPayment(id="empty", total=0, lines=[]), 0.15)
    assert result.seller_splits == []
    assert result.commission == 0
    assert result.seller_payout == 0


def test_validate_split_payment_allows_one_cent_of_rounding():
    validate_split_payment(SplitPaymentResult(total_amount=10000, commission=1500, seller_payout=8500))
    validate_split_payment(SplitPaymentResult(total_amount=10000, commission=1500, seller_payout=8499))
    validate_split_payment(SplitPaymentResult(total_amount=10000, commission=1501, seller_payout=8500))


@pytest.mark.parametrize(
    ("split", "message"),
    [
        (SplitPaymentResult(total_amount=100, commission=-1, seller_payout=101), "Commission cannot be negative"),
        (SplitPaymentResult(total_amount=100, commission=101, seller_payout=-1), "Seller payout cannot be negative"),
        (SplitPaymentResult(total_amount=100, commission=101, seller_payout=0), "Commission cannot exceed total amount"),
        (SplitPaymentResult(total_amount=100, commission=10, seller_payout=88), "do not add up"),
    ],
)
def test_validate_split_payment_rejects_inconsistent_splits(split, message):
    with pytest.raises(SplitPaymentError) as exc_info:
        validate_split_payment(split)
    assert message in str(exc_info.value)
