import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import DuplicatePayoutError, SettlementError
from app.core.observability import log_event
from app.models.commission_history import CommissionHistoryStatus
from app.models.order import Order, OrderItem
from app.models.payout import PayoutStatus, SellerPayout
from app.models.product import Product, ProductVariant
from app.models.seller import MarketplaceSeller
from app.services.commission_history_service import create_commission_history, update_commission_status
from app.services.commission_service import get_default_commission_rate
from app.services.seller_payout_service import create_payout, has_payouts_for_order
from app.services.split_payment_service import (
    OrderForSplitPayment,
    OrderLineForSplitPayment,
    OrderSplitPaymentResult,
    calculate_split_payment_for_order_with_rates,
)

REFUND_FAILURE_REASON = "Order refunded"
TERMINAL_PAYOUT_STATUSES = {PayoutStatus.COMPLETED.value, PayoutStatus.FAILED.value}


def _seller_lines(db: Session, order: Order) -> list[OrderLineForSplitPayment]:
    rows = db.execute(
        select(OrderItem.id, OrderItem.line_total, Product.seller_id)
        .join(ProductVariant, ProductVariant.id == OrderItem.variant_id)
        .join(Product, Product.id == ProductVariant.product_id)
        .where(OrderItem.order_id == order.id, Product.seller_id.is_not(None))
        .order_by(OrderItem.position.asc(), OrderItem.id.asc())
    ).all()
    return [
        OrderLineForSplitPayment(id=item_id, line_price=line_total, seller_id=seller_id)
        for item_id, line_total, seller_id in rows
    ]


def _seller_rates(db: Session, seller_ids: set[str]) -> dict:
    rows = db.execute(
        select(MarketplaceSeller.id, MarketplaceSeller.commission_rate).where(
            MarketplaceSeller.id.in_(seller_ids)
        )
    ).all()
    return {seller_id: rate for seller_id, rate in rows if rate is not None}


def process_order_payment(db: Session, order: Order) -> OrderSplitPaymentResult | None:
    """Split a paid order between its sellers and open a HOLD payout for each."""
    lines = _seller_lines(db, order)
    if not lines:
        return None

    split_result = calculate_split_payment_for_order_with_rates(
        OrderForSplitPayment(id=order.id, total=order.total, lines=lines),
        _seller_rates(db, {line.seller_id for line in lines}),
        get_default_commission_rate(db),
    )

    for split in split_result.seller_splits:
        if split.amount <= 0:
            log_event(
                "payout.skipped_zero_amount",
                order_id=order.id,
                seller_id=split.seller_id,
                line_total=split.line_total,
            )
            continue
        create_payout(
            db,
            seller_id=split.seller_id,
            order_id=order.id,
            amount=split.amount,
            commission=split.commission,
            status=PayoutStatus.HOLD,
        )
    return split_result


def process_order_payment_atomically(db: Session, order: Order) -> OrderSplitPaymentResult | None:
    if has_payouts_for_order(db, order.id):
        return None
    try:
        return process_order_payment(db, order)
    except DuplicatePayoutError:
        log_event("order.payment.duplicate", order_id=order.id)
        return None


def record_order_settlement(db: Session, order: Order) -> OrderSplitPaymentResult | None:
    """Settle a newly paid order. Failures are logged and never raised."""
    try:
        with db.begin_nested():
            result = process_order_payment_atomically(db, order)
            if result is None:
                return None
            for split in result.seller_splits:
                create_commission_history(
                    db,
                    order_id=order.id,
                    seller_id=split.seller_id,
                    commission_rate=split.commission_rate,
                    order_total=split.line_total,
                    commission_amount=split.commission,
                    seller_payout=split.amount,
                    status=CommissionHistoryStatus.CALCULATED,
                )
    except (SettlementError, SQLAlchemyError) as exc:
        log_event(
            "order.settlement.failed",
            level=logging.ERROR,
            order_id=order.id,
            error=str(exc),
        )
        return None

    log_event(
        "order.settlement.recorded",
        order_id=order.id,
        sellers=len(result.seller_splits),
        commission=result.commission,
        seller_payout=result.seller_payout,
    )
    return result


def refund_order_settlement(db: Session, order: Order) -> int:
    """Reverse the settlement of a refunded order; returns how many payouts were failed."""
    payouts = db.execute(
        select(SellerPayout).where(
            SellerPayout.order_id == str(order.id),
            SellerPayout.status.not_in(sorted(TERMINAL_PAYOUT_STATUSES)),
        )
    ).scalars().all()

    now = datetime.now(timezone.utc)
    for payout in payouts:
        if payout.status == PayoutStatus.HOLD.value:
            payout.released_at = now
        payout.status = PayoutStatus.FAILED.value
        payout.failure_reason = REFUND_FAILURE_REASON

    refunded_records = update_commission_status(
        db,
        order_id=order.id,
        status=CommissionHistoryStatus.REFUNDED,
    )
    db.flush()
    log_event(
        "order.settlement.refunded",
        order_id=order.id,
        payouts_failed=len(payouts),
        commission_records=refunded_records,
    )
    return len(payouts)
