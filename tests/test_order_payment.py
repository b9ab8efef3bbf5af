from decimal import Decimal

from sqlalchemy import select

from app.models.commission_history import CommissionHistory
from app.models.order import Order, OrderItem
from app.models.payout import PayoutStatus, SellerPayout
from app.models.product import Product, ProductVariant
from app.models.seller import MarketplaceSeller
from app.models.user import User
from app.services import order_payment_service, seller_payout_service
from app.services.order_payment_service import (
    REFUND_FAILURE_REASON,
    process_order_payment,
    process_order_payment_atomically,
    record_order_settlement,
    refund_order_settlement,
)
from app.services.order_splitting_service import get_default_channel
from app.services.seller_payout_service import create_payout, release_payout
from app.services.seller_service import create_seller


def _seed_order(db, *, seller_rates: dict[str, Decimal | None], lines: list[tuple[str | None, int]]) -> Order:
    default_channel = get_default_channel(db)
    sellers = {}
    for name, rate in seller_rates.items():
        owner = User(email=f"{name}@example.com", full_name=name)
        db.add(owner)
        db.flush()
        sellers[name] = create_seller(db, owner_user_id=owner.id, shop_name=f"{name} shop", commission_rate=rate)

    items = []
    for position, (seller_name, line_total) in enumerate(lines):
        seller = sellers.get(seller_name)
        product = Product(name=f"product-{position}", seller_id=seller.id if seller else None)
        db.add(product)
        db.flush()
        variant = ProductVariant(product_id=product.id, sku=f"SKU-{position}", price=line_total)
        db.add(variant)
        db.flush()
        items.append(
            OrderItem(
                id=f"item-{position}",
                variant_id=variant.id,
                seller_channel_id=seller.channel_id if seller else default_channel.id,
                position=position,
                qty=1,
                unit_price=line_total,
                line_total=line_total,
            )
        )

    order = Order(
        id="order-1",
        code="ORD1",
        channel_id=default_channel.id,
        status="paid",
        subtotal=sum(line_total for _, line_total in lines),
        total=sum(line_total for _, line_total in lines),
        items=items,
    )
    db.add(order)
    db.commit()
    return order


def _payouts(db) -> list[SellerPayout]:
    return db.execute(select(SellerPayout).order_by(SellerPayout.amount.desc())).scalars().all()


def test_process_order_payment_ignores_house_lines(db_session):
    order = _seed_order(db_session, seller_rates={"alpha": None}, lines=[(None, 4000), ("alpha", 10000)])

    result = process_order_payment(db_session, order)
    db_session.commit()

    assert [split.seller_id for split in result.seller_splits] == [_payouts(db_session)[0].seller_id]
    assert (result.commission, result.seller_payout) == (1500, 8500)
    payout = _payouts(db_session)[0]
    assert (payout.amount, payout.commission, payout.status) == (8500, 1500, PayoutStatus.HOLD.value)


def test_process_order_payment_without_seller_lines_returns_none(db_session):
    order = _seed_order(db_session, seller_rates={}, lines=[(None, 4000)])

    assert process_order_payment(db_session, order) is None
    assert _payouts(db_session) == []


def test_full_commission_split_skips_zero_payout(db_session):
    order = _seed_order(
        db_session,
        seller_rates={"alpha": Decimal("1"), "beta": Decimal("0.1")},
        lines=[("alpha", 5000), ("beta", 5000)],
    )

    result = process_order_payment(db_session, order)
    db_session.commit()

    assert len(result.seller_splits) == 2
    payouts = _payouts(db_session)
    assert [(payout.amount, payout.commission) for payout in payouts] == [(4500, 500)]


def test_processing_twice_creates_payouts_once(db_session):
    order = _seed_order(db_session, seller_rates={"alpha": None}, lines=[("alpha", 10000)])

    assert process_order_payment_atomically(db_session, order) is not None
    db_session.commit()
    assert process_order_payment_atomically(db_session, order) is None
    assert len(_payouts(db_session)) == 1


def test_atomic_processing_returns_none_when_duplicate_payout_cannot_be_resolved(db_session, monkeypatch):
    order = _seed_order(db_session, seller_rates={"alpha": None}, lines=[("alpha", 10000)])
    seller_id = db_session.execute(select(MarketplaceSeller.id)).scalar_one()
    create_payout(db_session, seller_id=seller_id, order_id=order.id, amount=8500, commission=1500)
    db_session.commit()

    monkeypatch.setattr(order_payment_service, "has_payouts_for_order", lambda db, order_id: False)
    monkeypatch.setattr(seller_payout_service, "_find_payout_for_order", lambda db, **kwargs: None)
    monkeypatch.setattr(seller_payout_service.time, "sleep", lambda seconds: None)

    assert process_order_payment_atomically(db_session, order) is None
    db_session.commit()
    assert len(_payouts(db_session)) == 1


def test_record_order_settlement_writes_history_per_seller(db_session):
    order = _seed_order(
        db_session,
        seller_rates={"alpha": None, "beta": Decimal("0.05")},
        lines=[("alpha", 6000), ("beta", 2000), ("alpha", 4000)],
    )

    result = record_order_settlement(db_session, order)
    db_session.commit()

    assert result.commission == 1600
    rows = db_session.execute(
        select(CommissionHistory).order_by(CommissionHistory.order_total.desc())
    ).scalars().all()
    assert [(row.order_total, row.commission_amount, row.seller_payout) for row in rows] == [
        (10000, 1500, 8500),
        (2000, 100, 1900),
    ]
    assert rows[1].commission_rate == Decimal("0.05")
    assert record_order_settlement(db_session, order) is None


def test_refund_fails_open_payouts_and_refunds_history(db_session):
    order = _seed_order(
        db_session,
        seller_rates={"alpha": None, "beta": None},
        lines=[("alpha", 10000), ("beta", 2000)],
    )
    record_order_settlement(db_session, order)
    db_session.commit()
    pending = _payouts(db_session)[0]
    release_payout(db_session, pending.id)
    db_session.commit()

    assert refund_order_settlement(db_session, order) == 2
    db_session.commit()

    for payout in _payouts(db_session):
        assert payout.status == PayoutStatus.FAILED.value
        assert payout.failure_reason == REFUND_FAILURE_REASON
        assert payout.released_at is not None
    statuses = db_session.execute(select(CommissionHistory.status)).scalars().all()
    assert set(statuses) == {"REFUNDED"}

    assert refund_order_settlement(db_session, order) == 0
