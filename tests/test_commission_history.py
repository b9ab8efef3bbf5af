from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import CommissionIntegrityError
from app.models.commission_history import CommissionHistoryStatus
from app.models.user import User
from app.services.commission_history_service import (
    create_commission_history,
    get_commission_history,
    get_seller_commission_summary,
    update_commission_status,
)
from app.services.seller_service import create_seller


def _seed_seller(db, *, email: str, shop_name: str) -> str:
    user = User(email=email, full_name=shop_name)
    db.add(user)
    db.flush()
    seller = create_seller(db, owner_user_id=user.id, shop_name=shop_name)
    db.commit()
    return seller.id


def _record(db, seller_id: str, order_id: str, *, total: int, commission: int, **kwargs):
    return create_commission_history(
        db,
        order_id=order_id,
        seller_id=seller_id,
        commission_rate="0.15",
        order_total=total,
        commission_amount=commission,
        seller_payout=total - commission,
        **kwargs,
    )


def test_create_commission_history_defaults_to_calculated(db_session):
    seller_id = _seed_seller(db_session, email="hist-a@example.com", shop_name="History A")

    record = _record(db_session, seller_id, "order-1", total=10000, commission=1500)
    db_session.commit()

    assert record.id
    assert record.status == CommissionHistoryStatus.CALCULATED.value
    assert record.commission_amount + record.seller_payout == record.order_total


def test_create_commission_history_rejects_amounts_that_do_not_add_up(db_session):
    seller_id = _seed_seller(db_session, email="hist-b@example.com", shop_name="History B")

    with pytest.raises(CommissionIntegrityError) as exc_info:
        create_commission_history(
            db_session,
            order_id="order-1",
            seller_id=seller_id,
            commission_rate=0.15,
            order_total=10000,
            commission_amount=1500,
            seller_payout=8000,
        )
    assert "must equal order_total (10000)" in str(exc_info.value)


def test_get_commission_history_filters_and_paginates_newest_first(db_session):
    seller_id = _seed_seller(db_session, email="hist-c@example.com", shop_name="History C")
    other_seller_id = _seed_seller(db_session, email="hist-d@example.com", shop_name="History D")

    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for index in range(5):
        record = _record(db_session, seller_id, f"order-{index}", total=1000, commission=150)
        record.created_at = base + timedelta(days=index)
    paid = _record(db_session, seller_id, "order-paid", total=2000, commission=300, status=CommissionHistoryStatus.PAID)
    paid.created_at = base + timedelta(days=10)
    _record(db_session, other_seller_id, "order-other", total=1000, commission=150)
    db_session.commit()

    page = get_commission_history(db_session, seller_id, skip=1, take=2)
    assert page.total_items == 6
    assert [item.order_id for item in page.items] == ["order-4", "order-3"]

    paid_page = get_commission_history(db_session, seller_id, status=CommissionHistoryStatus.PAID)
    assert paid_page.total_items == 1
    assert paid_page.items[0].order_id == "order-paid"

    by_order = get_commission_history(db_session, seller_id, order_id="order-2")
    assert [item.order_id for item in by_order.items] == ["order-2"]

    ranged = get_commission_history(
        db_session,
        seller_id,
        start_date=base + timedelta(days=1),
        end_date=base + timedelta(days=3),
    )
    assert ranged.total_items == 3
    assert {item.order_id for item in ranged.items} == {"order-1", "order-2", "order-3"}


def test_seller_commission_summary_counts_unique_orders_and_seeds_statuses(db_session):
    seller_id = _seed_seller(db_session, email="hist-e@example.com", shop_name="History E")

    _record(db_session, seller_id, "order-a", total=1000, commission=150)
    _record(db_session, seller_id, "order-a", total=2000, commission=300)
    _record(db_session, seller_id, "order-b", total=4000, commission=600, status=CommissionHistoryStatus.PAID)
    db_session.commit()

    summary = get_seller_commission_summary(db_session, seller_id)
    assert summary.seller_id == seller_id
    assert summary.total_commissions == 1050
    assert summary.total_payouts == 5950
    assert summary.total_orders == 2
    assert summary.commissions_by_status == {"CALCULATED": 450, "PAID": 600, "REFUNDED": 0}


def test_seller_commission_summary_for_seller_without_history(db_session):
    summary = get_seller_commission_summary(db_session, "missing-seller")
    assert summary.total_commissions == 0
    assert summary.total_orders == 0
    assert summary.commissions_by_status == {"CALCULATED": 0, "PAID": 0, "REFUNDED": 0}


def test_update_commission_status_scopes_to_order_and_seller(db_session):
    seller_id = _seed_seller(db_session, email="hist-f@example.com", shop_name="History F")
    other_seller_id = _seed_seller(db_session, email="hist-g@example.com", shop_name="History G")

    _record(db_session, seller_id, "order-x", total=1000, commission=150)
    _record(db_session, other_seller_id, "order-x", total=1000, commission=150)
    _record(db_session, seller_id, "order-y", total=1000, commission=150)
    db_session.commit()

    updated = update_commission_status(
        db_session,
        order_id="order-x",
        seller_id=seller_id,
        status=CommissionHistoryStatus.PAID,
    )
    db_session.commit()
    assert updated == 1

    refunded = update_commission_status(db_session, order_id="order-x", status=CommissionHistoryStatus.REFUNDED)
    db_session.commit()
    assert refunded == 2

    untouched = get_commission_history(db_session, seller_id, order_id="order-y")
    assert untouched.items[0].status == CommissionHistoryStatus.CALCULATED.value
