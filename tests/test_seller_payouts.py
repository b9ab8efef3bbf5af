import pytest

from app.core.errors import (
    DuplicatePayoutError,
    InvalidPayoutAmountError,
    NoPayoutsAvailableError,
    PayoutNotFoundError,
    PayoutThresholdNotMetError,
    PayoutTransitionError,
)
from app.models.commission_history import CommissionHistoryStatus
from app.models.payout import PayoutStatus, SellerPayout
from app.models.user import User
from app.services import seller_payout_service
from app.services.commission_history_service import create_commission_history, get_commission_history
from app.services.seller_payout_service import (
    approve_payout,
    can_release_payout,
    can_request_payout,
    create_payout,
    ensure_payout_transition_allowed,
    get_payout_by_id,
    get_payouts_by_status,
    get_payouts_for_seller,
    get_pending_payout_total,
    get_pending_payouts,
    get_total_payout_amount,
    has_payouts_for_order,
    mark_payout_processing,
    reject_payout,
    release_payout,
    request_payout,
    request_payout_with_threshold_check,
    update_payout_status,
)
from app.services.seller_service import create_seller


def _seed_seller(db, *, email: str, shop_name: str) -> str:
    user = User(email=email, full_name=shop_name)
    db.add(user)
    db.flush()
    seller = create_seller(db, owner_user_id=user.id, shop_name=shop_name)
    db.commit()
    return seller.id


def _payout(db, seller_id: str, order_id: str, amount: int = 8500, **kwargs) -> SellerPayout:
    payout = create_payout(
        db,
        seller_id=seller_id,
        order_id=order_id,
        amount=amount,
        commission=kwargs.pop("commission", 1500),
        **kwargs,
    )
    db.commit()
    return payout


def test_create_payout_starts_on_hold(db_session):
    seller_id = _seed_seller(db_session, email="payout-a@example.com", shop_name="Payout A")

    payout = _payout(db_session, seller_id, "order-1")

    assert payout.status == PayoutStatus.HOLD.value
    assert payout.released_at is None
    assert payout.completed_at is None
    assert has_payouts_for_order(db_session, "order-1") is True
    assert has_payouts_for_order(db_session, "order-2") is False


@pytest.mark.parametrize("amount", [0, -100])
def test_create_payout_rejects_non_positive_amounts(db_session, amount):
    seller_id = _seed_seller(db_session, email="payout-b@example.com", shop_name="Payout B")

    with pytest.raises(InvalidPayoutAmountError):
        create_payout(db_session, seller_id=seller_id, order_id="order-1", amount=amount, commission=0)


def test_create_payout_returns_existing_row_for_duplicate_order_and_seller(db_session):
    seller_id = _seed_seller(db_session, email="payout-c@example.com", shop_name="Payout C")

    first = _payout(db_session, seller_id, "order-dup")
    second = _payout(db_session, seller_id, "order-dup", amount=1)

    assert second.id == first.id
    assert second.amount == 8500
    assert db_session.query(SellerPayout).filter(SellerPayout.order_id == "order-dup").count() == 1

def test_create_payout_raises_when_duplicate_row_never_becomes_visible(db_session, monkeypatch):
    seller_id = _seed_seller(db_session, email="payout-e@example.com", shop_name="Payout E")
    _payout(db_session, seller_id, "order-dup")

    lookups = []
    sleeps = []

    def _missing_payout(db, *, seller_id, order_id):
        lookups.append((seller_id, order_id))
        return None

    monkeypatch.setattr(seller_payout_service, "_find_payout_for_order", _missing_payout)
    monkeypatch.setattr(seller_payout_service.time, "sleep", sleeps.append)

    with pytest.raises(DuplicatePayoutError, match="after 5 retries"):
        create_payout(db_session, seller_id=seller_id, order_id="order-dup", amount=1, commission=0)

    assert lookups == [(seller_id, "order-dup")] * 5
    assert sleeps == [0.01, 0.02, 0.04, 0.08]
    db_session.commit()
    assert db_session.query(SellerPayout).filter(SellerPayout.order_id == "order-dup").count() == 1


def test_status_transitions_follow_lifecycle(db_session):
    seller_id = _seed_seller(db_session, email="payout-d@example.com", shop_name="Payout D")
    payout = _payout(db_session, seller_id, "order-1")

    with pytest.raises(PayoutTransitionError):
        update_payout_status(db_session, payout.id, PayoutStatus.COMPLETED)
    with pytest.raises(PayoutTransitionError):
        update_payout_status(db_session, payout.id, PayoutStatus.FAILED, "nope")

    released = update_payout_status(db_session, payout.id, PayoutStatus.PENDING)
    assert released.status == PayoutStatus.PENDING.value
    first_release = released.released_at
    assert first_release is not None

    same = update_payout_status(db_session, payout.id, PayoutStatus.PENDING)
    assert same.released_at == first_release

    processing = update_payout_status(db_session, payout.id, PayoutStatus.PROCESSING)
    assert processing.status == PayoutStatus.PROCESSING.value

    completed = update_payout_status(db_session, payout.id, PayoutStatus.COMPLETED)
    db_session.commit()
    assert completed.completed_at is not None

    with pytest.raises(PayoutTransitionError):
        update_payout_status(db_session, payout.id, PayoutStatus.PENDING)


def test_failing_a_payout_requires_a_reason(db_session):
    seller_id = _seed_seller(db_session, email="payout-e@example.com", shop_name="Payout E")
    payout = _payout(db_session, seller_id, "order-1")
    release_payout(db_session, payout.id)

    with pytest.raises(PayoutTransitionError):
        update_payout_status(db_session, payout.id, PayoutStatus.FAILED, "   ")

    failed = update_payout_status(db_session, payout.id, PayoutStatus.FAILED, " Bank rejected ")
    assert failed.failure_reason == "Bank rejected"
    assert failed.status == PayoutStatus.FAILED.value


def test_transition_table_terminal_states():
    for terminal in (PayoutStatus.COMPLETED.value, PayoutStatus.FAILED.value):
        ensure_payout_transition_allowed(terminal, terminal)
        for target in PayoutStatus:
            if target.value != terminal:
                with pytest.raises(PayoutTransitionError):
                    ensure_payout_transition_allowed(terminal, target.value)


def test_update_unknown_payout_raises_not_found(db_session):
    with pytest.raises(PayoutNotFoundError) as exc_info:
        update_payout_status(db_session, "missing", PayoutStatus.PENDING)
    assert exc_info.value.status_code == 404
    assert get_payout_by_id(db_session, "missing") is None


def test_in_memory_payout_helpers(db_session):
    seller_id = _seed_seller(db_session, email="payout-f@example.com", shop_name="Payout F")
    other_id = _seed_seller(db_session, email="payout-g@example.com", shop_name="Payout G")
    held = _payout(db_session, seller_id, "order-1", amount=1000)
    pending = _payout(db_session, seller_id, "order-2", amount=2000)
    release_payout(db_session, pending.id)
    other = _payout(db_session, other_id, "order-3", amount=4000)
    db_session.commit()

    payouts = [held, pending, other]
    assert get_total_payout_amount(payouts, seller_id) == 3000
    assert get_payouts_by_status(payouts, PayoutStatus.HOLD) == [held, other]
    assert can_release_payout(held) is True
    assert can_release_payout(pending) is True

    mark_payout_processing(db_session, pending.id)
    assert can_release_payout(pending) is False

    assert {payout.id for payout in get_payouts_for_seller(db_session, seller_id)} == {held.id, pending.id}


def test_pending_total_counts_hold_and_pending_only(db_session):
    seller_id = _seed_seller(db_session, email="payout-h@example.com", shop_name="Payout H")
    _payout(db_session, seller_id, "order-1", amount=1000)
    pending = _payout(db_session, seller_id, "order-2", amount=2000)
    processing = _payout(db_session, seller_id, "order-3", amount=4000)
    release_payout(db_session, pending.id)
    release_payout(db_session, processing.id)
    mark_payout_processing(db_session, processing.id)
    db_session.commit()

    assert get_pending_payout_total(db_session, seller_id) == 3000
    assert can_request_payout(db_session, seller_id, 3000) is True
    assert can_request_payout(db_session, seller_id, 3001) is False
    assert get_pending_payout_total(db_session, "unknown-seller") == 0


def test_request_payout_releases_hold_payouts(db_session):
    seller_id = _seed_seller(db_session, email="payout-i@example.com", shop_name="Payout I")
    _payout(db_session, seller_id, "order-1", amount=1000)
    _payout(db_session, seller_id, "order-2", amount=2000)

    released = request_payout(db_session, seller_id)
    db_session.commit()

    assert len(released) == 2
    assert all(payout.status == PayoutStatus.PENDING.value for payout in released)
    assert all(payout.released_at is not None for payout in released)
    assert request_payout(db_session, seller_id) == []


def test_request_payout_with_threshold_check(db_session):
    seller_id = _seed_seller(db_session, email="payout-j@example.com", shop_name="Payout J")
    _payout(db_session, seller_id, "order-1", amount=1000)
    _payout(db_session, seller_id, "order-2", amount=2000)

    with pytest.raises(PayoutThresholdNotMetError):
        request_payout_with_threshold_check(db_session, seller_id, 5000)

    released = request_payout_with_threshold_check(db_session, seller_id, 3000)
    db_session.commit()
    assert sum(payout.amount for payout in released) == 3000

    with pytest.raises(NoPayoutsAvailableError):
        request_payout_with_threshold_check(db_session, seller_id, 0)
    with pytest.raises(PayoutThresholdNotMetError):
        request_payout_with_threshold_check(db_session, seller_id, 1)


def test_get_pending_payouts_lists_reviewable_payouts(db_session):
    seller_id = _seed_seller(db_session, email="payout-k@example.com", shop_name="Payout K")
    _payout(db_session, seller_id, "order-1")
    pending = _payout(db_session, seller_id, "order-2")
    processing = _payout(db_session, seller_id, "order-3")
    release_payout(db_session, pending.id)
    release_payout(db_session, processing.id)
    mark_payout_processing(db_session, processing.id)
    db_session.commit()

    assert {payout.id for payout in get_pending_payouts(db_session)} == {pending.id, processing.id}


def test_approve_payout_marks_commission_history_paid(db_session):
    seller_id = _seed_seller(db_session, email="payout-l@example.com", shop_name="Payout L")
    other_id = _seed_seller(db_session, email="payout-m@example.com", shop_name="Payout M")
    payout = _payout(db_session, seller_id, "order-1")
    for owner in (seller_id, other_id):
        create_commission_history(
            db_session,
            order_id="order-1",
            seller_id=owner,
            commission_rate=0.15,
            order_total=10000,
            commission_amount=1500,
            seller_payout=8500,
        )
    db_session.commit()

    with pytest.raises(PayoutTransitionError):
        approve_payout(db_session, payout.id)

    release_payout(db_session, payout.id)
    approved = approve_payout(db_session, payout.id)
    db_session.commit()

    assert approved.status == PayoutStatus.COMPLETED.value
    assert approved.completed_at is not None
    own = get_commission_history(db_session, seller_id, order_id="order-1").items
    other = get_commission_history(db_session, other_id, order_id="order-1").items
    assert own[0].status == CommissionHistoryStatus.PAID.value
    assert other[0].status == CommissionHistoryStatus.CALCULATED.value


def test_reject_payout_requires_reason_and_reviewable_status(db_session):
    seller_id = _seed_seller(db_session, email="payout-n@example.com", shop_name="Payout N")
    payout = _payout(db_session, seller_id, "order-1")

    with pytest.raises(PayoutTransitionError):
        reject_payout(db_session, payout.id, "Fraud check")

    release_payout(db_session, payout.id)
    with pytest.raises(PayoutTransitionError):
        reject_payout(db_session, payout.id, "  ")

    rejected = reject_payout(db_session, payout.id, "  Fraud check  ")
    db_session.commit()
    assert rejected.status == PayoutStatus.FAILED.value
    assert rejected.failure_reason == "Fraud check"


def test_mark_payout_processing_requires_pending(db_session):
    seller_id = _seed_seller(db_session, email="payout-o@example.com", shop_name="Payout O")
    payout = _payout(db_session, seller_id, "order-1")

    with pytest.raises(PayoutTransitionError):
        mark_payout_processing(db_session, payout.id)

    release_payout(db_session, payout.id)
    assert mark_payout_processing(db_session, payout.id).status == PayoutStatus.PROCESSING.value
    with pytest.raises(PayoutTransitionError):
        mark_payout_processing(db_session, payout.id)
