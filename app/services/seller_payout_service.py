import time
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    DuplicatePayoutError,
    InvalidPayoutAmountError,
    NoPayoutsAvailableError,
    PayoutNotFoundError,
    PayoutThresholdNotMetError,
    PayoutTransitionError,
)
from app.core.observability import log_event
from app.models.commission_history import CommissionHistoryStatus
from app.models.payout import PayoutStatus, SellerPayout
from app.services.commission_history_service import update_commission_status

ALLOWED_PAYOUT_TRANSITIONS: dict[str, set[str]] = {
    PayoutStatus.HOLD.value: {PayoutStatus.PENDING.value},
    PayoutStatus.PENDING.value: {
        PayoutStatus.PROCESSING.value,
        PayoutStatus.COMPLETED.value,
        PayoutStatus.FAILED.value,
    },
    PayoutStatus.PROCESSING.value: {PayoutStatus.COMPLETED.value, PayoutStatus.FAILED.value},
    PayoutStatus.COMPLETED.value: set(),
    PayoutStatus.FAILED.value: set(),
}
REVIEWABLE_PAYOUT_STATUSES = {PayoutStatus.PENDING.value, PayoutStatus.PROCESSING.value}

DUPLICATE_LOOKUP_MAX_RETRIES = 5
DUPLICATE_LOOKUP_INITIAL_DELAY_SECONDS = 0.01


def _now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_payout_transition_allowed(current_status: str, next_status: str) -> None:
    if current_status == next_status:
        return
    allowed_next = ALLOWED_PAYOUT_TRANSITIONS.get(current_status, set())
    if next_status not in allowed_next:
        raise PayoutTransitionError(
            f"Cannot transition payout from '{current_status}' to '{next_status}'"
        )


def _find_payout_for_order(db: Session, *, seller_id: str, order_id: str) -> SellerPayout | None:
    return db.execute(
        select(SellerPayout).where(
            SellerPayout.order_id == str(order_id),
            SellerPayout.seller_id == seller_id,
        )
    ).scalar_one_or_none()


def create_payout(
    db: Session,
    *,
    seller_id: str,
    order_id: str,
    amount: int,
    commission: int,
    status: PayoutStatus = PayoutStatus.HOLD,
    failure_reason: str | None = None,
) -> SellerPayout:
    """Create the payout owed to ``seller_id`` for ``order_id``.

    A concurrent insert for the same (order, seller) pair is not an error: the
    existing row is looked up (with exponential backoff, since it may not be
    visible yet) and returned instead.
    """
    if amount <= 0:
        raise InvalidPayoutAmountError("Payout amount must be greater than zero")

    payout = SellerPayout(
        seller_id=seller_id,
        order_id=str(order_id),
        amount=amount,
        commission=commission,
        status=PayoutStatus(status).value,
        failure_reason=failure_reason,
    )
    try:
        with db.begin_nested():
            db.add(payout)
            db.flush()
        return payout
    except IntegrityError as exc:
        for attempt in range(DUPLICATE_LOOKUP_MAX_RETRIES):
            existing = _find_payout_for_order(db, seller_id=seller_id, order_id=order_id)
            if existing is not None:
                log_event(
                    "payout.duplicate_ignored",
                    payout_id=existing.id,
                    seller_id=seller_id,
                    order_id=str(order_id),
                )
                return existing
            if attempt < DUPLICATE_LOOKUP_MAX_RETRIES - 1:
                time.sleep(DUPLICATE_LOOKUP_INITIAL_DELAY_SECONDS * (2**attempt))

        raise DuplicatePayoutError(
            f"Duplicate payout detected but existing record not found after "
            f"{DUPLICATE_LOOKUP_MAX_RETRIES} retries. Original error: {exc.orig}"
        ) from exc


def get_payout_by_id(db: Session, payout_id: str) -> SellerPayout | None:
    return db.get(SellerPayout, payout_id)


def _require_payout(db: Session, payout_id: str) -> SellerPayout:
    payout = get_payout_by_id(db, payout_id)
    if payout is None:
        raise PayoutNotFoundError(f"Payout with ID {payout_id} not found")
    return payout


def update_payout_status(
    db: Session,
    payout_id: str,
    status: PayoutStatus,
    failure_reason: str | None = None,
) -> SellerPayout:
    payout = _require_payout(db, payout_id)
    next_status = PayoutStatus(status).value
    original_status = payout.status
    ensure_payout_transition_allowed(original_status, next_status)
    if original_status == next_status:
        return payout

    if next_status == PayoutStatus.FAILED.value:
        reason = (failure_reason or "").strip()
        if not reason:
            raise PayoutTransitionError("A failure reason is required to fail a payout")
        payout.failure_reason = reason

    now = _now()
    payout.status = next_status
    if next_status == PayoutStatus.COMPLETED.value:
        payout.completed_at = now
    if next_status == PayoutStatus.PENDING.value and (
        original_status == PayoutStatus.HOLD.value or payout.released_at is None
    ):
        payout.released_at = now

    db.flush()
    log_event(
        "payout.status.update",
        payout_id=payout.id,
        seller_id=payout.seller_id,
        from_status=original_status,
        to_status=next_status,
    )
    return payout


def get_payouts_for_seller(db: Session, seller_id: str) -> list[SellerPayout]:
    return list(
        db.execute(
            select(SellerPayout)
            .where(SellerPayout.seller_id == seller_id)
            .order_by(SellerPayout.created_at.desc(), SellerPayout.id.desc())
        ).scalars().all()
    )


def get_total_payout_amount(payouts: Iterable[SellerPayout], seller_id: str) -> int:
    return sum(payout.amount for payout in payouts if str(payout.seller_id) == str(seller_id))


def get_payouts_by_status(payouts: Iterable[SellerPayout], status: PayoutStatus) -> list[SellerPayout]:
    wanted = PayoutStatus(status).value
    return [payout for payout in payouts if payout.status == wanted]


def can_release_payout(payout: SellerPayout) -> bool:
    return payout.status in {PayoutStatus.HOLD.value, PayoutStatus.PENDING.value}


def release_payout(db: Session, payout_id: str) -> SellerPayout:
    return update_payout_status(db, payout_id, PayoutStatus.PENDING)


def get_pending_payout_total(db: Session, seller_id: str) -> int:
    total = db.execute(
        select(func.coalesce(func.sum(SellerPayout.amount), 0)).where(
            SellerPayout.seller_id == seller_id,
            SellerPayout.status.in_([PayoutStatus.PENDING.value, PayoutStatus.HOLD.value]),
        )
    ).scalar_one()
    return int(total)


def can_request_payout(db: Session, seller_id: str, minimum_threshold: int) -> bool:
    return get_pending_payout_total(db, seller_id) >= minimum_threshold


def has_payouts_for_order(db: Session, order_id: str) -> bool:
    count = db.execute(
        select(func.count(SellerPayout.id)).where(SellerPayout.order_id == str(order_id))
    ).scalar_one()
    return int(count) > 0


def _hold_payouts_for_seller(db: Session, seller_id: str) -> list[SellerPayout]:
    return list(
        db.execute(
            select(SellerPayout).where(
                SellerPayout.seller_id == seller_id,
                SellerPayout.status == PayoutStatus.HOLD.value,
            )
        ).scalars().all()
    )


def _release_all(db: Session, payouts: list[SellerPayout]) -> list[SellerPayout]:
    now = _now()
    for payout in payouts:
        payout.status = PayoutStatus.PENDING.value
        payout.released_at = now
    if payouts:
        db.flush()
    return payouts


def request_payout(db: Session, seller_id: str) -> list[SellerPayout]:
    """Move every HOLD payout of the seller to PENDING."""
    return _release_all(db, _hold_payouts_for_seller(db, seller_id))


def request_payout_with_threshold_check(
    db: Session,
    seller_id: str,
    minimum_threshold: int,
) -> list[SellerPayout]:
    # The threshold is checked against exactly the rows that will be released.
    hold_payouts = _hold_payouts_for_seller(db, seller_id)
    hold_total = sum(payout.amount for payout in hold_payouts)
    if hold_total < minimum_threshold:
        raise PayoutThresholdNotMetError("Minimum payout threshold not met")
    if not hold_payouts:
        raise NoPayoutsAvailableError("No payouts available to request")
    return _release_all(db, hold_payouts)


def get_pending_payouts(db: Session) -> list[SellerPayout]:
    return list(
        db.execute(
            select(SellerPayout)
            .where(SellerPayout.status.in_(sorted(REVIEWABLE_PAYOUT_STATUSES)))
            .order_by(SellerPayout.created_at.desc(), SellerPayout.id.desc())
        ).scalars().all()
    )


def _require_reviewable(payout: SellerPayout, verb: str) -> None:
    if payout.status not in REVIEWABLE_PAYOUT_STATUSES:
        raise PayoutTransitionError(f"Only PENDING or PROCESSING payouts can be {verb}")


def approve_payout(db: Session, payout_id: str) -> SellerPayout:
    payout = _require_payout(db, payout_id)
    _require_reviewable(payout, "approved")
    payout = update_payout_status(db, payout_id, PayoutStatus.COMPLETED)
    update_commission_status(
        db,
        order_id=payout.order_id,
        seller_id=payout.seller_id,
        status=CommissionHistoryStatus.PAID,
    )
    return payout


def reject_payout(db: Session, payout_id: str, reason: str) -> SellerPayout:
    if not reason or not reason.strip():
        raise PayoutTransitionError("Rejection reason is required")
    payout = _require_payout(db, payout_id)
    _require_reviewable(payout, "rejected")
    return update_payout_status(db, payout_id, PayoutStatus.FAILED, reason.strip())


def mark_payout_processing(db: Session, payout_id: str) -> SellerPayout:
    payout = _require_payout(db, payout_id)
    if payout.status != PayoutStatus.PENDING.value:
        raise PayoutTransitionError("Only PENDING payouts can be moved to PROCESSING")
    return update_payout_status(db, payout_id, PayoutStatus.PROCESSING)
