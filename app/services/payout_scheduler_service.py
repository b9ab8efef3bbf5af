from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.core.observability import log_event
from app.models.payout import PayoutStatus, SellerPayout
from app.services.marketplace_settings_service import get_or_create_marketplace_settings

PAYOUT_FREQUENCY_DAYS = {"weekly": 7, "monthly": 30}


@dataclass(frozen=True)
class ScheduledPayoutResult:
    total_processed: int
    sellers_affected: int
    total_amount: int


@dataclass(frozen=True)
class ScheduledPayoutStats:
    count: int
    total_amount: int
    sellers_affected: int


@dataclass(frozen=True)
class ScheduledPayoutRun:
    ran: bool
    frequency: str
    last_run: datetime | None
    result: ScheduledPayoutResult | None = None
    skipped_reason: str | None = None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_scheduled_payout_stats(db: Session) -> ScheduledPayoutStats:
    count, total_amount, sellers_affected = db.execute(
        select(
            func.count(SellerPayout.id),
            func.coalesce(func.sum(SellerPayout.amount), 0),
            func.count(func.distinct(SellerPayout.seller_id)),
        ).where(SellerPayout.status == PayoutStatus.HOLD.value)
    ).one()
    return ScheduledPayoutStats(
        count=int(count),
        total_amount=int(total_amount),
        sellers_affected=int(sellers_affected),
    )


def process_scheduled_payouts(db: Session, now: datetime | None = None) -> ScheduledPayoutResult:
    """Release every HOLD payout to PENDING in one statement."""
    now = now or datetime.now(timezone.utc)
    stats = get_scheduled_payout_stats(db)
    if stats.count == 0:
        return ScheduledPayoutResult(total_processed=0, sellers_affected=0, total_amount=0)

    result = db.execute(
        update(SellerPayout)
        .where(SellerPayout.status == PayoutStatus.HOLD.value)
        .values(status=PayoutStatus.PENDING.value, released_at=now)
        .execution_options(synchronize_session="fetch")
    )
    processed = ScheduledPayoutResult(
        total_processed=int(result.rowcount or 0),
        sellers_affected=stats.sellers_affected,
        total_amount=stats.total_amount,
    )
    log_event(
        "payout.scheduled_release",
        total_processed=processed.total_processed,
        sellers_affected=processed.sellers_affected,
        total_amount=processed.total_amount,
    )
    return processed


def run_scheduled_payouts(db: Session, now: datetime | None = None) -> ScheduledPayoutRun:
    now = _as_utc(now or datetime.now(timezone.utc))
    marketplace = get_or_create_marketplace_settings(db)
    frequency = marketplace.payout_schedule_frequency
    required_days = PAYOUT_FREQUENCY_DAYS.get(frequency, PAYOUT_FREQUENCY_DAYS["weekly"])
    last_run = marketplace.payout_scheduler_last_run

    if last_run is not None:
        elapsed_days = (now - _as_utc(last_run)).days
        if elapsed_days < required_days:
            reason = (
                f"Last run {elapsed_days} day(s) ago; {frequency} schedule "
                f"requires {required_days} day(s)"
            )
            log_event("payout.scheduler.skipped", frequency=frequency, reason=reason)
            return ScheduledPayoutRun(
                ran=False,
                frequency=frequency,
                last_run=last_run,
                skipped_reason=reason,
            )

    result = process_scheduled_payouts(db, now)
    marketplace.payout_scheduler_last_run = now
    db.flush()
    return ScheduledPayoutRun(ran=True, frequency=frequency, last_run=now, result=result)
