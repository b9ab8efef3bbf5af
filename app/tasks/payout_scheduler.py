"""Daily APScheduler job that releases escrowed payouts on the configured schedule."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import SettlementError
from app.core.observability import log_event
from app.db.session import SessionLocal
from app.services.audit_service import log_audit_event
from app.services.payout_scheduler_service import ScheduledPayoutRun, run_scheduled_payouts

PAYOUT_JOB_ID = "scheduled_payout_release"


def run_payout_job(
    session_factory: Callable[[], Session] = SessionLocal,
    now: datetime | None = None,
) -> ScheduledPayoutRun | None:
    db = session_factory()
    try:
        run = run_scheduled_payouts(db, now or datetime.now(timezone.utc))
        if run.ran and run.result is not None:
            log_audit_event(
                db,
                actor_user_id=None,
                action="payout.scheduled_release",
                target_type="seller_payout",
                metadata_json={
                    "frequency": run.frequency,
                    "total_processed": run.result.total_processed,
                    "sellers_affected": run.result.sellers_affected,
                    "total_amount": run.result.total_amount,
                },
            )
        db.commit()
        return run
    except (SettlementError, SQLAlchemyError) as exc:
        db.rollback()
        log_event("payout.scheduler.failed", level=logging.ERROR, error=str(exc))
        return None
    finally:
        db.close()


class PayoutScheduler:
    def __init__(
        self,
        *,
        hour: int = settings.payout_scheduler_hour,
        enabled: bool = settings.payout_scheduler_enabled,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.hour = hour
        self.enabled = enabled
        self.session_factory = session_factory
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if not self.enabled:
            log_event("payout.scheduler.disabled")
            return
        if self.running:
            return

        scheduler = BackgroundScheduler(timezone="UTC")
        scheduler.add_job(
            run_payout_job,
            CronTrigger(hour=self.hour, minute=0, timezone="UTC"),
            kwargs={"session_factory": self.session_factory},
            id=PAYOUT_JOB_ID,
            name="Scheduled payout release",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        scheduler.start()
        self._scheduler = scheduler
        log_event("payout.scheduler.started", hour=self.hour)

    def stop(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            log_event("payout.scheduler.stopped")
        self._scheduler = None
