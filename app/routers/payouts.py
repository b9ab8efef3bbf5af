from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.api_docs import error_responses
from app.core.deps import get_db
from app.core.permissions import require_platform_admin
from app.core.security_current import get_current_seller
from app.models.payout import PayoutStatus, SellerPayout
from app.models.seller import MarketplaceSeller
from app.models.user import User
from app.schemas.common import PaginationMeta
from app.schemas.payout import (
    PayoutListOut,
    PayoutOut,
    PayoutRejectIn,
    PayoutRequestOut,
    PayoutStatusValue,
    ScheduledPayoutRunOut,
    ScheduledPayoutStatsOut,
    SellerPayoutSummaryOut,
)
from app.services.audit_service import log_audit_event
from app.services.marketplace_settings_service import get_payout_minimum_threshold
from app.services.payout_scheduler_service import get_scheduled_payout_stats, run_scheduled_payouts
from app.services.seller_payout_service import (
    approve_payout,
    can_request_payout,
    get_payouts_by_status,
    get_payouts_for_seller,
    get_pending_payout_total,
    get_pending_payouts,
    mark_payout_processing,
    reject_payout,
    request_payout_with_threshold_check,
)

router = APIRouter(prefix="/payouts", tags=["payouts"])
admin_router = APIRouter(prefix="/admin/payouts", tags=["admin payouts"])


@router.get(
    "",
    response_model=PayoutListOut,
    summary="List my payouts",
    responses=error_responses(401, 403, 404, 422, 500),
)
def list_my_payouts(
    status: PayoutStatusValue | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    seller: MarketplaceSeller = Depends(get_current_seller),
):
    count_stmt = select(func.count(SellerPayout.id)).where(SellerPayout.seller_id == seller.id)
    data_stmt = select(SellerPayout).where(SellerPayout.seller_id == seller.id)
    if status:
        count_stmt = count_stmt.where(SellerPayout.status == status)
        data_stmt = data_stmt.where(SellerPayout.status == status)

    total = int(db.execute(count_stmt).scalar_one())
    rows = db.execute(
        data_stmt.order_by(SellerPayout.created_at.desc(), SellerPayout.id.desc()).offset(offset).limit(limit)
    ).scalars().all()
    items = [PayoutOut.model_validate(row) for row in rows]
    count = len(items)
    return PayoutListOut(
        pagination=PaginationMeta(
            total=total,
            limit=limit,
            offset=offset,
            count=count,
            has_next=(offset + count) < total,
        ),
        status=status,
        items=items,
    )


@router.get(
    "/summary",
    response_model=SellerPayoutSummaryOut,
    summary="Payout balance summary",
    responses=error_responses(401, 403, 404, 500),
)
def my_payout_summary(
    db: Session = Depends(get_db),
    seller: MarketplaceSeller = Depends(get_current_seller),
):
    payouts = get_payouts_for_seller(db, seller.id)
    pending_total = get_pending_payout_total(db, seller.id)
    minimum_threshold = get_payout_minimum_threshold(db)
    return SellerPayoutSummaryOut(
        seller_id=seller.id,
        pending_total=pending_total,
        minimum_threshold=minimum_threshold,
        can_request_payout=can_request_payout(db, seller.id, minimum_threshold),
        totals_by_status={
            status.value: sum(payout.amount for payout in get_payouts_by_status(payouts, status))
            for status in PayoutStatus
        },
    )


@router.post(
    "/request",
    response_model=PayoutRequestOut,
    summary="Request release of held payouts",
    responses=error_responses(400, 401, 403, 404, 500),
)
def request_my_payout(
    db: Session = Depends(get_db),
    seller: MarketplaceSeller = Depends(get_current_seller),
):
    minimum_threshold = get_payout_minimum_threshold(db)
    released = request_payout_with_threshold_check(db, seller.id, minimum_threshold)
    released_total = sum(payout.amount for payout in released)
    log_audit_event(
        db,
        actor_user_id=seller.owner_user_id,
        action="payout.request",
        target_type="marketplace_seller",
        target_id=seller.id,
        metadata_json={
            "payout_ids": [payout.id for payout in released],
            "released_total": released_total,
            "minimum_threshold": minimum_threshold,
        },
    )
    db.commit()
    for payout in released:
        db.refresh(payout)
    return PayoutRequestOut(
        seller_id=seller.id,
        released_count=len(released),
        released_total=released_total,
        items=[PayoutOut.model_validate(payout) for payout in released],
    )


@admin_router.get(
    "/pending",
    response_model=list[PayoutOut],
    summary="List payouts awaiting review",
    responses=error_responses(401, 403, 500),
)
def list_pending_payouts(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_platform_admin),
):
    return [PayoutOut.model_validate(payout) for payout in get_pending_payouts(db)]


def _audit_review(db: Session, *, admin: User, payout: SellerPayout, action: str, **extra) -> None:
    log_audit_event(
        db,
        actor_user_id=admin.id,
        action=action,
        target_type="seller_payout",
        target_id=payout.id,
        metadata_json={
            "seller_id": payout.seller_id,
            "order_id": payout.order_id,
            "amount": payout.amount,
            "to_status": payout.status,
            **extra,
        },
    )


@admin_router.post(
    "/{payout_id}/approve",
    response_model=PayoutOut,
    summary="Approve payout",
    responses=error_responses(401, 403, 404, 409, 500),
)
def approve(
    payout_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    payout = approve_payout(db, payout_id)
    _audit_review(db, admin=admin, payout=payout, action="payout.approve")
    db.commit()
    db.refresh(payout)
    return PayoutOut.model_validate(payout)


@admin_router.post(
    "/{payout_id}/reject",
    response_model=PayoutOut,
    summary="Reject payout",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def reject(
    payout_id: str,
    payload: PayoutRejectIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    payout = reject_payout(db, payout_id, payload.reason)
    _audit_review(db, admin=admin, payout=payout, action="payout.reject", reason=payout.failure_reason)
    db.commit()
    db.refresh(payout)
    return PayoutOut.model_validate(payout)


@admin_router.post(
    "/{payout_id}/processing",
    response_model=PayoutOut,
    summary="Mark payout as processing",
    responses=error_responses(401, 403, 404, 409, 500),
)
def mark_processing(
    payout_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    payout = mark_payout_processing(db, payout_id)
    _audit_review(db, admin=admin, payout=payout, action="payout.processing")
    db.commit()
    db.refresh(payout)
    return PayoutOut.model_validate(payout)


@admin_router.get(
    "/scheduled/stats",
    response_model=ScheduledPayoutStatsOut,
    summary="Held payouts awaiting the scheduled release",
    responses=error_responses(401, 403, 500),
)
def scheduled_payout_stats(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_platform_admin),
):
    stats = get_scheduled_payout_stats(db)
    return ScheduledPayoutStatsOut(
        count=stats.count,
        total_amount=stats.total_amount,
        sellers_affected=stats.sellers_affected,
    )


@admin_router.post(
    "/scheduled/run",
    response_model=ScheduledPayoutRunOut,
    summary="Run the scheduled payout release now",
    responses=error_responses(401, 403, 500),
)
def run_scheduled_release(
    db: Session = Depends(get_db),
    admin: User = Depends(require_platform_admin),
):
    run = run_scheduled_payouts(db, datetime.now(timezone.utc))
    result = run.result
    if run.ran and result is not None:
        log_audit_event(
            db,
            actor_user_id=admin.id,
            action="payout.scheduled_release",
            target_type="seller_payout",
            metadata_json={
                "frequency": run.frequency,
                "total_processed": result.total_processed,
                "sellers_affected": result.sellers_affected,
                "total_amount": result.total_amount,
            },
        )
    db.commit()
    return ScheduledPayoutRunOut(
        ran=run.ran,
        frequency=run.frequency,
        last_run=run.last_run,
        skipped_reason=run.skipped_reason,
        total_processed=result.total_processed if result else 0,
        sellers_affected=result.sellers_affected if result else 0,
        total_amount=result.total_amount if result else 0,
    )
