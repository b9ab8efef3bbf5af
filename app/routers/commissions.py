from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.api_docs import error_responses
from app.core.deps import get_db
from app.core.security_current import get_current_seller
from app.models.seller import MarketplaceSeller
from app.schemas.commission import (
    CommissionHistoryListOut,
    CommissionHistoryOut,
    CommissionPreviewIn,
    CommissionPreviewOut,
    CommissionStatusValue,
    CommissionSummaryOut,
)
from app.schemas.common import PaginationMeta
from app.services.commission_history_service import get_commission_history, get_seller_commission_summary
from app.services.commission_service import (
    get_default_commission_rate,
    resolve_seller_commission_rate,
)
from app.services.split_payment_service import calculate_split_payment

router = APIRouter(prefix="/commissions", tags=["commissions"])


def _validate_range(start_date: datetime | None, end_date: datetime | None) -> None:
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date cannot be before start_date")


@router.get(
    "/history",
    response_model=CommissionHistoryListOut,
    summary="List my commission history",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def list_commission_history(
    order_id: str | None = Query(default=None),
    status: CommissionStatusValue | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    seller: MarketplaceSeller = Depends(get_current_seller),
):
    _validate_range(start_date, end_date)
    page = get_commission_history(
        db,
        seller.id,
        skip=offset,
        take=limit,
        order_id=order_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    items = [CommissionHistoryOut.model_validate(row) for row in page.items]
    count = len(items)
    return CommissionHistoryListOut(
        pagination=PaginationMeta(
            total=page.total_items,
            limit=limit,
            offset=offset,
            count=count,
            has_next=(offset + count) < page.total_items,
        ),
        status=status,
        order_id=order_id,
        start_date=start_date,
        end_date=end_date,
        items=items,
    )


@router.get(
    "/summary",
    response_model=CommissionSummaryOut,
    summary="Commission totals for my shop",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def commission_summary(
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    db: Session = Depends(get_db),
    seller: MarketplaceSeller = Depends(get_current_seller),
):
    _validate_range(start_date, end_date)
    summary = get_seller_commission_summary(db, seller.id, start_date=start_date, end_date=end_date)
    return CommissionSummaryOut(
        seller_id=summary.seller_id,
        total_commissions=summary.total_commissions,
        total_payouts=summary.total_payouts,
        total_orders=summary.total_orders,
        commissions_by_status=summary.commissions_by_status,
    )


@router.post(
    "/calculate",
    response_model=CommissionPreviewOut,
    summary="Preview commission for an order total",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def preview_commission(
    payload: CommissionPreviewIn,
    db: Session = Depends(get_db),
    seller: MarketplaceSeller = Depends(get_current_seller),
):
    if payload.commission_rate is not None:
        rate = payload.commission_rate
    else:
        rate = resolve_seller_commission_rate(seller, get_default_commission_rate(db))
    split = calculate_split_payment(payload.order_total, rate)
    return CommissionPreviewOut(
        order_total=split.total_amount,
        commission_rate=rate,
        commission=split.commission,
        seller_payout=split.seller_payout,
    )
