from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.core.errors import CommissionIntegrityError
from app.models.commission_history import CommissionHistory, CommissionHistoryStatus
from app.services.commission_service import RateLike, validate_commission_rate


@dataclass(frozen=True)
class CommissionHistoryPage:
    items: list[CommissionHistory]
    total_items: int


@dataclass(frozen=True)
class SellerCommissionSummary:
    seller_id: str
    total_commissions: int
    total_payouts: int
    total_orders: int
    commissions_by_status: dict[str, int]


def create_commission_history(
    db: Session,
    *,
    order_id: str,
    seller_id: str,
    commission_rate: RateLike,
    order_total: int,
    commission_amount: int,
    seller_payout: int,
    status: CommissionHistoryStatus = CommissionHistoryStatus.CALCULATED,
) -> CommissionHistory:
    if commission_amount + seller_payout != order_total:
        raise CommissionIntegrityError(
            f"Commission calculation error: commission_amount ({commission_amount}) + "
            f"seller_payout ({seller_payout}) must equal order_total ({order_total})"
        )

    record = CommissionHistory(
        order_id=str(order_id),
        seller_id=seller_id,
        commission_rate=validate_commission_rate(commission_rate),
        order_total=order_total,
        commission_amount=commission_amount,
        seller_payout=seller_payout,
        status=CommissionHistoryStatus(status).value,
    )
    db.add(record)
    db.flush()
    return record


def _filtered(stmt, *, seller_id: str, start_date: datetime | None, end_date: datetime | None):
    stmt = stmt.where(CommissionHistory.seller_id == seller_id)
    if start_date:
        stmt = stmt.where(CommissionHistory.created_at >= start_date)
    if end_date:
        stmt = stmt.where(CommissionHistory.created_at <= end_date)
    return stmt


def get_commission_history(
    db: Session,
    seller_id: str,
    *,
    skip: int | None = None,
    take: int | None = None,
    order_id: str | None = None,
    status: CommissionHistoryStatus | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> CommissionHistoryPage:
    count_stmt = _filtered(
        select(func.count(CommissionHistory.id)),
        seller_id=seller_id,
        start_date=start_date,
        end_date=end_date,
    )
    data_stmt = _filtered(
        select(CommissionHistory),
        seller_id=seller_id,
        start_date=start_date,
        end_date=end_date,
    )
    if order_id:
        count_stmt = count_stmt.where(CommissionHistory.order_id == str(order_id))
        data_stmt = data_stmt.where(CommissionHistory.order_id == str(order_id))
    if status:
        count_stmt = count_stmt.where(CommissionHistory.status == CommissionHistoryStatus(status).value)
        data_stmt = data_stmt.where(CommissionHistory.status == CommissionHistoryStatus(status).value)

    total_items = int(db.execute(count_stmt).scalar_one())

    data_stmt = data_stmt.order_by(CommissionHistory.created_at.desc(), CommissionHistory.id.desc())
    if skip is not None:
        data_stmt = data_stmt.offset(skip)
    if take is not None:
        data_stmt = data_stmt.limit(take)

    items = list(db.execute(data_stmt).scalars().all())
    return CommissionHistoryPage(items=items, total_items=total_items)


def get_seller_commission_summary(
    db: Session,
    seller_id: str,
    *,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> SellerCommissionSummary:
    records = db.execute(
        _filtered(
            select(CommissionHistory),
            seller_id=seller_id,
            start_date=start_date,
            end_date=end_date,
        )
    ).scalars().all()

    commissions_by_status = {status.value: 0 for status in CommissionHistoryStatus}
    for record in records:
        if record.status in commissions_by_status:
            commissions_by_status[record.status] += record.commission_amount

    return SellerCommissionSummary(
        seller_id=seller_id,
        total_commissions=sum(record.commission_amount for record in records),
        total_payouts=sum(record.seller_payout for record in records),
        total_orders=len({record.order_id for record in records}),
        commissions_by_status=commissions_by_status,
    )


def update_commission_status(
    db: Session,
    *,
    order_id: str,
    status: CommissionHistoryStatus,
    seller_id: str | None = None,
) -> int:
    stmt = update(CommissionHistory).where(CommissionHistory.order_id == str(order_id))
    if seller_id:
        stmt = stmt.where(CommissionHistory.seller_id == seller_id)
    result = db.execute(
        stmt.values(status=CommissionHistoryStatus(status).value).execution_options(synchronize_session="fetch")
    )
    return int(result.rowcount or 0)
