from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.api_docs import error_responses
from app.core.config import settings
from app.core.deps import get_db
from app.core.id_utils import generate_order_code, generate_shortuuid
from app.core.permissions import require_platform_admin
from app.core.security_current import get_current_user
from app.models.order import Order, OrderItem
from app.models.product import ProductVariant
from app.models.shipping import ShippingLine, ShippingMethod
from app.models.user import User
from app.schemas.common import PaginationMeta
from app.schemas.order import (
    ALLOWED_ORDER_STATUSES,
    OrderCreate,
    OrderListOut,
    OrderOut,
    OrderSplitOut,
    OrderStatusUpdateIn,
)
from app.services.audit_service import log_audit_event
from app.services.order_payment_service import record_order_settlement, refund_order_settlement
from app.services.order_splitting_service import (
    create_seller_orders,
    get_default_channel,
    is_shipping_method_eligible,
    set_order_line_seller_channel,
)

router = APIRouter(prefix="/orders", tags=["orders"])

ALLOWED_ORDER_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"paid", "cancelled"},
    "paid": {"processing", "fulfilled", "cancelled", "refunded"},
    "processing": {"fulfilled", "cancelled", "refunded"},
    "fulfilled": {"refunded"},
    "cancelled": set(),
    "refunded": set(),
}
SETTLED_ORDER_STATUSES = {"paid", "processing", "fulfilled"}
REVERSAL_ORDER_STATUSES = {"cancelled", "refunded"}


def _normalize_order_status(status: str) -> str:
    normalized = status.strip().lower()
    if normalized not in ALLOWED_ORDER_STATUSES:
        allowed = ", ".join(sorted(ALLOWED_ORDER_STATUSES))
        raise HTTPException(status_code=400, detail=f"Invalid order status. Allowed: {allowed}")
    return normalized


def _ensure_transition_allowed(current_status: str, next_status: str) -> None:
    if current_status == next_status:
        return
    allowed_next = ALLOWED_ORDER_TRANSITIONS.get(current_status, set())
    if next_status not in allowed_next:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot transition order from '{current_status}' to '{next_status}'",
        )


def _order_or_404(db: Session, order_id: str) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _load_variants(db: Session, variant_ids: list[str]) -> dict[str, ProductVariant]:
    rows = db.execute(select(ProductVariant).where(ProductVariant.id.in_(variant_ids))).scalars().all()
    return {variant.id: variant for variant in rows}


def _load_shipping_methods(db: Session, method_ids: list[str]) -> list[ShippingMethod]:
    methods: list[ShippingMethod] = []
    for method_id in method_ids:
        method = db.get(ShippingMethod, method_id)
        if not method:
            raise HTTPException(status_code=404, detail=f"Shipping method not found: {method_id}")
        if not method.is_active:
            raise HTTPException(status_code=400, detail=f"Shipping method is inactive: {method_id}")
        methods.append(method)
    return methods


@router.post(
    "",
    response_model=OrderOut,
    status_code=201,
    summary="Create order",
    responses=error_responses(400, 401, 404, 422, 500),
)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    variant_ids = list(dict.fromkeys(item.variant_id for item in payload.items))
    variants = _load_variants(db, variant_ids)
    for variant_id in variant_ids:
        if variant_id not in variants:
            raise HTTPException(status_code=404, detail=f"Variant not found: {variant_id}")

    default_channel = get_default_channel(db)
    seller_channel_by_variant = {
        variant_id: set_order_line_seller_channel(db, variants[variant_id], default_channel.id)
        for variant_id in variant_ids
    }

    items = [
        OrderItem(
            id=generate_shortuuid(),
            variant_id=item.variant_id,
            seller_channel_id=seller_channel_by_variant[item.variant_id],
            position=position,
            qty=item.qty,
            unit_price=item.unit_price,
            line_total=item.unit_price * item.qty,
        )
        for position, item in enumerate(payload.items)
    ]

    methods = _load_shipping_methods(db, list(dict.fromkeys(payload.shipping_method_ids)))
    for method in methods:
        if not is_shipping_method_eligible(method.channel_ids, items, default_channel.id):
            raise HTTPException(
                status_code=400,
                detail=f"Shipping method is not eligible for this order: {method.id}",
            )

    subtotal = sum(item.line_total for item in items)
    shipping_total = sum(method.price for method in methods)
    order = Order(
        id=generate_shortuuid(),
        code=generate_order_code(),
        channel_id=default_channel.id,
        customer_email=payload.customer_email or actor.email,
        status="pending",
        currency=(payload.currency or settings.default_currency).upper(),
        subtotal=subtotal,
        shipping_total=shipping_total,
        total=subtotal + shipping_total,
        note=payload.note,
        items=items,
        shipping_lines=[
            ShippingLine(shipping_method_id=method.id, price=method.price) for method in methods
        ],
    )
    db.add(order)

    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="order.create",
        target_type="order",
        target_id=order.id,
        metadata_json={
            "code": order.code,
            "items_count": len(items),
            "shipping_method_ids": [method.id for method in methods],
            "total": order.total,
        },
    )
    db.commit()
    db.refresh(order)
    return OrderOut.model_validate(order)


@router.get(
    "",
    response_model=OrderListOut,
    summary="List orders",
    responses={**error_responses(400, 401, 403, 422, 500)},
)
def list_orders(
    status: str | None = Query(default=None),
    aggregate_order_id: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    _admin: User = Depends(require_platform_admin),
):
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date cannot be before start_date")

    normalized_status = _normalize_order_status(status) if status else None
    normalized_aggregate_id = aggregate_order_id.strip() if aggregate_order_id and aggregate_order_id.strip() else None

    count_stmt = select(func.count(Order.id))
    data_stmt = select(Order)

    if normalized_status:
        count_stmt = count_stmt.where(Order.status == normalized_status)
        data_stmt = data_stmt.where(Order.status == normalized_status)
    if normalized_aggregate_id:
        count_stmt = count_stmt.where(Order.aggregate_order_id == normalized_aggregate_id)
        data_stmt = data_stmt.where(Order.aggregate_order_id == normalized_aggregate_id)
    if start_date:
        count_stmt = count_stmt.where(func.date(Order.created_at) >= start_date)
        data_stmt = data_stmt.where(func.date(Order.created_at) >= start_date)
    if end_date:
        count_stmt = count_stmt.where(func.date(Order.created_at) <= end_date)
        data_stmt = data_stmt.where(func.date(Order.created_at) <= end_date)

    total_count = int(db.execute(count_stmt).scalar_one())
    rows = db.execute(
        data_stmt.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit)
    ).scalars().all()
    items = [OrderOut.model_validate(row) for row in rows]
    count = len(items)

    return OrderListOut(
        pagination=PaginationMeta(
            total=total_count,
            limit=limit,
            offset=offset,
            count=count,
            has_next=(offset + count) < total_count,
        ),
        start_date=start_date,
        end_date=end_date,
        status=normalized_status,
        aggregate_order_id=normalized_aggregate_id,
        items=items,
    )


@router.get(
    "/{order_id}",
    response_model=OrderOut,
    summary="Get order",
    responses=error_responses(401, 403, 404, 500),
)
def get_order(
    order_id: str,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_platform_admin),
):
    return OrderOut.model_validate(_order_or_404(db, order_id))


@router.patch(
    "/{order_id}/status",
    response_model=OrderOut,
    summary="Update order status",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdateIn,
    db: Session = Depends(get_db),
    actor: User = Depends(require_platform_admin),
):
    order = _order_or_404(db, order_id)

    next_status = _normalize_order_status(payload.status)
    current_status = _normalize_order_status(order.status)
    _ensure_transition_allowed(current_status, next_status)

    if payload.note is not None:
        order.note = payload.note
    if next_status != current_status:
        order.status = next_status
    db.flush()

    settled_sellers: int | None = None
    payouts_reversed: int | None = None
    # Settlement is owned by the aggregate order; seller sub-orders never settle.
    settles = order.aggregate_order_id is None and next_status != current_status
    if settles and next_status == "paid":
        settlement = record_order_settlement(db, order)
        settled_sellers = len(settlement.seller_splits) if settlement else 0
    elif settles and next_status in REVERSAL_ORDER_STATUSES and current_status in SETTLED_ORDER_STATUSES:
        payouts_reversed = refund_order_settlement(db, order)

    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="order.status.update",
        target_type="order",
        target_id=order.id,
        metadata_json={
            "from_status": current_status,
            "to_status": next_status,
            "settled_sellers": settled_sellers,
            "payouts_reversed": payouts_reversed,
        },
    )
    db.commit()
    db.refresh(order)
    return OrderOut.model_validate(order)


@router.post(
    "/{order_id}/split",
    response_model=OrderSplitOut,
    status_code=201,
    summary="Split order into seller orders",
    responses=error_responses(401, 403, 404, 409, 500),
)
def split_order_by_seller(
    order_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(require_platform_admin),
):
    order = _order_or_404(db, order_id)
    seller_orders = create_seller_orders(db, order)

    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="order.split",
        target_type="order",
        target_id=order.id,
        metadata_json={"seller_order_ids": [seller_order.id for seller_order in seller_orders]},
    )
    db.commit()
    for seller_order in seller_orders:
        db.refresh(seller_order)
    return OrderSplitOut(
        aggregate_order_id=order.id,
        seller_orders=[OrderOut.model_validate(seller_order) for seller_order in seller_orders],
    )
