from dataclasses import dataclass, field
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import OrderSplitError
from app.core.id_utils import generate_order_code, generate_shortuuid
from app.core.observability import log_event
from app.models.channel import Channel
from app.models.order import Order, OrderItem
from app.models.product import Product, ProductVariant
from app.models.seller import MarketplaceSeller
from app.models.shipping import ShippingLine

ARRANGING_PAYMENT_STATE = "ArrangingPayment"
# Sub-orders start out awaiting payment, which is the "pending" order status.
SPLIT_STATE_ORDER_STATUS = {ARRANGING_PAYMENT_STATE: "pending"}


@dataclass
class SplitOrderGroup:
    channel_id: str
    state: str
    lines: list[OrderItem] = field(default_factory=list)
    shipping_lines: list[ShippingLine] = field(default_factory=list)


def get_default_channel(db: Session) -> Channel:
    channel = db.execute(select(Channel).where(Channel.is_default.is_(True))).scalars().first()
    if channel:
        return channel

    channel = db.execute(
        select(Channel).where(Channel.code == settings.default_channel_code)
    ).scalar_one_or_none()
    if channel is None:
        channel = Channel(code=settings.default_channel_code, name="Default channel", is_default=True)
        db.add(channel)
    else:
        channel.is_default = True
    db.flush()
    return channel


def set_order_line_seller_channel(
    db: Session,
    variant: ProductVariant,
    default_channel_id: str | None = None,
) -> str:
    """Channel an order line belongs to: the seller's own channel, else the default one."""
    if default_channel_id is None:
        default_channel_id = get_default_channel(db).id

    seller_channel_id = db.execute(
        select(MarketplaceSeller.channel_id)
        .join(Product, Product.seller_id == MarketplaceSeller.id)
        .where(Product.id == variant.product_id)
    ).scalar_one_or_none()
    if not seller_channel_id:
        return default_channel_id

    channel = db.get(Channel, seller_channel_id)
    return channel.id if channel else default_channel_id


def _line_channel(line: OrderItem, default_channel_id: str) -> str:
    return line.seller_channel_id or default_channel_id


def assign_shipping_line_to_order_lines(
    method_channel_ids: Sequence[str],
    lines: Sequence[OrderItem],
    default_channel_id: str,
) -> list[OrderItem]:
    if not method_channel_ids:
        return list(lines)
    allowed = set(method_channel_ids)
    return [line for line in lines if _line_channel(line, default_channel_id) in allowed]


def is_shipping_method_eligible(
    method_channel_ids: Sequence[str],
    lines: Sequence[OrderItem],
    default_channel_id: str,
) -> bool:
    if not method_channel_ids:
        return True
    allowed = set(method_channel_ids)
    return any(_line_channel(line, default_channel_id) in allowed for line in lines)


def split_order(
    lines: Sequence[OrderItem],
    shipping_lines: Sequence[ShippingLine],
    default_channel_id: str,
) -> list[SplitOrderGroup]:
    if not lines:
        return [SplitOrderGroup(channel_id=default_channel_id, state=ARRANGING_PAYMENT_STATE)]

    groups: dict[str, SplitOrderGroup] = {}
    for line in lines:
        channel_id = _line_channel(line, default_channel_id)
        if channel_id not in groups:
            groups[channel_id] = SplitOrderGroup(channel_id=channel_id, state=ARRANGING_PAYMENT_STATE)
        groups[channel_id].lines.append(line)

    for shipping_line in shipping_lines:
        method = shipping_line.shipping_method
        covered = assign_shipping_line_to_order_lines(
            method.channel_ids if method else [],
            lines,
            default_channel_id,
        )
        covered_ids = {id(line) for line in covered}
        for group in groups.values():
            if any(id(line) in covered_ids for line in group.lines):
                group.shipping_lines.append(shipping_line)
                break

    return list(groups.values())


def create_seller_orders(db: Session, aggregate_order: Order) -> list[Order]:
    if aggregate_order.aggregate_order_id:
        raise OrderSplitError("Seller orders cannot be split again")
    existing = db.execute(
        select(func.count(Order.id)).where(Order.aggregate_order_id == aggregate_order.id)
    ).scalar_one()
    if existing:
        raise OrderSplitError("Order has already been split")

    groups = split_order(
        aggregate_order.items,
        aggregate_order.shipping_lines,
        get_default_channel(db).id,
    )

    seller_orders: list[Order] = []
    for group in groups:
        items = [
            OrderItem(
                id=generate_shortuuid(),
                variant_id=line.variant_id,
                seller_channel_id=line.seller_channel_id,
                position=position,
                qty=line.qty,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for position, line in enumerate(group.lines)
        ]
        shipping_lines = [
            ShippingLine(shipping_method_id=line.shipping_method_id, price=line.price)
            for line in group.shipping_lines
        ]
        subtotal = sum(item.line_total for item in items)
        shipping_total = sum(line.price for line in shipping_lines)
        seller_order = Order(
            id=generate_shortuuid(),
            code=generate_order_code(),
            channel_id=group.channel_id,
            aggregate_order_id=aggregate_order.id,
            customer_email=aggregate_order.customer_email,
            status=SPLIT_STATE_ORDER_STATUS[group.state],
            currency=aggregate_order.currency,
            subtotal=subtotal,
            shipping_total=shipping_total,
            total=subtotal + shipping_total,
            items=items,
            shipping_lines=shipping_lines,
        )
        db.add(seller_order)
        seller_orders.append(seller_order)

    db.flush()
    log_event(
        "order.split",
        order_id=aggregate_order.id,
        seller_orders=[order.id for order in seller_orders],
    )
    return seller_orders
