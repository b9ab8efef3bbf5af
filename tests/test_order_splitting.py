import pytest

from app.core.errors import OrderSplitError
from app.models.channel import Channel
from app.models.order import Order, OrderItem
from app.models.product import Product, ProductVariant
from app.models.shipping import ShippingLine, ShippingMethod
from app.models.user import User
from app.services.order_splitting_service import (
    ARRANGING_PAYMENT_STATE,
    assign_shipping_line_to_order_lines,
    create_seller_orders,
    get_default_channel,
    is_shipping_method_eligible,
    set_order_line_seller_channel,
    split_order,
)
from app.services.seller_service import create_seller


def _line(channel_id: str | None, line_total: int = 1000) -> OrderItem:
    return OrderItem(seller_channel_id=channel_id, qty=1, unit_price=line_total, line_total=line_total)


def _shipping_line(*channel_ids: str, price: int = 500) -> ShippingLine:
    method = ShippingMethod(code=f"ship-{'-'.join(channel_ids) or 'any'}", name="Courier", price=price)
    method.channels = [Channel(id=channel_id, code=channel_id, name=channel_id) for channel_id in channel_ids]
    return ShippingLine(shipping_method=method, price=price)


def test_split_empty_order_yields_single_default_group():
    groups = split_order([], [], "default")

    assert len(groups) == 1
    assert groups[0].channel_id == "default"
    assert groups[0].state == ARRANGING_PAYMENT_STATE
    assert groups[0].lines == []
    assert groups[0].shipping_lines == []


def test_split_groups_lines_by_channel_in_first_seen_order():
    lines = [_line("seller-1"), _line(None), _line("seller-2"), _line("seller-1")]

    groups = split_order(lines, [], "default")

    assert [group.channel_id for group in groups] == ["seller-1", "default", "seller-2"]
    assert [len(group.lines) for group in groups] == [2, 1, 1]
    assert all(group.state == ARRANGING_PAYMENT_STATE for group in groups)


def test_split_assigns_each_shipping_line_to_first_covering_group():
    lines = [_line("seller-1"), _line(None), _line("seller-2")]
    any_channel = _shipping_line()
    seller_two_only = _shipping_line("seller-2")
    default_only = _shipping_line("default")
    uncovered = _shipping_line("seller-9")

    groups = split_order(lines, [any_channel, seller_two_only, default_only, uncovered], "default")
    by_channel = {group.channel_id: group for group in groups}

    assert by_channel["seller-1"].shipping_lines == [any_channel]
    assert by_channel["seller-2"].shipping_lines == [seller_two_only]
    assert by_channel["default"].shipping_lines == [default_only]


def test_assign_shipping_line_to_order_lines():
    seller_line = _line("seller-1")
    default_line = _line(None)
    lines = [seller_line, default_line]

    assert assign_shipping_line_to_order_lines([], lines, "default") == lines
    assert assign_shipping_line_to_order_lines(["seller-1"], lines, "default") == [seller_line]
    assert assign_shipping_line_to_order_lines(["default"], lines, "default") == [default_line]
    assert assign_shipping_line_to_order_lines(["other"], lines, "default") == []


def test_is_shipping_method_eligible():
    lines = [_line("seller-1"), _line(None)]

    assert is_shipping_method_eligible([], lines, "default") is True
    assert is_shipping_method_eligible(["seller-1", "x"], lines, "default") is True
    assert is_shipping_method_eligible(["default"], lines, "default") is True
    assert is_shipping_method_eligible(["seller-2"], lines, "default") is False
    assert is_shipping_method_eligible(["seller-2"], [], "default") is False


def _seed_catalog(db):
    default_channel = get_default_channel(db)
    owner = User(email="split-owner@example.com", full_name="Split Owner")
    db.add(owner)
    db.flush()
    seller = create_seller(db, owner_user_id=owner.id, shop_name="Split Shop")

    seller_product = Product(name="Seller Scarf", seller_id=seller.id)
    house_product = Product(name="House Tote")
    db.add_all([seller_product, house_product])
    db.flush()
    seller_variant = ProductVariant(product_id=seller_product.id, sku="SCARF-1", price=2500)
    house_variant = ProductVariant(product_id=house_product.id, sku="TOTE-1", price=1000)
    db.add_all([seller_variant, house_variant])
    db.commit()
    return default_channel, seller, seller_variant, house_variant


def test_set_order_line_seller_channel(db_session):
    default_channel, seller, seller_variant, house_variant = _seed_catalog(db_session)

    assert set_order_line_seller_channel(db_session, seller_variant) == seller.channel_id
    assert set_order_line_seller_channel(db_session, house_variant) == default_channel.id
    assert set_order_line_seller_channel(db_session, house_variant, "explicit-default") == "explicit-default"


def test_get_default_channel_is_created_once(db_session):
    first = get_default_channel(db_session)
    db_session.commit()
    second = get_default_channel(db_session)

    assert first.id == second.id
    assert first.is_default is True


def test_create_seller_orders_copies_lines_and_totals(db_session):
    default_channel, seller, seller_variant, house_variant = _seed_catalog(db_session)
    courier = ShippingMethod(code="courier", name="Courier", price=700)
    db_session.add(courier)
    db_session.flush()

    order = Order(
        id="aggregate-1",
        code="AGG1",
        channel_id=default_channel.id,
        status="paid",
        currency="USD",
        subtotal=6000,
        shipping_total=700,
        total=6700,
        items=[
            OrderItem(
                id="item-1",
                variant_id=seller_variant.id,
                seller_channel_id=seller.channel_id,
                position=0,
                qty=2,
                unit_price=2500,
                line_total=5000,
            ),
            OrderItem(
                id="item-2",
                variant_id=house_variant.id,
                seller_channel_id=default_channel.id,
                position=1,
                qty=1,
                unit_price=1000,
                line_total=1000,
            ),
        ],
        shipping_lines=[ShippingLine(shipping_method_id=courier.id, price=700)],
    )
    db_session.add(order)
    db_session.commit()

    seller_orders = create_seller_orders(db_session, order)
    db_session.commit()

    assert len(seller_orders) == 2
    seller_order, house_order = seller_orders
    assert seller_order.aggregate_order_id == order.id
    assert seller_order.channel_id == seller.channel_id
    assert seller_order.status == "pending"
    assert (seller_order.subtotal, seller_order.shipping_total, seller_order.total) == (5000, 700, 5700)
    assert [item.variant_id for item in seller_order.items] == [seller_variant.id]
    assert house_order.channel_id == default_channel.id
    assert (house_order.subtotal, house_order.shipping_total, house_order.total) == (1000, 0, 1000)
    assert house_order.shipping_lines == []

    with pytest.raises(OrderSplitError):
        create_seller_orders(db_session, order)
    with pytest.raises(OrderSplitError):
        create_seller_orders(db_session, seller_order)
