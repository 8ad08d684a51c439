from decimal import Decimal

import pytest

from conftest import InMemoryInventory, make_item
from order_service.app.errors import OrderNotFound, UpstreamUnavailable
from order_service.app.views import OrderViewAssembler


def test_degraded_line_when_item_removed_upstream(order_store):
    inventory = InMemoryInventory([make_item("p1", "4.00", 10), make_item("p2", "1.00", 10)])
    order = order_store.create_order("alice")
    order_store.add_line(order.id, "p1", Decimal("4.00"), 2)
    order_store.add_line(order.id, "p2", Decimal("1.00"), 1)
    inventory.remove("p1")

    view = OrderViewAssembler(inventory, order_store).build_view(order.id)

    gone, kept = view.order_lines
    assert gone.product is None
    assert gone.total_line_price == Decimal("8.00")
    assert kept.product.name == "Item p2"
    assert view.total_amount == Decimal("9.00")


def test_unavailable_inventory_fails_the_view(order_store):
    class DownInventory(InMemoryInventory):
        def get_item(self, item_id):
            raise UpstreamUnavailable("Inventory service unreachable")

    order = order_store.create_order("alice")
    order_store.add_line(order.id, "p1", Decimal("4.00"), 2)

    with pytest.raises(UpstreamUnavailable):
        OrderViewAssembler(DownInventory(), order_store).build_view(order.id)


def test_unknown_order(order_store):
    with pytest.raises(OrderNotFound):
        OrderViewAssembler(InMemoryInventory(), order_store).build_view("missing")


def test_empty_order_has_zero_total(order_store):
    order = order_store.create_order("alice")
    view = OrderViewAssembler(InMemoryInventory(), order_store).build_view(order.id)
    assert view.order_lines == []
    assert view.total_amount == Decimal("0")


def test_lists_filter_by_requester(order_store):
    inventory = InMemoryInventory([make_item("p1", "1.00", 10)])
    first = order_store.create_order("alice")
    order_store.add_line(first.id, "p1", Decimal("1.00"), 3)
    order_store.create_order("bob")
    second = order_store.create_order("alice")
    assembler = OrderViewAssembler(inventory, order_store)

    assert len(assembler.list_views()) == 3
    mine = assembler.list_views_for("alice")
    assert [view.id for view in mine] == [first.id, second.id]
    assert mine[0].total_amount == Decimal("3.00")
    assert assembler.list_views_for("carol") == []
