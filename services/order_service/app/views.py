import logging
from typing import List

from .errors import ItemNotFound, OrderNotFound
from .records import LineSnapshot, OrderRecord
from .schemas import OrderLineView, OrderResponse, ProductView

logger = logging.getLogger("order_views")


class OrderViewAssembler:
    """Builds order responses by joining persisted lines with live item data.

    Totals come only from the persisted snapshot prices. Display fields are
    fetched from the inventory service on every build; a line whose item has
    been removed upstream is returned with ``product=None`` instead of failing
    the whole view. Other inventory errors propagate.
    """

    def __init__(self, inventory, store):
        self.inventory = inventory
        self.store = store

    def build_view(self, order_id: str) -> OrderResponse:
        order = self.store.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return self.build_view_for(order)

    def build_view_for(self, order: OrderRecord) -> OrderResponse:
        return OrderResponse(
            id=order.id,
            requester_id=order.requester_id,
            date=order.date,
            status=order.status,
            total_amount=order.total_amount,
            order_lines=[self._line_view(line) for line in order.lines],
        )

    def list_views(self) -> List[OrderResponse]:
        return [self.build_view_for(order) for order in self.store.list_orders()]

    def list_views_for(self, requester_id: str) -> List[OrderResponse]:
        return [self.build_view_for(order) for order in self.store.list_orders_by_requester(requester_id)]

    def _line_view(self, line: LineSnapshot) -> OrderLineView:
        try:
            item = self.inventory.get_item(line.item_id)
        except ItemNotFound:
            logger.warning(f"Item {line.item_id} of order {line.order_id} no longer exists, returning a degraded line")
            product = None
        else:
            product = ProductView(
                id=item.id,
                name=item.name,
                description=item.description,
                price=item.price,
                quantity=item.quantity,
                image_url=item.image_url,
            )

        return OrderLineView(
            id=line.id,
            item_id=line.item_id,
            product=product,
            quantity=line.quantity,
            price=line.unit_price,
            total_line_price=line.line_total,
        )
