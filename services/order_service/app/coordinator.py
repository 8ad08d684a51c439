"""
Order placement.

A placement persists the order header first, then walks the basket in
ascending item-id order. For each entry it fetches the item, checks stock,
asks the inventory service to decrement it, and appends a line holding the
price seen at fetch time.

The local stock check is only a fast path. The decrement on the inventory
service is the one place where sufficiency is decided, so two placements
racing for the same units are settled there.

When an entry fails after earlier entries were reserved, the failure policy
decides what happens to them. The policy comes from ORDER_FAILURE_POLICY and
defaults to COMPENSATE:

  COMPENSATE  release every reservation in reverse order, mark the order
              FAILED, then propagate.
  ABORT       stop and propagate. Reserved stock stays decremented and the
              order stays CREATED with the lines already written. This keeps
              the legacy behavior and is a known consistency gap: the partial
              order and its decrements need manual reconciliation.

Under either policy a decrement whose line cannot be written is released
at once, and errors raised while compensating are logged so the original
failure is the one that propagates. Neither policy retries a failed call.
"""

import enum
import logging
from typing import Dict, List, Mapping, Tuple

from .errors import InsufficientStock, OrderServiceError, ValidationError
from .messaging.producer import LoggingPublisher
from .models import OrderStatus
from .records import OrderRecord
from .schemas import OrderResponse
from .views import OrderViewAssembler

logger = logging.getLogger("order_coordinator")


class FailurePolicy(str, enum.Enum):
    ABORT = "abort"
    COMPENSATE = "compensate"


def validate_basket(basket: Mapping[str, int]) -> Dict[str, int]:
    """Rejects empty baskets, blank item ids and non-positive or non-integer quantities."""
    if not isinstance(basket, Mapping) or not basket:
        raise ValidationError("Basket must contain at least one item")

    for item_id, quantity in basket.items():
        if not isinstance(item_id, str) or not item_id.strip():
            raise ValidationError("Item ids must be non-empty strings", {"item_id": item_id})
        # bool is an int subclass; True is not a quantity.
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError(f"Quantity for item {item_id} must be an integer", {"item_id": item_id})
        if quantity <= 0:
            raise ValidationError(
                f"Quantity for item {item_id} must be positive",
                {"item_id": item_id, "quantity": quantity},
            )
    return dict(basket)


class OrderCoordinator:

    def __init__(self, inventory, store, assembler=None, failure_policy=FailurePolicy.COMPENSATE, publisher=None):
        self.inventory = inventory
        self.store = store
        self.assembler = assembler or OrderViewAssembler(inventory, store)
        self.failure_policy = FailurePolicy(failure_policy)
        self.publisher = publisher or LoggingPublisher()

    def place_order(self, basket: Mapping[str, int], requester_id: str) -> OrderResponse:
        basket = validate_basket(basket)
        if not isinstance(requester_id, str) or not requester_id.strip():
            raise ValidationError("Requester id is required")

        order = self.store.create_order(requester_id)
        logger.info(f"Placing order {order.id} for {requester_id} with {len(basket)} item(s)")

        reserved: List[Tuple[str, int]] = []
        try:
            for item_id, quantity in sorted(basket.items()):
                self._reserve(order, item_id, quantity, reserved)
        except Exception as e:
            if isinstance(e, OrderServiceError):
                e.order_id = order.id
            logger.error(f"Order {order.id} failed after {len(reserved)} reservation(s): {e}")
            if self.failure_policy is FailurePolicy.COMPENSATE:
                self._compensate(order, reserved)
            self.publisher.publish("order.failed", {
                "order_id": order.id,
                "requester_id": requester_id,
                "reason": getattr(e, "code", type(e).__name__),
                "compensated": self.failure_policy is FailurePolicy.COMPENSATE,
            })
            raise

        view = self.assembler.build_view(order.id)
        logger.info(f"Order {order.id} placed, total {view.total_amount}")
        self.publisher.publish("order.placed", {
            "order_id": order.id,
            "requester_id": requester_id,
            "total_amount": str(view.total_amount),
            "lines": [{"item_id": line.item_id, "quantity": line.quantity} for line in view.order_lines],
        })
        return view

    def _reserve(self, order: OrderRecord, item_id: str, quantity: int, reserved: List[Tuple[str, int]]) -> None:
        # Fetched fresh for every entry; stock may have moved since the last call.
        item = self.inventory.get_item(item_id)
        if item.quantity < quantity:
            raise InsufficientStock(item_id, item.quantity, quantity)

        self.inventory.decrease_stock(item_id, quantity)
        logger.info(f"Reserved {quantity} x {item_id} for order {order.id} at {item.price}")

        try:
            self.store.add_line(order.id, item_id, item.price, quantity)
        except Exception:
            # Not in reserved yet; compensation would never see it.
            logger.error(f"Could not record line {item_id} for order {order.id}, releasing its stock")
            self._release(order, item_id, quantity)
            raise
        reserved.append((item_id, quantity))

    def _release(self, order: OrderRecord, item_id: str, quantity: int) -> None:
        try:
            self.inventory.increase_stock(item_id, quantity)
            logger.info(f"Released {quantity} x {item_id} for failed order {order.id}")
        except Exception:
            # Keep going; this one needs manual reconciliation.
            logger.exception(f"Could not release {quantity} x {item_id} for order {order.id}")

    def _compensate(self, order: OrderRecord, reserved: List[Tuple[str, int]]) -> None:
        for item_id, quantity in reversed(reserved):
            self._release(order, item_id, quantity)
        try:
            self.store.update_status(order.id, OrderStatus.FAILED)
        except Exception:
            logger.exception(f"Could not mark order {order.id} as FAILED")
