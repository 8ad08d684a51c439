import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload, sessionmaker

from .database import SessionLocal
from .errors import OrderNotFound
from .models import Order, OrderLine, OrderStatus
from .records import LineSnapshot, OrderRecord

logger = logging.getLogger("order_store")


def _to_line(line: OrderLine) -> LineSnapshot:
    return LineSnapshot(
        id=line.id,
        order_id=line.order_id,
        item_id=line.item_id,
        unit_price=Decimal(line.unit_price),
        quantity=line.quantity,
    )


def _to_record(order: Order) -> OrderRecord:
    return OrderRecord(
        id=order.id,
        requester_id=order.requester_id,
        date=order.date,
        status=order.status,
        lines=tuple(_to_line(line) for line in order.lines),
    )


class OrderStore:
    """Persists order headers and their append-only lines.

    Every call opens and closes its own session and returns detached
    ``OrderRecord``/``LineSnapshot`` values, never ORM objects.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def create_order(self, requester_id: str) -> OrderRecord:
        db = self.session_factory()
        try:
            order = Order(
                id=str(uuid.uuid4()),
                requester_id=requester_id,
                date=date.today(),
                status=OrderStatus.CREATED,
            )
            db.add(order)
            db.commit()
            db.refresh(order)
            logger.info(f"Created order {order.id} for requester {requester_id}")
            return _to_record(order)
        finally:
            db.close()

    def add_line(self, order_id: str, item_id: str, unit_price: Decimal, quantity: int) -> LineSnapshot:
        db = self.session_factory()
        try:
            line = OrderLine(order_id=order_id, item_id=item_id, unit_price=unit_price, quantity=quantity)
            db.add(line)
            db.commit()
            db.refresh(line)
            return _to_line(line)
        finally:
            db.close()

    def update_status(self, order_id: str, status: OrderStatus) -> None:
        db = self.session_factory()
        try:
            order = db.get(Order, order_id)
            if order is None:
                raise OrderNotFound(order_id)
            order.status = status
            db.commit()
            logger.info(f"Order {order_id} updated to {status.value}")
        finally:
            db.close()

    def get_order(self, order_id: str) -> Optional[OrderRecord]:
        db = self.session_factory()
        try:
            order = db.execute(
                select(Order).options(selectinload(Order.lines)).where(Order.id == order_id)
            ).scalar_one_or_none()
            return _to_record(order) if order else None
        finally:
            db.close()

    def list_orders(self) -> List[OrderRecord]:
        return self._list()

    def list_orders_by_requester(self, requester_id: str) -> List[OrderRecord]:
        return self._list(requester_id)

    def _list(self, requester_id: Optional[str] = None) -> List[OrderRecord]:
        db = self.session_factory()
        try:
            query = select(Order).options(selectinload(Order.lines)).order_by(Order.created_at, Order.id)
            if requester_id is not None:
                query = query.where(Order.requester_id == requester_id)
            return [_to_record(order) for order in db.execute(query).scalars().all()]
        finally:
            db.close()
