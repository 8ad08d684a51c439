"""Immutable shapes passed between the store, the inventory client and the view assembler.

Economic fields (price, quantity) live on ``LineSnapshot`` and never change after
the line is written. Display fields come from ``ItemSnapshot`` and are fetched
again every time a view is built.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from .models import OrderStatus


@dataclass(frozen=True)
class ItemSnapshot:
    id: str
    name: str
    price: Decimal
    quantity: int
    description: Optional[str] = None
    image_url: Optional[str] = None


@dataclass(frozen=True)
class LineSnapshot:
    id: int
    order_id: str
    item_id: str
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class OrderRecord:
    id: str
    requester_id: str
    date: date
    status: OrderStatus
    lines: Tuple[LineSnapshot, ...] = ()

    @property
    def total_amount(self) -> Decimal:
        # Never stored; always recomputed from the snapshot prices.
        return sum((line.line_total for line in self.lines), Decimal("0.00"))
