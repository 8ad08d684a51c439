from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, StrictInt

from .models import OrderStatus


# --- Request Models ---
class PlaceOrderRequest(BaseModel):
    """Basket of item id -> requested quantity. The requester comes from the caller's identity."""
    products: Dict[str, StrictInt]


# --- Response Models ---
class ProductView(BaseModel):
    """Live display fields of an item, joined from the inventory service at read time."""
    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    quantity: int
    image_url: Optional[str] = None


class OrderLineView(BaseModel):
    id: int
    item_id: str
    product: Optional[ProductView] = None # None when the item can no longer be fetched.
    quantity: int
    price: Decimal # Snapshot price captured at reservation time.
    total_line_price: Decimal


class OrderResponse(BaseModel):
    id: str
    requester_id: str
    date: date
    status: OrderStatus
    total_amount: Decimal
    order_lines: List[OrderLineView]


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    order_id: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
