from typing import Any, Dict, Optional


class OrderServiceError(Exception):
    """Base class for errors surfaced to API callers as ``{"error": {...}}`` bodies."""

    code = "ORDER_SERVICE_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, order_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        # Set once a placement has persisted its header, so callers can find the partial order.
        self.order_id = order_id


class ValidationError(OrderServiceError):
    """Empty or malformed basket, non-positive quantity, or missing requester."""

    code = "INVALID_ORDER_REQUEST"
    status_code = 400


class ItemNotFound(OrderServiceError):
    code = "ITEM_NOT_FOUND"
    status_code = 404

    def __init__(self, item_id: str, order_id: Optional[str] = None):
        super().__init__(f"Item {item_id} not found", {"item_id": item_id}, order_id)
        self.item_id = item_id


class InsufficientStock(OrderServiceError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, item_id: str, available: int, requested: int, order_id: Optional[str] = None):
        super().__init__(
            f"Insufficient stock for item {item_id}. Available: {available}, requested: {requested}",
            {"item_id": item_id, "available": available, "requested": requested},
            order_id,
        )
        self.item_id = item_id
        self.available = available
        self.requested = requested


class OrderNotFound(OrderServiceError):
    code = "ORDER_NOT_FOUND"
    status_code = 404

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found", {"order_id": order_id})


class UpstreamUnavailable(OrderServiceError):
    """The inventory service could not be reached or failed for reasons other than stock."""

    code = "INVENTORY_UNAVAILABLE"
    status_code = 503


class NotAuthenticated(OrderServiceError):
    code = "NOT_AUTHENTICATED"
    status_code = 401


class PermissionDenied(OrderServiceError):
    code = "FORBIDDEN"
    status_code = 403
