import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .config import INVENTORY_SERVICE_URL, INVENTORY_TIMEOUT_MS
from .errors import InsufficientStock, ItemNotFound, UpstreamUnavailable
from .records import ItemSnapshot

logger = logging.getLogger("inventory_client")


def _to_snapshot(data: Dict[str, Any]) -> ItemSnapshot:
    return ItemSnapshot(
        id=data["id"],
        name=data["name"],
        description=data.get("description"),
        price=Decimal(str(data["price"])),
        quantity=int(data["quantity"]),
        image_url=data.get("image_url"),
    )


def _error_details(response) -> Dict[str, Any]:
    try:
        error = response.json().get("error") or {}
        return error.get("details") or {}
    except (ValueError, AttributeError):
        return {}


class InventoryClient:
    """Synchronous client for the inventory service.

    Nothing is cached: every call goes to the service, so two lookups of the
    same item during one placement may observe different stock levels.
    Calls are never retried, because a repeated decrement after a timeout
    could decrement twice.
    """

    def __init__(self, base_url: str = INVENTORY_SERVICE_URL, timeout_ms: int = INVENTORY_TIMEOUT_MS, session=None):
        self.base_url = base_url.rstrip("/")
        # Convert ms to seconds
        self.timeout = timeout_ms / 1000.0
        self.session = session or requests.Session()

    def get_item(self, item_id: str) -> ItemSnapshot:
        response = self._request("GET", self._item_path(item_id))
        if response.status_code == 404:
            raise ItemNotFound(item_id)
        self._expect_ok(response, f"get item {item_id}")
        return self._parse(response, _to_snapshot)

    def list_items(self) -> List[ItemSnapshot]:
        response = self._request("GET", "/api/v1/items")
        self._expect_ok(response, "list items")
        return self._parse(response, lambda body: [_to_snapshot(data) for data in body])

    def decrease_stock(self, item_id: str, quantity: int) -> ItemSnapshot:
        """Atomically decrements stock. The service re-validates sufficiency itself."""
        response = self._request("POST", self._item_path(item_id) + "/decrease", json={"quantity": quantity})
        if response.status_code == 404:
            raise ItemNotFound(item_id)
        if response.status_code == 409:
            details = _error_details(response)
            raise InsufficientStock(item_id, details.get("available", 0), details.get("requested", quantity))
        self._expect_ok(response, f"decrease stock of {item_id}")
        return self._parse(response, _to_snapshot)

    def increase_stock(self, item_id: str, quantity: int) -> ItemSnapshot:
        """Gives previously decremented stock back to the item."""
        response = self._request("POST", self._item_path(item_id) + "/release", json={"quantity": quantity})
        if response.status_code == 404:
            raise ItemNotFound(item_id)
        self._expect_ok(response, f"release stock of {item_id}")
        return self._parse(response, _to_snapshot)

    def _item_path(self, item_id: str) -> str:
        return f"/api/v1/items/{quote(item_id, safe='')}"

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None):
        url = f"{self.base_url}{path}"
        try:
            return self.session.request(method, url, json=json, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.error(f"Inventory service timeout on {method} {url}")
            raise UpstreamUnavailable("Inventory service timed out", {"url": url}) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Inventory service unreachable on {method} {url}: {e}")
            raise UpstreamUnavailable("Inventory service unreachable", {"url": url, "error": str(e)}) from e

    @staticmethod
    def _expect_ok(response, action: str) -> None:
        if response.status_code != 200:
            logger.error(f"Inventory service error during {action}: {response.status_code}")
            raise UpstreamUnavailable(
                "Inventory service returned an error",
                {"action": action, "status": response.status_code},
            )

    @staticmethod
    def _parse(response, convert):
        """Converts a 200 body, treating an unreadable one like any other upstream failure."""
        try:
            return convert(response.json())
        except (ValueError, KeyError, TypeError, ArithmeticError) as e:
            logger.error(f"Inventory service sent an unreadable body: {e!r}")
            raise UpstreamUnavailable("Inventory service returned an unreadable response", {"error": str(e)}) from e
