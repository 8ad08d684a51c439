# --- Imports ---
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

# Internal imports from sibling modules
from .clients import InventoryClient
from .config import LOG_LEVEL, ORDER_FAILURE_POLICY
from .coordinator import OrderCoordinator
from .database import SessionLocal, engine
from .errors import OrderNotFound, OrderServiceError, ValidationError
from .messaging.producer import get_publisher
from .models import Base
from .schemas import ErrorDetail, ErrorResponse, OrderResponse, PlaceOrderRequest
from .security import Principal, Role, principal_from_headers, require_order_access, require_role
from .store import OrderStore
from .views import OrderViewAssembler

# --- Logging ---
logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("order_service")


# --- Database Initialization ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables on startup if they don't exist.
    Base.metadata.create_all(bind=engine)
    yield


# --- App Instance ---
app = FastAPI(lifespan=lifespan)


@app.exception_handler(OrderServiceError)
async def order_service_error_handler(request: Request, exc: OrderServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details or None,
                order_id=exc.order_id,
            )
        ).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Type-level payload errors are reported like every other invalid order request."""
    errors = [{"loc": [str(part) for part in error["loc"]], "msg": error["msg"]} for error in exc.errors()]
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=ValidationError.code,
                message="Malformed order request",
                details={"errors": errors},
            )
        ).model_dump(),
    )


# --- Dependencies ---
def get_inventory_client() -> InventoryClient:
    return InventoryClient()

def get_order_store() -> OrderStore:
    return OrderStore(SessionLocal)

def get_assembler(
    inventory: InventoryClient = Depends(get_inventory_client),
    store: OrderStore = Depends(get_order_store),
) -> OrderViewAssembler:
    return OrderViewAssembler(inventory, store)

def get_publisher_dependency():
    return get_publisher()

def get_coordinator(
    inventory: InventoryClient = Depends(get_inventory_client),
    store: OrderStore = Depends(get_order_store),
    assembler: OrderViewAssembler = Depends(get_assembler),
    publisher=Depends(get_publisher_dependency),
) -> OrderCoordinator:
    return OrderCoordinator(inventory, store, assembler, ORDER_FAILURE_POLICY, publisher)

def get_principal(
    x_user_id: Optional[str] = Header(default=None),
    x_user_claims: Optional[str] = Header(default=None),
) -> Principal:
    """Caller identity as forwarded by the authenticating gateway."""
    return principal_from_headers(x_user_id, x_user_claims)


# --- Endpoints ---
@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "order"}

@app.post("/api/v1/orders", response_model=OrderResponse, status_code=201)
def place_order(
    req: PlaceOrderRequest,
    principal: Principal = Depends(get_principal),
    coordinator: OrderCoordinator = Depends(get_coordinator),
):
    """
    Places an order for the authenticated client.
    - Reserves stock item by item, in ascending item id order.
    - On failure the error names the failing item and carries the order id,
      since the order header (and possibly some lines) already exists.
    """
    require_role(principal, Role.CLIENT)
    return coordinator.place_order(req.products, principal.requester_id)

@app.get("/api/v1/orders", response_model=List[OrderResponse])
def list_orders(
    principal: Principal = Depends(get_principal),
    assembler: OrderViewAssembler = Depends(get_assembler),
):
    """Retrieves every order. Administrators only."""
    require_role(principal, Role.ADMIN)
    return assembler.list_views()

@app.get("/api/v1/orders/my-orders", response_model=List[OrderResponse])
def my_orders(
    principal: Principal = Depends(get_principal),
    assembler: OrderViewAssembler = Depends(get_assembler),
):
    """Retrieves the orders placed by the caller."""
    return assembler.list_views_for(principal.requester_id)

@app.get("/api/v1/orders/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: str,
    principal: Principal = Depends(get_principal),
    store: OrderStore = Depends(get_order_store),
    assembler: OrderViewAssembler = Depends(get_assembler),
):
    """Retrieves a single order. Visible to its requester and to administrators."""
    order = store.get_order(order_id)
    if order is None:
        raise OrderNotFound(order_id)
    require_order_access(principal, order)
    return assembler.build_view_for(order)
