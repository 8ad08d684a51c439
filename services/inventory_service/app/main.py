# --- Imports ---
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select, update
from sqlalchemy.orm import Session # For database session management

# Internal imports from sibling modules
from .config import INVENTORY_SEED, LOG_LEVEL
from .database import Base, SessionLocal, engine, get_db
from .models import Item

# --- Logging ---
logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("inventory_service")

# Demo catalog loaded into an empty database on startup.
SEED_ITEMS = [
    {
        "name": "Laptop HP EliteBook",
        "description": "Professional laptop with strong performance",
        "price": Decimal("1200.00"),
        "quantity": 10,
        "image_url": "https://images.unsplash.com/photo-1496181133206-80ce9b88a853?w=500",
    },
    {
        "name": "Smartphone Samsung S24",
        "description": "Latest Samsung model with on-device AI",
        "price": Decimal("900.00"),
        "quantity": 25,
        "image_url": "https://images.unsplash.com/photo-1511707171634-5f897ff02aa9?w=500",
    },
    {
        "name": "Dell 27 inch monitor",
        "description": "4K Ultra HD monitor",
        "price": Decimal("350.00"),
        "quantity": 5,
        "image_url": "https://images.unsplash.com/photo-1527443224154-c4a3942d3acf?w=500",
    },
]


def seed_catalog(db: Session) -> int:
    """Inserts the demo catalog if the items table is empty. Returns the number of items added."""
    if db.execute(select(Item.id).limit(1)).first() is not None:
        logger.info("Catalog already contains data, skipping initialization")
        return 0
    db.add_all(Item(**data) for data in SEED_ITEMS)
    db.commit()
    logger.info(f"Seeded {len(SEED_ITEMS)} catalog items")
    return len(SEED_ITEMS)


# --- Database Initialization ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables defined in models.py if they don't exist
    Base.metadata.create_all(bind=engine)
    if INVENTORY_SEED:
        db = SessionLocal()
        try:
            seed_catalog(db)
        finally:
            db.close()
    yield


# --- App Instance ---
app = FastAPI(lifespan=lifespan)

# --- Request / Response Models ---
class ItemCreate(BaseModel):
    """Pydantic model for adding an item to the catalog."""
    id: Optional[str] = Field(default=None, min_length=1, pattern=r"^[^/]+$") # Must be routable as one path segment.
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(default=0, ge=0)
    image_url: Optional[str] = None

class StockChange(BaseModel):
    """Pydantic model for decreasing or releasing stock of one item."""
    quantity: int = Field(gt=0)

class ItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    quantity: int
    image_url: Optional[str] = None


def error_response(status_code: int, code: str, message: str, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details}},
    )


def item_not_found(item_id: str) -> JSONResponse:
    return error_response(404, "ITEM_NOT_FOUND", f"Item {item_id} not found", {"item_id": item_id})


# --- Endpoints ---
@app.get("/health")
def health():
    """Health check endpoint to confirm the inventory service is operational."""
    return {"status": "ok", "service": "inventory"}

@app.get("/api/v1/items", response_model=List[ItemResponse])
def list_items(db: Session = Depends(get_db)):
    """Retrieves all catalog items with their current stock."""
    return db.execute(select(Item).order_by(Item.id)).scalars().all()

@app.get("/api/v1/items/{item_id}", response_model=ItemResponse)
def get_item(item_id: str, db: Session = Depends(get_db)):
    """Retrieves a single item by id."""
    item = db.get(Item, item_id)
    if not item:
        return item_not_found(item_id)
    return item

@app.post("/api/v1/items", response_model=ItemResponse, status_code=201)
def create_item(req: ItemCreate, db: Session = Depends(get_db)):
    """Adds a new item to the catalog. An explicit id must not already exist."""
    if req.id is not None and db.get(Item, req.id) is not None:
        return error_response(409, "ITEM_EXISTS", f"Item {req.id} already exists", {"item_id": req.id})

    item = Item(**req.model_dump(exclude_none=True))
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info(f"Created item {item.id} ({item.name}) with quantity {item.quantity}")
    return item

@app.post("/api/v1/items/{item_id}/decrease", response_model=ItemResponse)
def decrease_stock(item_id: str, req: StockChange, db: Session = Depends(get_db)):
    """
    Atomically decrements the stock of an item.
    - The sufficiency check and the decrement are one conditional UPDATE, so
      concurrent callers can never drive the quantity below zero.
    - Returns 404 if the item is unknown, 409 if there is not enough stock.
    """
    result = db.execute(
        update(Item)
        .where(Item.id == item_id, Item.quantity >= req.quantity)
        .values(quantity=Item.quantity - req.quantity)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        db.rollback()
        item = db.get(Item, item_id)
        if not item:
            return item_not_found(item_id)
        logger.warning(f"Insufficient stock for {item_id}. Available: {item.quantity}, requested: {req.quantity}")
        return error_response(
            409,
            "INSUFFICIENT_STOCK",
            f"Insufficient stock for item {item_id}",
            {"item_id": item_id, "available": item.quantity, "requested": req.quantity},
        )

    db.commit()
    item = db.get(Item, item_id)
    logger.info(f"Decreased {item_id} by {req.quantity}. Remaining: {item.quantity}")
    return item

@app.post("/api/v1/items/{item_id}/release", response_model=ItemResponse)
def release_stock(item_id: str, req: StockChange, db: Session = Depends(get_db)):
    """
    Releases a specified quantity of an item, adding it back to stock.
    Used by the order service to compensate a decrement.
    """
    result = db.execute(
        update(Item)
        .where(Item.id == item_id)
        .values(quantity=Item.quantity + req.quantity)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        db.rollback()
        return item_not_found(item_id)

    db.commit()
    item = db.get(Item, item_id)
    logger.info(f"Released {req.quantity} of {item_id}. Quantity: {item.quantity}")
    return item
