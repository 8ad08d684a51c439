import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from .database import Base # Import the Base class from our database setup


class OrderStatus(str, enum.Enum):
    CREATED = "CREATED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


def _utcnow():
    return datetime.now(timezone.utc)


# Defines the ORM model for an order header stored in the database.
class Order(Base):
    # The name of the database table.
    __tablename__ = "orders"

    # Define the table columns.
    id = Column(String, primary_key=True) # Generated order identifier.
    requester_id = Column(String, nullable=False, index=True) # Authenticated user who placed the order.
    date = Column(Date, nullable=False)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.CREATED)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow) # Keeps listings stable within a day.

    # The order exclusively owns its lines, in the order they were appended.
    lines = relationship(
        "OrderLine", back_populates="order", order_by="OrderLine.id", cascade="all, delete-orphan"
    )


# One reserved basket entry. Price is captured when stock is decremented.
class OrderLine(Base):
    __tablename__ = "order_lines"

    id = Column(Integer, primary_key=True, index=True) # Auto-incrementing primary key.
    order_id = Column(String, ForeignKey("orders.id"), nullable=False, index=True)
    item_id = Column(String, nullable=False) # Reference into the inventory service, not a local FK.
    unit_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="lines")
