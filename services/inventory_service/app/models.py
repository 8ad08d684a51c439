import uuid

from sqlalchemy import CheckConstraint, Column, Integer, Numeric, String
from .database import Base # Import the Base class from our database setup

# Defines the ORM model for a catalog item and its available stock.
class Item(Base):
    # The name of the database table.
    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_items_quantity_non_negative"),
    )

    # Define the table columns.
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    price = Column(Numeric(10, 2), nullable=False) # Unit price.
    quantity = Column(Integer, nullable=False, default=0) # Available quantity, never negative.
    image_url = Column(String, nullable=True)
