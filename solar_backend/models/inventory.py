"""
Inventory catalog - parts with selling and buying prices
"""
from sqlalchemy import Column, Integer, String, Float, Text
from solar_backend.database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(String, primary_key=True, index=True)  # "INV-1001"
    name = Column(String, nullable=False)
    category = Column(String, nullable=False, index=True)
    unit_cost = Column(Float, nullable=False, default=0)  # selling price
    buying_price = Column(Float, nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=0)  # in stock
    specifications = Column(Text, nullable=True)
