"""
Service order models - billable maintenance/installation jobs against a site
"""
from sqlalchemy import Column, Integer, String, Float, Text, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from solar_backend.database import Base


class ServiceOrder(Base):
    __tablename__ = "service_orders"

    id = Column(String, primary_key=True, index=True)  # "SO-1A2B3C4D"
    title = Column(String, nullable=False)
    site_id = Column(String, ForeignKey("sites.id"), nullable=False)
    issuer_id = Column(String, ForeignKey("users.id"), nullable=False)
    technician = Column(String, nullable=False)
    order_type = Column(String, nullable=False)
    priority = Column(String, nullable=False, default="Medium")
    description = Column(Text, nullable=True)
    scheduled_date = Column(Date, nullable=True)

    # Site and design specifics
    existing_power_setup = Column(Text, nullable=True)
    proposed_power_setup = Column(Text, nullable=True)
    energy_demand = Column(Float, default=0)
    solar_capacity = Column(Float, default=0)
    battery_capacity = Column(Float, default=0)
    rectifier_details = Column(Text, nullable=True)
    estimated_solar_production = Column(Float, default=0)

    # Labor and costs
    estimated_hours = Column(Float, nullable=False, default=0)
    labor_rate = Column(Float, nullable=False, default=0)
    travel_cost = Column(Float, nullable=False, default=0)
    other_costs = Column(Float, nullable=False, default=0)
    overhead_costs = Column(Float, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    # Cost summary captured at creation
    parts_revenue = Column(Float, default=0)
    parts_cost = Column(Float, default=0)
    labor_cost = Column(Float, default=0)
    total_cost = Column(Float, default=0)
    estimated_invoice = Column(Float, default=0)
    estimated_profit = Column(Float, default=0)
    estimated_margin = Column(Float, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    site = relationship("Site")
    issuer = relationship("User")
    parts = relationship("ServiceOrderPart", back_populates="order", cascade="all, delete-orphan")


class ServiceOrderPart(Base):
    __tablename__ = "service_order_parts"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String, ForeignKey("service_orders.id"), nullable=False)
    item_id = Column(String, ForeignKey("inventory_items.id"), nullable=False)
    item_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_selling_price = Column(Float, nullable=False, default=0)
    unit_buying_price = Column(Float, nullable=False, default=0)

    # Relationships
    order = relationship("ServiceOrder", back_populates="parts")
