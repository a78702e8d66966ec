"""
Site (location) model - solar installation sites across Kenyan counties
"""
from sqlalchemy import Column, String, Float, Boolean, DateTime
from datetime import datetime
from solar_backend.database import Base


class Site(Base):
    __tablename__ = "sites"

    id = Column(String, primary_key=True, index=True)  # "SITE-1A2B3C4D"
    name = Column(String, nullable=False)
    county = Column(String, nullable=False, index=True)
    address = Column(String, nullable=False, default="")
    site_type = Column(String, nullable=True)  # "Commercial", "Residential", ...
    classification = Column(String, nullable=True)  # "Tier 1", ...
    contact_name = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    capacity = Column(Float, nullable=True)  # kW
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def status(self) -> str:
        return "active" if self.is_active else "inactive"
