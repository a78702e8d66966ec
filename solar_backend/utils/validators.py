"""
Input validation utilities
"""
from typing import Optional

from solar_backend.config import get_settings


def validate_county(county: str) -> str:
    """Require a county and use the configured spelling when it is a known one"""
    cleaned = (county or "").strip()
    if not cleaned:
        raise ValueError("County is required")
    counties = {c.lower(): c for c in get_settings().COUNTIES}
    return counties.get(cleaned.lower(), cleaned)


def validate_latitude(lat: Optional[float]) -> Optional[float]:
    if lat is not None and not -90 <= lat <= 90:
        raise ValueError("Latitude must be between -90 and 90")
    return lat


def validate_longitude(lng: Optional[float]) -> Optional[float]:
    if lng is not None and not -180 <= lng <= 180:
        raise ValueError("Longitude must be between -180 and 180")
    return lng


def validate_non_negative(amount: float) -> float:
    """Validate a cost or quantity field is not negative"""
    if amount < 0:
        raise ValueError("Value must not be negative")
    return amount
