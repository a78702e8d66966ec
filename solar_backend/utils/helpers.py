"""
General helper utilities
"""
import uuid
from datetime import datetime, timedelta


def generate_id(prefix: str) -> str:
    """Prefixed short id, e.g. "SITE-1A2B3C4D" """
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def format_currency(amount: float) -> str:
    """Format amount as Kenyan Shillings"""
    return f"KES {amount:,.2f}"


def days_ago(days: int) -> datetime:
    return datetime.utcnow() - timedelta(days=days)
