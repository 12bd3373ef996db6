# membership_app/models/__init__.py
"""
Database models package
"""

from .admin import AdminLog
from .base import BaseModel, db
from .member import Member, Payment, PaymentPlatform
from .user import User

__all__ = [
    "db",
    "BaseModel",
    "User",
    "AdminLog",
    "Member",
    "Payment",
    "PaymentPlatform",
]
