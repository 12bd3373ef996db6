# membership_app/forms/__init__.py
"""
WTForms package
"""

from .bulk_import import GivingFuelImportForm

__all__ = ["GivingFuelImportForm"]
