# membership_app/routes/__init__.py
"""
Application routes package
"""

from .admin_payments import register_admin_payment_routes


def init_routes(app):
    """Initialize all application routes"""
    register_admin_payment_routes(app)
