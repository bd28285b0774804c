"""HTTP route handlers"""
from .base_handler import BaseHandler, staff_required
from .auth_handler import AuthHandler
from .catalog_handler import CatalogHandler
from .system_handler import SystemHandler
from .order_handler import OrderHandler
from .payment_handler import PaymentHandler
from .admin_handler import AdminHandler

__all__ = [
    'BaseHandler',
    'staff_required',
    'AuthHandler',
    'CatalogHandler',
    'SystemHandler',
    'OrderHandler',
    'PaymentHandler',
    'AdminHandler'
]
