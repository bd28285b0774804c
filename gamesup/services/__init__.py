from dataclasses import dataclass
from .banner_service import BannerService
from .category_service import CategoryService
from .customer_service import CustomerService
from .order_service import OrderService
from .payment_service import PaymentService, PayTabsClient
from .product_service import ProductService
from .settings_service import SettingsService
from .shipping_service import OtoClient, ShippingService
from .user_service import UserService

@dataclass
class Services:
    """Everything the HTTP layer talks to"""
    products: ProductService
    categories: CategoryService
    banners: BannerService
    settings: SettingsService
    orders: OrderService
    payments: PaymentService
    shipping: ShippingService
    customers: CustomerService
    users: UserService


def build_services(db) -> Services:
    orders = OrderService(db)
    return Services(
        products=ProductService(db),
        categories=CategoryService(db),
        banners=BannerService(db),
        settings=SettingsService(db),
        orders=orders,
        payments=PaymentService(orders, PayTabsClient()),
        shipping=ShippingService(orders, OtoClient()),
        customers=CustomerService(db),
        users=UserService(db)
    )


__all__ = [
    'Services',
    'build_services',
    'BannerService',
    'CategoryService',
    'CustomerService',
    'OrderService',
    'PaymentService',
    'PayTabsClient',
    'ProductService',
    'SettingsService',
    'OtoClient',
    'ShippingService',
    'UserService'
]
