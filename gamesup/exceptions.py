# gamesup/exceptions.py
from typing import Optional


class ShopError(Exception):
    """Base class for errors the HTTP layer reports to clients"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class CheckoutError(ShopError):
    """The allocation transaction was rolled back"""

    retryable = False

    def __init__(self, reason: str, product_name: Optional[str] = None):
        super().__init__(reason)
        self.product_name = product_name


class ProductNotFoundError(CheckoutError):
    def __init__(self, product_name: str):
        super().__init__(f"Product {product_name} not found", product_name)


class OutOfStockError(CheckoutError):
    def __init__(self, product_name: str):
        super().__init__(f"Product {product_name} is out of stock", product_name)


class TransientCheckoutError(CheckoutError):
    """Lock timeout, dropped connection or similar; the cart may be resubmitted"""

    retryable = True


class OrderNumberCollisionError(TransientCheckoutError):
    pass


class PaymentGatewayError(ShopError):
    """The payment gateway could not be reached or answered garbage"""


class ShippingProviderError(ShopError):
    pass


class DuplicateEmailError(ShopError):
    pass


class AuthenticationError(ShopError):
    pass


class PermissionDeniedError(ShopError):
    pass


class InvalidRequestError(ShopError):
    pass
