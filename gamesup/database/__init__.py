from .database import Database
from .checkout_store import CheckoutStore, PostgresCheckoutStore

__all__ = ['Database', 'CheckoutStore', 'PostgresCheckoutStore']
