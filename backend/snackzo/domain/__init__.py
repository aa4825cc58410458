"""
Domain Layer - Business Entities

Pydantic models shared by the API, service and repository layers.
"""
from snackzo.domain.store import StoreConfig, StoreStatus
from snackzo.domain.product import Product, Category
from snackzo.domain.order import Order, OrderItem, CartItem, PriceQuote
from snackzo.domain.payment import PaymentSession
from snackzo.domain.wallet import WalletTransaction, WalletSummary
from snackzo.domain.delivery import ETAFactors, ETAResult

__all__ = [
    'StoreConfig', 'StoreStatus',
    'Product', 'Category',
    'Order', 'OrderItem', 'CartItem', 'PriceQuote',
    'PaymentSession',
    'WalletTransaction', 'WalletSummary',
    'ETAFactors', 'ETAResult',
]
