"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.
"""
from snackzo.repositories.store_repository import StoreRepository
from snackzo.repositories.product_repository import ProductRepository
from snackzo.repositories.order_repository import OrderRepository
from snackzo.repositories.promo_repository import PromoRepository
from snackzo.repositories.wallet_repository import WalletRepository
from snackzo.repositories.profile_repository import ProfileRepository
from snackzo.repositories.payment_session_repository import PaymentSessionRepository
from snackzo.repositories.runner_repository import RunnerRepository
from snackzo.repositories.notification_repository import NotificationRepository

__all__ = [
    'StoreRepository',
    'ProductRepository',
    'OrderRepository',
    'PromoRepository',
    'WalletRepository',
    'ProfileRepository',
    'PaymentSessionRepository',
    'RunnerRepository',
    'NotificationRepository',
]
