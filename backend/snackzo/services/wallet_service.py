"""
Wallet Service

Balance and history for customers, SnackzoPay top-ups and admin credits.
Checkout debits and cancellation refunds happen inside those services'
transactions through WalletRepository directly.
"""
import logging
from decimal import Decimal
from typing import Optional

from snackzo.core.config import settings
from snackzo.core.database import transaction
from snackzo.core.errors import NotFoundError, WalletError
from snackzo.domain.wallet import WalletSummary, TXN_TOPUP, TXN_CREDIT
from snackzo.repositories.wallet_repository import WalletRepository
from snackzo.services.payment_gateway_service import PaymentGatewayService

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


class WalletService:

    def __init__(
        self,
        repository: Optional[WalletRepository] = None,
        gateway: Optional[PaymentGatewayService] = None
    ):
        self.repository = repository or WalletRepository()
        self.gateway = gateway or PaymentGatewayService()

    def get_summary(self, user_id: str) -> WalletSummary:
        return WalletSummary(
            user_id=user_id,
            balance=self.repository.get_balance(user_id),
            transactions=self.repository.list_transactions(user_id, limit=HISTORY_LIMIT),
        )

    def topup(self, user_id: str, amount: Decimal, payment_session_id: str) -> WalletSummary:
        """
        Add money paid through a successful SnackzoPay session

        Raises:
            WalletError: amount outside (0, MAX_WALLET_TOPUP]
            PaymentSessionError: session not successful, wrong amount or already used
        """
        amount = Decimal(str(amount))
        if amount <= 0:
            raise WalletError("Top-up amount must be greater than zero")
        if amount > Decimal(str(settings.MAX_WALLET_TOPUP)):
            raise WalletError(f"Top-up amount cannot exceed ₹{settings.MAX_WALLET_TOPUP}")

        with transaction() as (conn, cursor):
            transaction_id = self.gateway.consume_success_session(cursor, payment_session_id, amount, user_id)
            if not self.repository.credit(cursor, user_id, amount):
                raise NotFoundError("Profile not found")
            self.repository.add_transaction(
                cursor, user_id, amount, TXN_TOPUP,
                description=f"Wallet top-up ({transaction_id})",
                payment_session_id=payment_session_id,
            )

        logger.info(f"Wallet top-up of {amount} for {user_id} via session {payment_session_id}")
        return self.get_summary(user_id)

    def admin_credit(self, user_id: str, amount: Decimal, description: Optional[str] = None) -> WalletSummary:
        amount = Decimal(str(amount))
        if amount <= 0:
            raise WalletError("Credit amount must be greater than zero")

        with transaction() as (conn, cursor):
            if not self.repository.credit(cursor, user_id, amount):
                raise NotFoundError(f"User {user_id} not found")
            self.repository.add_transaction(
                cursor, user_id, amount, TXN_CREDIT,
                description=description or "Admin credit",
            )

        logger.info(f"Admin credited {amount} to {user_id}")
        return self.get_summary(user_id)
