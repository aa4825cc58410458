"""
Wallet Repository - profiles.wallet_balance and the wallet_transactions journal

Balance changes always go through a guarded UPDATE on the caller's cursor
followed by a journal row, so both land in the same transaction.
"""
from decimal import Decimal
from typing import List, Optional

from snackzo.core.database import get_db_connection_dict_with_retry
from snackzo.domain.ids import is_uuid
from snackzo.domain.wallet import WalletTransaction, TXN_DEBIT


class WalletRepository:
    """Repository for wallet balances and transactions"""

    def get_balance(self, user_id: str, cursor=None) -> Decimal:
        query = "SELECT COALESCE(wallet_balance, 0) as balance FROM profiles WHERE id = %s"

        if cursor is not None:
            cursor.execute(query, (user_id,))
            row = cursor.fetchone()
            return Decimal(str(row["balance"])) if row else Decimal("0")

        conn = get_db_connection_dict_with_retry()
        own_cursor = conn.cursor()

        try:
            own_cursor.execute(query, (user_id,))
            row = own_cursor.fetchone()
            return Decimal(str(row["balance"])) if row else Decimal("0")

        finally:
            own_cursor.close()
            conn.close()

    def list_transactions(self, user_id: str, limit: int = 50) -> List[WalletTransaction]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, user_id, amount, transaction_type, description, order_id, created_at
                FROM wallet_transactions
                WHERE user_id = %s
                ORDER BY created_at DESC
                LIMIT %s
            """, (user_id, limit))
            return [WalletTransaction(**dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def debit(self, cursor, user_id: str, amount: Decimal) -> bool:
        """
        Take money out of the wallet if the balance covers it

        Returns:
            False when the balance was insufficient
        """
        cursor.execute("""
            UPDATE profiles
            SET wallet_balance = wallet_balance - %s
            WHERE id = %s AND COALESCE(wallet_balance, 0) >= %s
        """, (amount, user_id, amount))
        return cursor.rowcount == 1

    def credit(self, cursor, user_id: str, amount: Decimal) -> bool:
        if not is_uuid(user_id):
            return False

        cursor.execute("""
            UPDATE profiles
            SET wallet_balance = COALESCE(wallet_balance, 0) + %s
            WHERE id = %s
        """, (amount, user_id))
        return cursor.rowcount == 1

    def add_transaction(
        self,
        cursor,
        user_id: str,
        amount: Decimal,
        transaction_type: str,
        description: Optional[str] = None,
        order_id: Optional[str] = None,
        payment_session_id: Optional[str] = None
    ) -> None:
        cursor.execute("""
            INSERT INTO wallet_transactions (
                user_id, amount, transaction_type, description, order_id, payment_session_id
            ) VALUES (%s, %s, %s, %s, %s, %s)
        """, (user_id, amount, transaction_type, description, order_id, payment_session_id))

    def find_order_debit(self, cursor, order_id: str) -> Decimal:
        """Total wallet amount debited for an order (0 when none)"""
        cursor.execute("""
            SELECT COALESCE(SUM(amount), 0) as debited
            FROM wallet_transactions
            WHERE order_id = %s AND transaction_type = %s
        """, (order_id, TXN_DEBIT))
        return Decimal(str(cursor.fetchone()["debited"]))
