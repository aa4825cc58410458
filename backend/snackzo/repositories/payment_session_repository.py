"""
Payment Session Repository - SnackzoPay sessions

Status changes are guarded UPDATEs: the row only moves when it is still in
one of the expected source states, so two concurrent completions of the
same session cannot both win.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple, Iterable

from snackzo.core.database import get_db_connection_dict_with_retry
from snackzo.domain.ids import is_uuid
from snackzo.domain.payment import (
    PaymentSession, PaymentStats,
    SESSION_PENDING, SESSION_SUCCESS, SESSION_FAILED, SESSION_EXPIRED,
)

logger = logging.getLogger(__name__)


SESSION_COLUMNS = """
    s.id, s.order_ref, s.order_id, s.amount, s.status, s.payment_method_type,
    s.transaction_id, s.user_id, s.guest_name, s.expires_at, s.consumed_at,
    s.created_at, s.updated_at,
    pr.full_name as customer_name
"""


class PaymentSessionRepository:
    """
    Repository for payment_sessions

    All SQL queries for the gateway are centralized here.
    """

    def create(
        self,
        amount: Decimal,
        expires_at: datetime,
        order_ref: Optional[str] = None,
        order_id: Optional[str] = None,
        user_id: Optional[str] = None,
        guest_name: Optional[str] = None
    ) -> PaymentSession:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO payment_sessions (
                    order_ref, order_id, amount, status, user_id, guest_name, expires_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING id, order_ref, order_id, amount, status, payment_method_type,
                          transaction_id, user_id, guest_name, expires_at, consumed_at,
                          created_at, updated_at
            """, (order_ref, order_id, amount, SESSION_PENDING, user_id, guest_name, expires_at))
            row = cursor.fetchone()
            conn.commit()
            return PaymentSession(**dict(row))

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, session_id: str) -> Optional[PaymentSession]:
        if not is_uuid(session_id):
            return None

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {SESSION_COLUMNS}
                FROM payment_sessions s
                LEFT JOIN profiles pr ON s.user_id = pr.id
                WHERE s.id = %s
            """, (session_id,))
            row = cursor.fetchone()
            return PaymentSession(**dict(row)) if row else None

        finally:
            cursor.close()
            conn.close()

    def transition(
        self,
        session_id: str,
        new_status: str,
        from_statuses: Iterable[str],
        payment_method_type: Optional[str] = None,
        transaction_id: Optional[str] = None
    ) -> bool:
        """
        Move a session to new_status if it is still in one of from_statuses

        Returns:
            True when the row was updated
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE payment_sessions
                SET status = %s,
                    payment_method_type = COALESCE(%s, payment_method_type),
                    transaction_id = COALESCE(%s, transaction_id),
                    updated_at = NOW()
                WHERE id = %s AND status = ANY(%s)
            """, (new_status, payment_method_type, transaction_id, session_id, list(from_statuses)))
            updated = cursor.rowcount == 1
            conn.commit()
            return updated

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def expire_stale(self, now: datetime) -> int:
        """Mark every pending/failed session past its deadline as expired"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE payment_sessions
                SET status = %s, updated_at = NOW()
                WHERE status = ANY(%s) AND expires_at <= %s
            """, (SESSION_EXPIRED, [SESSION_PENDING, SESSION_FAILED], now))
            expired = cursor.rowcount
            conn.commit()
            if expired:
                logger.info(f"Expired {expired} stale payment sessions")
            return expired

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[PaymentSession], int]:
        """
        Admin listing, newest first

        Args:
            status: Filter by session status ("all" or None for every status)
            search: Match on order reference, transaction id or payer name
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if status and status != "all":
                conditions.append("s.status = %s")
                params.append(status)

            if search:
                conditions.append("""(
                    s.order_ref ILIKE %s OR
                    s.transaction_id ILIKE %s OR
                    s.guest_name ILIKE %s OR
                    pr.full_name ILIKE %s
                )""")
                search_param = f"%{search}%"
                params.extend([search_param] * 4)

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM payment_sessions s
                LEFT JOIN profiles pr ON s.user_id = pr.id
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()["total"]

            cursor.execute(f"""
                SELECT {SESSION_COLUMNS}
                FROM payment_sessions s
                LEFT JOIN profiles pr ON s.user_id = pr.id
                WHERE {where_clause}
                ORDER BY s.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            sessions = [PaymentSession(**dict(row)) for row in cursor.fetchall()]
            return sessions, total

        finally:
            cursor.close()
            conn.close()

    def get_stats(self) -> PaymentStats:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    COALESCE(SUM(amount) FILTER (WHERE status = 'success'), 0) as total_captured,
                    COUNT(*) FILTER (WHERE status = 'success') as successful,
                    COUNT(*) FILTER (WHERE status = 'failed') as failed,
                    COUNT(*) FILTER (WHERE status = 'pending') as pending,
                    COUNT(*) as count
                FROM payment_sessions
            """)
            row = cursor.fetchone()

            successful = int(row["successful"])
            resolved = int(row["count"]) - int(row["pending"])
            success_rate = round(successful * 100 / resolved) if resolved > 0 else 0

            return PaymentStats(
                total_captured=Decimal(str(row["total_captured"])),
                successful=successful,
                failed=int(row["failed"]),
                pending=int(row["pending"]),
                count=int(row["count"]),
                success_rate=success_rate,
            )

        finally:
            cursor.close()
            conn.close()

    def consume(self, cursor, session_id: str, amount: Decimal, user_id: Optional[str] = None) -> Optional[str]:
        """
        Mark a successful session as used, on the caller's cursor

        The session must be successful, for exactly this amount, not yet
        consumed and (when it has a payer) belong to user_id.

        Returns:
            The gateway transaction id, or None when the guard failed
        """
        if not is_uuid(session_id):
            return None

        cursor.execute("""
            UPDATE payment_sessions
            SET consumed_at = NOW(), updated_at = NOW()
            WHERE id = %s
              AND status = %s
              AND amount = %s
              AND consumed_at IS NULL
              AND (user_id IS NULL OR user_id = %s)
            RETURNING transaction_id
        """, (session_id, SESSION_SUCCESS, amount, user_id))
        row = cursor.fetchone()
        return row["transaction_id"] if row else None
