"""
Promo Code Repository
"""
from typing import Optional, Dict, Any

from snackzo.core.database import get_db_connection_dict_with_retry


PROMO_COLUMNS = """
    id, code, discount_type, discount_value, min_order_amount,
    usage_limit, usage_count, start_date, end_date, is_active
"""


class PromoRepository:

    def find_by_code(self, code: str, cursor=None) -> Optional[Dict[str, Any]]:
        """
        Look up a promo code (case-insensitive)

        Runs on the caller's cursor when one is given so checkout sees the
        same snapshot it will increment.
        """
        query = f"""
            SELECT {PROMO_COLUMNS}
            FROM promo_codes
            WHERE UPPER(code) = UPPER(%s)
        """

        if cursor is not None:
            cursor.execute(query, (code,))
            row = cursor.fetchone()
            return dict(row) if row else None

        conn = get_db_connection_dict_with_retry()
        own_cursor = conn.cursor()

        try:
            own_cursor.execute(query, (code,))
            row = own_cursor.fetchone()
            return dict(row) if row else None

        finally:
            own_cursor.close()
            conn.close()

    def increment_usage(self, cursor, promo_id: str) -> bool:
        """
        Count one use of the code unless its limit is already reached

        Returns:
            False when the guard failed
        """
        cursor.execute("""
            UPDATE promo_codes
            SET usage_count = COALESCE(usage_count, 0) + 1
            WHERE id = %s
              AND is_active = TRUE
              AND (usage_limit IS NULL OR usage_limit <= 0 OR COALESCE(usage_count, 0) < usage_limit)
        """, (promo_id,))
        return cursor.rowcount == 1
