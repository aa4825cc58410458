"""
Profile Repository - customer profile and delivery address
"""
from typing import Optional, Dict, Any

from snackzo.core.database import get_db_connection_dict_with_retry


PROFILE_COLUMNS = """
    id, full_name, email, phone, hostel_block, room_number,
    COALESCE(wallet_balance, 0) as wallet_balance
"""


class ProfileRepository:

    def find_by_id(self, user_id: str, cursor=None) -> Optional[Dict[str, Any]]:
        query = f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE id = %s"

        if cursor is not None:
            cursor.execute(query, (user_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

        conn = get_db_connection_dict_with_retry()
        own_cursor = conn.cursor()

        try:
            own_cursor.execute(query, (user_id,))
            row = own_cursor.fetchone()
            return dict(row) if row else None

        finally:
            own_cursor.close()
            conn.close()

    def update_address(self, user_id: str, hostel_block: str, room_number: str) -> Optional[Dict[str, Any]]:
        """
        Set the delivery address of a profile

        Returns:
            Updated profile or None when the profile does not exist
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE profiles
                SET hostel_block = %s, room_number = %s
                WHERE id = %s
                RETURNING {PROFILE_COLUMNS}
            """, (hostel_block, room_number, user_id))
            row = cursor.fetchone()
            conn.commit()
            return dict(row) if row else None

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
