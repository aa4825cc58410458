"""
Notification Repository - in-app notifications table
"""
from typing import Optional

from snackzo.core.database import get_db_connection_dict_with_retry


class NotificationRepository:

    def create(
        self,
        user_id: str,
        title: str,
        message: str,
        notification_type: str = "order",
        order_id: Optional[str] = None
    ) -> None:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO notifications (user_id, title, message, type, order_id)
                VALUES (%s, %s, %s, %s, %s)
            """, (user_id, title, message, notification_type, order_id))
            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
