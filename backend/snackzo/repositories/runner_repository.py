"""
Runner Repository - runners and the delivery figures used for ETAs
"""
from typing import List, Optional, Dict, Any
from datetime import datetime

from snackzo.core.database import get_db_connection_dict_with_retry


class RunnerRepository:
    """Read-only lookups around delivery runners"""

    def find_by_id(self, runner_id: str) -> Optional[Dict[str, Any]]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, name, phone, is_active, average_rating, total_ratings
                FROM runners
                WHERE id = %s
            """, (runner_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def count_queue(self, runner_id: str) -> int:
        """Orders the runner is still carrying (packed or out for delivery)"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT COUNT(*) as queued
                FROM orders
                WHERE runner_id = %s AND status IN ('packed', 'out_for_delivery')
            """, (runner_id,))
            return int(cursor.fetchone()["queued"])

        finally:
            cursor.close()
            conn.close()

    def get_distance_km(self, order_id: str) -> Optional[float]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT distance_km FROM delivery_estimates WHERE order_id = %s
            """, (order_id,))
            row = cursor.fetchone()
            if not row or row["distance_km"] is None:
                return None
            return float(row["distance_km"])

        finally:
            cursor.close()
            conn.close()

    def recent_delivery_windows(self, runner_id: str, limit: int = 20) -> List[Dict[str, datetime]]:
        """created_at / delivered_at pairs of the runner's latest deliveries"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT created_at, delivered_at
                FROM orders
                WHERE runner_id = %s AND status = 'delivered' AND delivered_at IS NOT NULL
                ORDER BY delivered_at DESC
                LIMIT %s
            """, (runner_id, limit))
            return [dict(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()
