"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders and returns Order domain models.
Write methods take the caller's cursor so checkout and status changes can
run several statements in one transaction.
"""
from typing import List, Optional, Tuple, Dict, Any

from snackzo.core.database import get_db_connection_dict_with_retry
from snackzo.domain.ids import is_uuid
from snackzo.domain.order import Order, OrderItem, QuoteLine


ORDER_COLUMNS = """
    o.id, o.user_id, o.status, o.payment_method, o.payment_status,
    o.delivery_mode, o.delivery_address,
    o.subtotal, o.delivery_fee, o.discount_amount, o.wallet_amount, o.total,
    o.notes, o.is_express, o.scheduled_for, o.runner_id, o.transaction_id,
    o.payment_session_id, o.promo_code_id, o.created_at, o.updated_at, o.delivered_at,
    pr.full_name as customer_name,
    pr.phone as customer_phone
"""


def _normalize_money(row: Dict[str, Any]) -> Dict[str, Any]:
    """NULL money columns (older rows) default to zero"""
    data = dict(row)
    for field in ["subtotal", "delivery_fee", "discount_amount", "wallet_amount", "total"]:
        if data.get(field) is None:
            data.pop(field, None)
    if data.get("is_express") is None:
        data["is_express"] = False
    return data


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    Returns Order domain models with customer info and items.
    """

    def find_by_id(self, order_id: str) -> Optional[Order]:
        """
        Find order by ID with customer and items

        Returns:
            Order with items or None if not found
        """
        if not is_uuid(order_id):
            return None

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                LEFT JOIN profiles pr ON o.user_id = pr.id
                WHERE o.id = %s
            """, (order_id,))

            row = cursor.fetchone()
            if not row:
                return None

            items = self.get_items(cursor, order_id)

            order_dict = _normalize_money(row)
            order_dict["items"] = items
            return Order(**order_dict)

        finally:
            cursor.close()
            conn.close()

    def get_items(self, cursor, order_id: str) -> List[OrderItem]:
        cursor.execute("""
            SELECT id, order_id, product_id, product_name, quantity, price
            FROM order_items
            WHERE order_id = %s
            ORDER BY product_name
        """, (order_id,))
        return [OrderItem(**dict(item)) for item in cursor.fetchall()]

    def find_all(
        self,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        active_first: bool = False,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        Find orders with filters

        Args:
            user_id: Only orders of this customer
            status: Filter by order status
            search: Match on order id prefix, customer name, phone or address
            active_first: Sort orders that are not delivered/cancelled first
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of orders, total count)
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if user_id:
                conditions.append("o.user_id = %s")
                params.append(user_id)

            if status:
                conditions.append("o.status = %s")
                params.append(status)

            if search:
                conditions.append("""(
                    o.id::text ILIKE %s OR
                    pr.full_name ILIKE %s OR
                    pr.phone ILIKE %s OR
                    o.delivery_address ILIKE %s
                )""")
                params.append(f"{search}%")
                search_param = f"%{search}%"
                params.extend([search_param, search_param, search_param])

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM orders o
                LEFT JOIN profiles pr ON o.user_id = pr.id
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()["total"]

            order_by = "o.created_at DESC"
            if active_first:
                order_by = "(o.status IN ('delivered', 'cancelled')) ASC, o.created_at DESC"

            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                LEFT JOIN profiles pr ON o.user_id = pr.id
                WHERE {where_clause}
                ORDER BY {order_by}
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            order_rows = cursor.fetchall()
            if not order_rows:
                return [], total

            # All items for the page in one query
            order_ids = [row["id"] for row in order_rows]
            cursor.execute("""
                SELECT id, order_id, product_id, product_name, quantity, price
                FROM order_items
                WHERE order_id = ANY(%s::uuid[])
                ORDER BY order_id, product_name
            """, (order_ids,))

            items_by_order: Dict[str, List[OrderItem]] = {}
            for item in cursor.fetchall():
                items_by_order.setdefault(str(item["order_id"]), []).append(OrderItem(**dict(item)))

            orders = []
            for row in order_rows:
                order_dict = _normalize_money(row)
                order_dict["items"] = items_by_order.get(str(row["id"]), [])
                orders.append(Order(**order_dict))

            return orders, total

        finally:
            cursor.close()
            conn.close()

    def create(self, cursor, order_data: Dict[str, Any]) -> str:
        """
        Insert an order row on the caller's cursor

        Returns:
            New order id
        """
        columns = list(order_data.keys())
        placeholders = ", ".join(["%s"] * len(columns))
        cursor.execute(f"""
            INSERT INTO orders ({", ".join(columns)})
            VALUES ({placeholders})
            RETURNING id
        """, [order_data[c] for c in columns])
        return str(cursor.fetchone()["id"])

    def add_items(self, cursor, order_id: str, lines: List[QuoteLine]) -> None:
        for line in lines:
            cursor.execute("""
                INSERT INTO order_items (order_id, product_id, product_name, quantity, price)
                VALUES (%s, %s, %s, %s, %s)
            """, (order_id, line.product_id, line.product_name, line.quantity, line.unit_price))

    def lock_for_update(self, cursor, order_id: str) -> Optional[Dict[str, Any]]:
        """Fetch the order row and lock it for the rest of the transaction"""
        if not is_uuid(order_id):
            return None
        cursor.execute("""
            SELECT id, user_id, status, payment_status, payment_method,
                   wallet_amount, total, runner_id
            FROM orders
            WHERE id = %s
            FOR UPDATE
        """, (order_id,))
        row = cursor.fetchone()
        return dict(row) if row else None

    def set_status(self, cursor, order_id: str, status: str) -> None:
        if status == "delivered":
            cursor.execute("""
                UPDATE orders
                SET status = %s, updated_at = NOW(), delivered_at = NOW()
                WHERE id = %s
            """, (status, order_id))
        else:
            cursor.execute("""
                UPDATE orders SET status = %s, updated_at = NOW() WHERE id = %s
            """, (status, order_id))

    def assign_runner(self, order_id: str, runner_id: str) -> bool:
        if not is_uuid(order_id):
            return False

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders SET runner_id = %s, updated_at = NOW()
                WHERE id = %s AND status NOT IN ('delivered', 'cancelled')
            """, (runner_id, order_id))
            updated = cursor.rowcount == 1
            conn.commit()
            return updated

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def record_payment_transaction(self, cursor, payment: Dict[str, Any]) -> None:
        cursor.execute("""
            INSERT INTO payment_transactions (
                order_id, user_id, amount, currency, payment_method,
                payment_status, provider, provider_transaction_id,
                provider_order_id, completed_at
            ) VALUES (%s, %s, %s, 'INR', %s, %s, %s, %s, %s, NOW())
        """, (
            payment["order_id"],
            payment["user_id"],
            payment["amount"],
            payment["payment_method"],
            payment["payment_status"],
            payment.get("provider", "snackzopay"),
            payment["transaction_id"],
            payment.get("provider_order_id"),
        ))
