"""
Product Repository - Data Access Layer for the catalogue

Handles all database queries for products and categories and returns
domain models.
"""
from typing import List, Optional, Tuple, Dict

from snackzo.core.database import get_db_connection_dict_with_retry
from snackzo.domain.ids import is_uuid
from snackzo.domain.product import Product, Category


PRODUCT_COLUMNS = """
    p.id, p.name, p.description, p.price, p.stock, p.is_available,
    p.category_id, p.image_url, p.created_at,
    c.name as category_name
"""


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Stock changes take the caller's cursor so they join its transaction.
    """

    def find_by_id(self, product_id: str) -> Optional[Product]:
        """
        Find product by ID, including its image gallery

        Returns:
            Product or None if not found
        """
        if not is_uuid(product_id):
            return None

        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products p
                LEFT JOIN categories c ON p.category_id = c.id
                WHERE p.id = %s
            """, (product_id,))

            row = cursor.fetchone()
            if not row:
                return None

            cursor.execute("""
                SELECT image_url FROM product_images
                WHERE product_id = %s
                ORDER BY display_order
            """, (product_id,))
            images = [r["image_url"] for r in cursor.fetchall()]

            return Product(**dict(row), images=images)

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        available_only: bool = False,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        Find products with filters

        Args:
            category_id: Filter by category
            search: Case-insensitive match on name or description
            available_only: Only orderable products with stock
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of products, total count)
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if category_id:
                conditions.append("p.category_id = %s")
                params.append(category_id)

            if search:
                conditions.append("(p.name ILIKE %s OR p.description ILIKE %s)")
                search_param = f"%{search}%"
                params.extend([search_param, search_param])

            if available_only:
                conditions.append("p.is_available = TRUE AND p.stock > 0")

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM products p
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()["total"]

            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products p
                LEFT JOIN categories c ON p.category_id = c.id
                WHERE {where_clause}
                ORDER BY p.name
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            products = [Product(**dict(row)) for row in cursor.fetchall()]
            return products, total

        finally:
            cursor.close()
            conn.close()

    def find_categories(self) -> List[Category]:
        """All categories in storefront order"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, name, emoji, COALESCE(display_order, 0) as display_order
                FROM categories
                ORDER BY display_order, name
            """)
            return [Category(**dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_by_ids(self, cursor, product_ids: List[str]) -> Dict[str, Product]:
        """
        Load several products on the caller's cursor, keyed by id

        Used to reprice a cart inside the checkout transaction.
        """
        # Malformed ids simply match nothing
        product_ids = [pid for pid in product_ids if is_uuid(pid)]
        if not product_ids:
            return {}

        cursor.execute(f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products p
            LEFT JOIN categories c ON p.category_id = c.id
            WHERE p.id = ANY(%s::uuid[])
        """, (list(product_ids),))

        return {str(row["id"]): Product(**dict(row)) for row in cursor.fetchall()}

    def decrement_stock(self, cursor, product_id: str, quantity: int) -> bool:
        """
        Take units out of stock if enough are on hand

        Returns:
            False when the guard failed (insufficient stock or unavailable)
        """
        cursor.execute("""
            UPDATE products
            SET stock = stock - %s
            WHERE id = %s AND stock >= %s AND is_available = TRUE
        """, (quantity, product_id, quantity))
        return cursor.rowcount == 1

    def restock(self, cursor, product_id: str, quantity: int) -> None:
        cursor.execute("""
            UPDATE products SET stock = stock + %s WHERE id = %s
        """, (quantity, product_id))
