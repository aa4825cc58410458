"""
Order Status Service

Order lifecycle:

    placed -> packed -> out_for_delivery -> delivered
       \\________\\______________\\-----> cancelled

Orders only move one step forward or get cancelled. delivered and
cancelled are final. Cancelling puts the stock back and refunds whatever the
wallet paid.
"""
import logging
from typing import Optional, List, Dict, Any, Tuple

from snackzo.core.database import transaction
from snackzo.core.errors import NotFoundError, OrderStatusError
from snackzo.domain.ids import is_uuid
from snackzo.domain.order import (
    Order, STATUS_FLOW, ALL_STATUSES, FINAL_STATUSES, STATUS_PLACED, STATUS_CANCELLED,
)
from snackzo.domain.wallet import TXN_REFUND
from snackzo.repositories.order_repository import OrderRepository
from snackzo.repositories.product_repository import ProductRepository
from snackzo.repositories.wallet_repository import WalletRepository
from snackzo.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def next_status(status: str) -> Optional[str]:
    """Following step in the delivery flow, None at the end or for cancelled orders"""
    if status not in STATUS_FLOW:
        return None
    index = STATUS_FLOW.index(status)
    return STATUS_FLOW[index + 1] if index + 1 < len(STATUS_FLOW) else None


def validate_transition(current: str, new_status: str) -> None:
    """
    Raises:
        OrderStatusError: the move is not allowed
    """
    if new_status not in ALL_STATUSES:
        raise OrderStatusError(f"Unknown order status: {new_status}")
    if current in FINAL_STATUSES:
        raise OrderStatusError(f"Order is already {current}")
    if new_status == STATUS_CANCELLED:
        return
    if new_status != next_status(current):
        raise OrderStatusError(f"Cannot move order from {current} to {new_status}")


class OrderStatusService:
    """
    Status changes for orders (admin/runner back office and customer cancel)

    Usage:
        service = OrderStatusService()
        order = service.update_status(order_id, "packed")
        results = service.bulk_update([id1, id2], "out_for_delivery")
    """

    def __init__(
        self,
        order_repository: Optional[OrderRepository] = None,
        product_repository: Optional[ProductRepository] = None,
        wallet_repository: Optional[WalletRepository] = None,
        notifications: Optional[NotificationService] = None
    ):
        self.orders = order_repository or OrderRepository()
        self.products = product_repository or ProductRepository()
        self.wallet = wallet_repository or WalletRepository()
        self.notifications = notifications or NotificationService()

    def _cancel(self, cursor, order_id: str, user_id: str) -> None:
        """Restock items and refund the wallet part, on the caller's cursor"""
        for item in self.orders.get_items(cursor, order_id):
            if item.product_id:
                self.products.restock(cursor, item.product_id, item.quantity)

        refund = self.wallet.find_order_debit(cursor, order_id)
        if refund > 0:
            self.wallet.credit(cursor, user_id, refund)
            self.wallet.add_transaction(
                cursor, user_id, refund, TXN_REFUND,
                description=f"Refund for cancelled order #{order_id[:8].upper()}",
                order_id=order_id,
            )
            logger.info(f"Refunded {refund} to wallet of {user_id} for order {order_id}")

    def update_status(self, order_id: str, new_status: str, owner_id: Optional[str] = None) -> Order:
        """
        Move an order to a new status

        Args:
            order_id: Order to update
            new_status: Target status
            owner_id: When set, the order must belong to this user (customer cancel)

        Returns:
            Updated order

        Raises:
            NotFoundError: unknown order (or not owned by owner_id)
            OrderStatusError: transition not allowed
        """
        with transaction() as (conn, cursor):
            row = self.orders.lock_for_update(cursor, order_id)
            if not row or (owner_id and str(row["user_id"]) != str(owner_id)):
                raise NotFoundError(f"Order {order_id} not found")

            current = row["status"]
            validate_transition(current, new_status)

            if new_status == STATUS_CANCELLED:
                self._cancel(cursor, order_id, str(row["user_id"]))

            self.orders.set_status(cursor, order_id, new_status)

        logger.info(f"Order {order_id}: {current} -> {new_status}")
        self.notifications.notify_order_status(order_id, str(row["user_id"]), new_status)
        return self.orders.find_by_id(order_id)

    def cancel_by_customer(self, order_id: str, user_id: str) -> Order:
        """Customers can only cancel before the order is packed"""
        order = self.orders.find_by_id(order_id)
        if not order or order.user_id != str(user_id):
            raise NotFoundError(f"Order {order_id} not found")
        if order.status != STATUS_PLACED:
            raise OrderStatusError("Order can no longer be cancelled")
        return self.update_status(order_id, STATUS_CANCELLED, owner_id=user_id)

    def bulk_update(self, order_ids: List[str], new_status: str) -> Dict[str, Any]:
        """
        Apply one status to many orders, each in its own transaction

        Returns:
            {"updated": n, "failed": n, "results": [{"order_id", "success", "error"}]}
        """
        results = []
        for order_id in order_ids:
            try:
                self.update_status(order_id, new_status)
                results.append({"order_id": order_id, "success": True, "error": None})
            except (LookupError, ValueError) as e:
                results.append({"order_id": order_id, "success": False, "error": str(e)})

        updated = sum(1 for r in results if r["success"])
        logger.info(f"Bulk status -> {new_status}: {updated}/{len(order_ids)} updated")
        return {"updated": updated, "failed": len(results) - updated, "results": results}

    def assign_runner(self, order_id: str, runner_id: str) -> Order:
        if not is_uuid(runner_id):
            raise NotFoundError(f"Runner {runner_id} not found")
        if not self.orders.assign_runner(order_id, runner_id):
            order = self.orders.find_by_id(order_id)
            if not order:
                raise NotFoundError(f"Order {order_id} not found")
            raise OrderStatusError(f"Cannot assign a runner to a {order.status} order")
        logger.info(f"Runner {runner_id} assigned to order {order_id}")
        return self.orders.find_by_id(order_id)

    def list_orders(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """Back-office listing, active orders first"""
        return self.orders.find_all(status=status, search=search, active_first=True, limit=limit, offset=offset)
